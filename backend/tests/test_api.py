"""
API tests using the Flask test client.
"""

from decimal import Decimal


def test_quote_default_ladder(client, company):
    response = client.post('/api/pricing/quote', json={'company_id': company.id, 'weight': '7'})
    assert response.status_code == 200
    assert Decimal(response.json['total_price']) == Decimal('600')
    assert response.json['tier_name'] == 'Extra Heavy'


def test_quote_many_weights(client, company):
    response = client.post('/api/pricing/quote', json={'company_id': company.id, 'weights': ['0.5', '2', '12']})
    assert response.status_code == 200
    totals = [Decimal(q['total_price']) for q in response.json['quotes']]
    assert totals == [Decimal('200'), Decimal('300'), Decimal('900')]


def test_quote_negative_weight_is_400(client, company):
    response = client.post('/api/pricing/quote', json={'company_id': company.id, 'weight': -1})
    assert response.status_code == 400
    assert 'error' in response.json


def test_tier_create_and_list(client, company):
    response = client.post('/api/pricing/tiers', json={
        'company_id': company.id,
        'tier_name': 'City',
        'min_weight': '0',
        'max_weight': '4',
        'base_price': '180',
    })
    assert response.status_code == 201

    response = client.get(f'/api/pricing/tiers?company_id={company.id}')
    assert response.status_code == 200
    assert [t['tier_name'] for t in response.json['tiers']] == ['City']


def test_invoice_lifecycle(client, branch, product):
    response = client.post('/api/invoices/', json={
        'branch_id': branch.id,
        'items': [{'product_id': product.id, 'quantity': 10}],
        'discount_amount': '50',
        'actor_user_id': 3,
    })
    assert response.status_code == 201
    invoice = response.json['invoice']
    assert invoice['invoice_number'] == 'COL-000001'
    assert Decimal(invoice['total_amount']) == Decimal('1400')
    assert invoice['can_be_modified'] is True
    invoice_id = invoice['id']

    response = client.post(f'/api/invoices/{invoice_id}/lines', json={'product_id': product.id, 'quantity': 2})
    assert response.status_code == 201
    line_id = response.json['item']['id']
    assert Decimal(response.json['invoice']['subtotal']) == Decimal('1200')

    response = client.patch(f'/api/invoices/{invoice_id}/lines/{line_id}', json={'quantity': 0})
    assert response.status_code == 400
    assert response.json['details']['constraint'] == 'quantity'

    response = client.delete(f'/api/invoices/{invoice_id}/lines/{line_id}')
    assert response.status_code == 200
    assert Decimal(response.json['totals']['subtotal']) == Decimal('1000')

    response = client.post(f'/api/invoices/{invoice_id}/discount', json={'discount_amount': '-5'})
    assert response.status_code == 400

    response = client.post(f'/api/invoices/{invoice_id}/payments', json={'amount': '400', 'method': 'cash'})
    assert response.status_code == 201
    assert response.json['payment_status'] == 'partially_paid'

    response = client.post(f'/api/invoices/{invoice_id}/lines', json={'product_id': product.id, 'quantity': 1})
    assert response.status_code == 400

    response = client.delete(f'/api/invoices/{invoice_id}')
    assert response.status_code == 400

    response = client.post(f'/api/invoices/{invoice_id}/recalculate')
    assert response.status_code == 200
    assert Decimal(response.json['totals']['total_amount']) == Decimal('1400')


def test_next_number_preview(client, branch):
    response = client.get(f'/api/invoices/next-number?branch_id={branch.id}')
    assert response.status_code == 200
    assert response.json['invoice_number'] == 'COL-000001'


def test_missing_invoice_is_404(client, db_session):
    response = client.get('/api/invoices/999')
    assert response.status_code == 404


def test_create_invoice_requires_branch(client, db_session):
    response = client.post('/api/invoices/', json={'items': []})
    assert response.status_code == 400
    assert response.json['details']['missing'] == ['branch_id']


def test_print_job_flow(client, branch):
    response = client.post('/api/print-jobs/', json={
        'branch_id': branch.id,
        'job_type': 'posters',
        'quantity': 20,
        'actor_user_id': 5,
    })
    assert response.status_code == 201
    job = response.json['print_job']
    assert len(job['stages']) == 7
    first_stage = job['stages'][0]['id']

    response = client.post(f'/api/print-jobs/stages/{first_stage}/complete', json={})
    assert response.status_code == 409
    assert response.json['details']['current_state'] == 'pending'
    assert response.json['details']['event'] == 'complete'

    response = client.post(f'/api/print-jobs/stages/{first_stage}/start', json={'actor_user_id': 5})
    assert response.status_code == 200
    response = client.post(f'/api/print-jobs/stages/{first_stage}/complete', json={'notes': 'Proof OK'})
    assert response.status_code == 200
    assert response.json['progress']['percentage'] == 14
    assert response.json['progress']['production_status'] == 'design_review'

    response = client.get(f"/api/print-jobs/{job['id']}")
    assert response.status_code == 200
    stages = response.json['print_job']['stages']
    assert stages[0]['allowed_events'] == []
    assert stages[1]['allowed_events'] == ['start', 'put_on_hold', 'skip']

    response = client.put(f"/api/print-jobs/{job['id']}/progress", json={'completion_percentage': 60})
    assert response.status_code == 200
    assert response.json['print_job']['completion_percentage'] == 60

    response = client.post(f"/api/print-jobs/{job['id']}/progress", json={})
    assert response.status_code == 200
    assert response.json['percentage'] == 14


def test_add_stage_via_api(client, branch):
    response = client.post('/api/print-jobs/', json={
        'branch_id': branch.id, 'job_type': 'banners', 'with_default_stages': False,
    })
    job_id = response.json['print_job']['id']

    response = client.post(f'/api/print-jobs/{job_id}/stages', json={'stage_name': 'grommets'})
    assert response.status_code == 201
    assert response.json['stage']['stage_order'] == 1


def test_with_default_stages_accepts_string_false(client, branch):
    response = client.post('/api/print-jobs/', json={
        'branch_id': branch.id, 'job_type': 'flyers', 'with_default_stages': 'false',
    })
    assert response.status_code == 201
    assert response.json['print_job']['stages'] == []


def test_with_default_stages_rejects_garbage(client, branch):
    response = client.post('/api/print-jobs/', json={
        'branch_id': branch.id, 'job_type': 'flyers', 'with_default_stages': 'maybe',
    })
    assert response.status_code == 400
    assert response.json['details']['field'] == 'with_default_stages'


def test_tier_with_bad_sort_order_is_400(client, company):
    response = client.post('/api/pricing/tiers', json={
        'company_id': company.id, 'tier_name': 'City', 'min_weight': '0', 'sort_order': 'x',
    })
    assert response.status_code == 400


def test_job_lifecycle_via_api(client, branch):
    response = client.post('/api/print-jobs/', json={'branch_id': branch.id, 'job_type': 'flyers'})
    job_id = response.json['print_job']['id']

    response = client.post(f'/api/print-jobs/{job_id}/hold', json={'reason': 'Paper', 'actor_user_id': 5})
    assert response.status_code == 200
    assert response.json['print_job']['production_status'] == 'on_hold'

    response = client.post(f'/api/print-jobs/{job_id}/hold', json={})
    assert response.status_code == 409

    response = client.post(f'/api/print-jobs/{job_id}/resume', json={})
    assert response.json['print_job']['production_status'] == 'design_review'

    response = client.put(f'/api/print-jobs/{job_id}/assignee', json={'assigned_to_user_id': 4})
    assert response.status_code == 200
    assert response.json['print_job']['assigned_to_user_id'] == 4

    response = client.put(f'/api/print-jobs/{job_id}/priority', json={'priority': 'urgent', 'reason': 'Rush'})
    assert response.status_code == 200
    assert response.json['print_job']['priority'] == 'urgent'

    response = client.post(f'/api/print-jobs/{job_id}/cancel', json={'reason': 'Withdrawn'})
    assert response.status_code == 200
    assert response.json['print_job']['production_status'] == 'cancelled'

    response = client.post(f'/api/print-jobs/{job_id}/stages', json={'stage_name': 'lamination'})
    assert response.status_code == 400

    response = client.post(f'/api/print-jobs/{job_id}/complete', json={})
    assert response.status_code == 409


def test_invoice_payload_carries_balance(client, branch, product):
    response = client.post('/api/invoices/', json={
        'branch_id': branch.id,
        'items': [{'product_id': product.id, 'quantity': 10}],
        'discount_amount': '50',
    })
    invoice_id = response.json['invoice']['id']
    assert Decimal(response.json['invoice']['remaining_amount']) == Decimal('1400')

    response = client.post(f'/api/invoices/{invoice_id}/payments', json={'amount': '400'})
    assert Decimal(response.json['total_paid']) == Decimal('400')
    assert Decimal(response.json['remaining_amount']) == Decimal('1000')

    response = client.get(f'/api/invoices/{invoice_id}')
    assert response.json['invoice']['total_paid'] == '400.00'
    assert response.json['invoice']['is_overdue'] in (True, False)


def test_explicit_invoice_number_then_auto(client, branch):
    client.post('/api/invoices/', json={'branch_id': branch.id})
    response = client.post('/api/invoices/', json={'branch_id': branch.id, 'invoice_number': 'COL-000002'})
    assert response.status_code == 201

    response = client.post('/api/invoices/', json={'branch_id': branch.id})
    assert response.status_code == 201
    assert response.json['invoice']['invoice_number'] == 'COL-000003'
