# Overview: Flask CLI command groups for bootstrap, tier inspection and invoice maintenance.

# backend/printshop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migrated databases).
# - python -m flask system seed [--company "Acme Print"] [--code ACME] [--branch-code COL]
#   Idempotent: default company, branch and a starter product.
#
# Weight tiers:
# - python -m flask tiers list --company-id 1 [--all]
#   List tiers (use --all to include inactive).
# - python -m flask tiers quote --company-id 1 0.5 2 7 12
#   Price each weight with the company's tiers (default ladder fallback).
#
# Invoices:
# - python -m flask invoices recalc --invoice-id 42
# - python -m flask invoices recalc --branch-id 1
#   Recompute stored totals from the current lines.

import click
from decimal import Decimal
from flask.cli import with_appcontext

from .errors import PrintShopError
from .extensions import db
from .models import Branch, Company, Invoice, Product
from .services import invoice_service, weight_pricing_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables for the configured database."""
    db.create_all()
    click.echo("PASS Tables created")


@system_group.command('seed')
@click.option('--company', 'company_name', default='Default Print Shop', help='Company name')
@click.option('--code', 'company_code', default='DEFAULT', help='Company code')
@click.option('--branch-code', default='MAIN', help='Branch code (invoice number prefix)')
@with_appcontext
def seed(company_name, company_code, branch_code):
    """Create a default company, branch and product if missing."""
    company = db.session.query(Company).filter_by(code=company_code).first()
    if company is None:
        company = Company(name=company_name, code=company_code)
        db.session.add(company)
        db.session.flush()
        click.echo(f"PASS Created company: {company.name} (ID: {company.id})")
    else:
        click.echo(f"PASS Using existing company: {company.name} (ID: {company.id})")

    branch = db.session.query(Branch).filter_by(company_id=company.id, code=branch_code).first()
    if branch is None:
        branch = Branch(company_id=company.id, name="Main Branch", code=branch_code)
        db.session.add(branch)
        db.session.flush()
        click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id}, Code: {branch.code})")
    else:
        click.echo(f"PASS Using existing branch: {branch.name} (ID: {branch.id})")

    product = db.session.query(Product).filter_by(company_id=company.id, product_code="BC-STD").first()
    if product is None:
        db.session.add(Product(
            company_id=company.id,
            name="Standard Business Cards (100)",
            product_code="BC-STD",
            base_price=Decimal("1500.00"),
            weight_per_unit=Decimal("0.250"),
        ))
        click.echo("PASS Created product: BC-STD")

    db.session.commit()


# =============================================================================
# WEIGHT TIERS
# =============================================================================

@click.group('tiers')
def tiers_group():
    """Weight pricing tier inspection."""


@tiers_group.command('list')
@click.option('--company-id', type=int, required=True)
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive tiers')
@with_appcontext
def list_tiers(company_id, include_inactive):
    """List a company's weight tiers."""
    tiers = weight_pricing_service.list_tiers(company_id, include_inactive)
    if not tiers:
        click.echo("No tiers configured (default ladder applies)")
        return
    for tier in tiers:
        click.echo(
            f"{tier.id:>4}  {tier.tier_name:<20} {tier.weight_range:<14} "
            f"base={tier.base_price} per_kg={tier.price_per_kg} [{tier.status}]"
        )


@tiers_group.command('quote')
@click.option('--company-id', type=int, required=True)
@click.argument('weights', nargs=-1, required=True)
@with_appcontext
def quote(company_id, weights):
    """Price one or more weights (kg)."""
    try:
        quotes = weight_pricing_service.pricing_breakdown(company_id, weights)
    except PrintShopError as exc:
        raise click.ClickException(exc.message)
    for item in quotes:
        click.echo(f"{item['weight']:>10} kg  {item['tier_name']:<20} {item['total_price']}")


# =============================================================================
# INVOICES
# =============================================================================

@click.group('invoices')
def invoices_group():
    """Invoice maintenance commands."""


@invoices_group.command('recalc')
@click.option('--invoice-id', type=int, help='Single invoice to recompute')
@click.option('--branch-id', type=int, help='Recompute every invoice of a branch')
@with_appcontext
def recalc(invoice_id, branch_id):
    """Recompute stored invoice totals from their lines."""
    if invoice_id is None and branch_id is None:
        raise click.UsageError("Pass --invoice-id or --branch-id")

    if invoice_id is not None:
        ids = [invoice_id]
    else:
        ids = [row.id for row in db.session.query(Invoice.id).filter_by(branch_id=branch_id).order_by(Invoice.id)]

    failures = 0
    for current_id in ids:
        try:
            totals = invoice_service.recalculate_invoice(current_id)
            click.echo(f"PASS Invoice {current_id}: total={totals.total_amount} weight={totals.total_weight}")
        except PrintShopError as exc:
            failures += 1
            click.echo(f"FAIL Invoice {current_id}: {exc.message}")

    if failures:
        raise click.ClickException(f"{failures} invoice(s) failed")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tiers_group)
    app.cli.add_command(invoices_group)
