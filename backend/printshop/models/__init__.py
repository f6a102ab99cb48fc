from .tenancy import Company, Branch
from .catalog import Product, WeightPricingTier
from .invoicing import Invoice, InvoiceItem, Payment
from .sequences import NumberSequence
from .production import PrintJob, ProductionStage

__all__ = [
    'Company', 'Branch',
    'Product', 'WeightPricingTier',
    'Invoice', 'InvoiceItem', 'Payment',
    'NumberSequence',
    'PrintJob', 'ProductionStage',
]
