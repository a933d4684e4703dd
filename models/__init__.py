from .base import Base
from .tenant import Tenant
from .invoice import Invoice, InvoiceStatus

__all__ = [
     "Base",
     "Tenant",
     "Invoice",
     "InvoiceStatus",
]
