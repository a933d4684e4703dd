from .billing import (
     BillCreate,
     BillUpdate,
     PaymentRecord,
     InvoiceResponse,
     BillingRecord,
     BillingStats,
)

__all__ = [
     "BillCreate",
     "BillUpdate",
     "PaymentRecord",
     "InvoiceResponse",
     "BillingRecord",
     "BillingStats",
]
