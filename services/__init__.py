from .billing_calendar import (
     compute_next_cycle,
     period_length_days,
     duplicate_tolerance,
)
from .invoice_store import InvoiceStore, InvoiceDraft, StoreUnavailableError
from .recurring_billing_service import RecurringBillingService, check_and_create_new_bills
from .billing_scheduler import BillingScheduler
from .billing_service import BillingService, BillingError

__all__ = [
     "compute_next_cycle",
     "period_length_days",
     "duplicate_tolerance",
     "InvoiceStore",
     "InvoiceDraft",
     "StoreUnavailableError",
     "RecurringBillingService",
     "check_and_create_new_bills",
     "BillingScheduler",
     "BillingService",
     "BillingError",
]
