# services/billing_service.py
"""
Billing Service - admin-facing billing operations.

Builds the billing overview (one representative bill per tenant and
resource), the aggregate statistics, and applies admin edits: first bill
creation, bill updates and payment recording.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

import config
from models import Invoice, InvoiceStatus, Tenant
from services.billing_calendar import coerce_datetime, period_length, utcnow
from services.invoice_store import InvoiceDraft, InvoiceStore
from services.recurring_billing_service import RecurringBillingService

# Higher wins when summarising a resource's bills
STATUS_PRIORITY = {
     InvoiceStatus.OVERDUE: 2,
     InvoiceStatus.UNPAID: 1,
     InvoiceStatus.PAID: 0,
}

# serviceType -> stats key; anything else is counted as "unknown"
SERVICE_TYPE_KEYS = {
     "Private Office": "privateOffice",
     "Virtual Office": "virtualOffice",
     "Dedicated Desk": "dedicatedDesk",
}
UNKNOWN_SERVICE_TYPE = "unknown"


class BillingError(ValueError):
     """Invalid admin input; carries an HTTP status for the API layer."""

     def __init__(self, message: str, status_code: int = 400):
          super().__init__(message)
          self.message = message
          self.status_code = status_code


def _as_float(value) -> float:
     return float(value or 0)


def _status_value(status) -> str:
     return status.value if isinstance(status, InvoiceStatus) else str(status)


class BillingService:
     """Service class for admin billing views and edits."""

     @staticmethod
     def group_status(invoices: List[Invoice]) -> InvoiceStatus:
          """Overall status of a resource's bills: overdue > unpaid > paid."""
          return max((inv.status for inv in invoices), key=lambda s: STATUS_PRIORITY[s])

     @staticmethod
     def representative_invoice(invoices: List[Invoice]) -> Invoice:
          """
          Pick the bill that best represents a resource (newest-first input).

          The most recent overdue bill, else the most recent unpaid bill,
          else the most recent bill.
          """
          for status in (InvoiceStatus.OVERDUE, InvoiceStatus.UNPAID):
               for invoice in invoices:
                    if invoice.status == status:
                         return invoice
          return invoices[0]

     @staticmethod
     def invoice_to_dict(invoice: Invoice) -> dict:
          return {
               "user_id": invoice.tenant_id,
               "bill_id": invoice.id,
               "assigned_resource": invoice.resource_key,
               "service_type": invoice.service_type,
               "client_name": invoice.client_name,
               "company_name": invoice.company_name,
               "email": invoice.email,
               "contact_number": invoice.contact_number,
               "amount": _as_float(invoice.amount),
               "cusa_fee": _as_float(invoice.cusa_fee),
               "parking_fee": _as_float(invoice.parking_fee),
               "late_fee": _as_float(invoice.late_fee),
               "damage_fee": _as_float(invoice.damage_fee),
               "total_amount": float(invoice.total_amount),
               "fee_period": invoice.fee_period,
               "status": _status_value(invoice.status),
               "start_date": invoice.start_date,
               "due_date": invoice.due_date,
               "created_at": invoice.created_at,
               "paid_at": invoice.paid_at,
               "booking_id": invoice.booking_id,
               "room_id": invoice.room_id,
          }

     @staticmethod
     def billing_record(tenant: Tenant, resource: str, invoices: List[Invoice]) -> dict:
          """Build the overview row for one tenant + resource."""
          bill = BillingService.representative_invoice(invoices)
          return {
               "user_id": tenant.tenant_id,
               "bill_id": bill.id,
               "name": bill.client_name or tenant.display_name,
               "email": bill.email or tenant.email,
               "phone": bill.contact_number or tenant.contact_number,
               "company_name": bill.company_name or tenant.company_name,
               "service_type": bill.service_type,
               "assigned_resource": resource,
               "amount": _as_float(bill.amount),
               "cusa_fee": _as_float(bill.cusa_fee),
               "parking_fee": _as_float(bill.parking_fee),
               "late_fee": _as_float(bill.late_fee),
               "damage_fee": _as_float(bill.damage_fee),
               "fee_period": bill.fee_period,
               "status": BillingService.group_status(invoices).value,
               "due_date": bill.due_date,
               "start_date": bill.start_date,
               "all_bills_paid": all(inv.status == InvoiceStatus.PAID for inv in invoices),
          }

     @staticmethod
     def list_billing_records(store: InvoiceStore) -> List[dict]:
          records = []
          for tenant in store.list_tenants():
               invoices = store.list_invoices(tenant.tenant_id)
               groups = RecurringBillingService.group_by_resource(invoices)
               for resource, resource_invoices in groups.items():
                    records.append(BillingService.billing_record(tenant, resource, resource_invoices))
          return records

     @staticmethod
     def billing_stats(store: InvoiceStore) -> dict:
          """
          Aggregate statistics over every bill.

          totalRevenue sums all fees of paid bills; unpaidAmount sums all fees
          of unpaid and overdue bills.
          byServiceType counts bills per service type.
          """
          invoices = store.list_all_invoices()
          by_status: Dict[InvoiceStatus, List[Invoice]] = {status: [] for status in InvoiceStatus}
          for invoice in invoices:
               by_status[invoice.status].append(invoice)

          def _total(items: List[Invoice]) -> Decimal:
               return sum((inv.total_amount for inv in items), Decimal("0"))

          by_service_type = {key: 0 for key in SERVICE_TYPE_KEYS.values()}
          by_service_type[UNKNOWN_SERVICE_TYPE] = 0
          for invoice in invoices:
               by_service_type[SERVICE_TYPE_KEYS.get(invoice.service_type, UNKNOWN_SERVICE_TYPE)] += 1

          outstanding = by_status[InvoiceStatus.UNPAID] + by_status[InvoiceStatus.OVERDUE]
          return {
               "total_bills": len(invoices),
               "total_revenue": float(_total(by_status[InvoiceStatus.PAID])),
               "paid_count": len(by_status[InvoiceStatus.PAID]),
               "unpaid_amount": float(_total(outstanding)),
               "overdue_count": len(by_status[InvoiceStatus.OVERDUE]),
               "by_service_type": by_service_type,
          }

     @staticmethod
     def list_tenant_invoices(
          store: InvoiceStore,
          tenant_id: int,
          assigned_resource: Optional[str] = None
     ) -> List[Invoice]:
          if store.get_tenant(tenant_id) is None:
               raise BillingError(f"Tenant with ID {tenant_id} not found", status_code=404)
          invoices = store.list_invoices(tenant_id)
          if assigned_resource:
               invoices = [inv for inv in invoices if inv.resource_key == assigned_resource]
          return invoices

     @staticmethod
     def validate_fee_period(fee_period: str) -> str:
          if fee_period not in config.FEE_PERIOD_DAYS:
               allowed = ", ".join(config.FEE_PERIOD_DAYS)
               raise BillingError(f"Invalid feePeriod '{fee_period}'. Expected one of: {allowed}")
          return fee_period

     @staticmethod
     def create_first_invoice(store: InvoiceStore, tenant_id: int, data) -> Invoice:
          """
          Create the first bill of a tenant's resource.

          Args:
               store: Invoice store
               tenant_id: Tenant being billed
               data: BillCreate payload

          Raises:
               BillingError: Unknown tenant (404), bad input (400) or an
                    existing bill for the same cycle (409)
          """
          tenant = store.get_tenant(tenant_id)
          if tenant is None:
               raise BillingError(f"Tenant with ID {tenant_id} not found", status_code=404)

          fee_period = BillingService.validate_fee_period(data.fee_period or config.DEFAULT_FEE_PERIOD)
          start_date = coerce_datetime(data.start_date) or utcnow()
          due_date = coerce_datetime(data.due_date) or start_date + period_length(fee_period)
          if due_date <= start_date:
               raise BillingError("dueDate must be after startDate")

          draft = InvoiceDraft(
               assigned_resource=data.assigned_resource,
               fee_period=fee_period,
               start_date=start_date,
               due_date=due_date,
               amount=data.amount,
               cusa_fee=data.cusa_fee,
               parking_fee=data.parking_fee,
               status=InvoiceStatus.UNPAID,
               client_name=data.client_name or tenant.display_name,
               company_name=data.company_name or tenant.company_name,
               email=data.email or tenant.email,
               contact_number=data.contact_number or tenant.contact_number,
               service_type=data.service_type,
               booking_id=data.booking_id,
               room_id=data.room_id,
               notes=data.notes,
          )
          invoice = store.create_invoice(tenant_id, draft)
          if invoice is None:
               raise BillingError(
                    f"A bill for resource {data.assigned_resource} starting {start_date.isoformat()} already exists",
                    status_code=409,
               )
          return invoice

     @staticmethod
     def _get_invoice(store: InvoiceStore, tenant_id: int, invoice_id: int) -> Invoice:
          invoice = store.get_invoice(tenant_id, invoice_id)
          if invoice is None:
               raise BillingError("Bill not found", status_code=404)
          return invoice

     @staticmethod
     def update_invoice(store: InvoiceStore, tenant_id: int, invoice_id: int, data) -> Invoice:
          """
          Apply admin edits to a bill. Only provided fields are changed.

          Raises:
               BillingError: Bill not found (404), or an unreadable dueDate, a
                    dueDate not after startDate or an unknown feePeriod (400)
          """
          invoice = BillingService._get_invoice(store, tenant_id, invoice_id)

          due_date: Optional[datetime] = None
          if data.due_date is not None:
               due_date = coerce_datetime(data.due_date)
               if due_date is None or due_date.year < config.MIN_VALID_DUE_YEAR:
                    raise BillingError(f"Invalid dueDate: {data.due_date!r}")
               if invoice.start_date is not None and due_date <= invoice.start_date:
                    raise BillingError("dueDate must be after startDate")

          if data.fee_period is not None:
               invoice.fee_period = BillingService.validate_fee_period(data.fee_period)
          if data.amount is not None:
               invoice.amount = data.amount
          if data.cusa_fee is not None:
               invoice.cusa_fee = data.cusa_fee
          if data.parking_fee is not None:
               invoice.parking_fee = data.parking_fee
          if due_date is not None:
               invoice.due_date = due_date

          store.session.flush()
          return invoice

     @staticmethod
     def record_payment(store: InvoiceStore, tenant_id: int, invoice_id: int, data) -> Invoice:
          """Mark a bill as paid with the late and damage fees charged at payment time."""
          invoice = BillingService._get_invoice(store, tenant_id, invoice_id)
          invoice.mark_as_paid(late_fee=data.late_fee, damage_fee=data.damage_fee, paid_at=utcnow())
          store.session.flush()
          return invoice
