# routers/billing.py
"""
Admin billing API routes.

Provides the billing overview, statistics, per-tenant bill history and the
admin edits (create first bill, update bill, record payment). Also exposes
an on-demand run of the recurring billing check.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from database import get_session
from services.billing_scheduler import BillingScheduler
from services.billing_service import BillingError, BillingService
from services.invoice_store import InvoiceStore
from schemas.billing import (
     BillCreate,
     BillUpdate,
     PaymentRecord,
     InvoiceEnvelope,
     InvoiceListEnvelope,
     BillingRecordListEnvelope,
     BillingStatsEnvelope,
     BillingCheckEnvelope,
)

router = APIRouter(prefix="/api/admin/billing", tags=["billing"])


def get_store(db: Session = Depends(get_session)) -> InvoiceStore:
     """FastAPI dependency providing an InvoiceStore bound to the request session."""
     return InvoiceStore(db)


def get_billing_scheduler(request: Request) -> BillingScheduler:
     """The application's scheduler, created on first use if the app has none yet."""
     scheduler = getattr(request.app.state, "billing_scheduler", None)
     if scheduler is None:
          scheduler = BillingScheduler()
          request.app.state.billing_scheduler = scheduler
     return scheduler


def _raise_http(error: BillingError):
     raise HTTPException(status_code=error.status_code, detail=error.message)


@router.get(
     "/all",
     response_model=BillingRecordListEnvelope,
     summary="List billing records"
)
def list_billing_records(store: InvoiceStore = Depends(get_store)):
     """
     One record per tenant and resource.

     The record shows the most recent overdue bill, else the most recent
     unpaid bill, else the latest bill. **status** is the overall status of
     the resource's bills (overdue > unpaid > paid).
     """
     return {"success": True, "data": BillingService.list_billing_records(store)}


@router.get(
     "/stats",
     response_model=BillingStatsEnvelope,
     summary="Get billing statistics"
)
def get_billing_stats(store: InvoiceStore = Depends(get_store)):
     """
     Returns:
     - **totalBills**: number of bills
     - **totalRevenue**: all fees of paid bills
     - **paidCount**: number of paid bills
     - **unpaidAmount**: all fees of unpaid and overdue bills
     - **overdueCount**: number of overdue bills
     """
     return {"success": True, "data": BillingService.billing_stats(store)}


@router.post(
     "/run-check",
     response_model=BillingCheckEnvelope,
     summary="Run the recurring billing check now"
)
def run_billing_check(scheduler: BillingScheduler = Depends(get_billing_scheduler)):
     """
     Run one pass of the recurring billing check outside the schedule.

     Returns 409 if a scheduled check is in progress.
     """
     result = scheduler.run_once()
     if result is None:
          raise HTTPException(
               status_code=status.HTTP_409_CONFLICT,
               detail="A billing check is already running"
          )
     return {"success": True, "data": result}


@router.get(
     "/user/{user_id}/bills",
     response_model=InvoiceListEnvelope,
     summary="Get a tenant's bills"
)
def get_user_bills(
     user_id: int,
     assigned_resource: Optional[str] = Query(None, alias="assignedResource", description="Only bills for this resource"),
     store: InvoiceStore = Depends(get_store)
):
     """All bills of a tenant, most recent first."""
     try:
          invoices = BillingService.list_tenant_invoices(store, user_id, assigned_resource)
     except BillingError as e:
          _raise_http(e)
     return {"success": True, "data": [BillingService.invoice_to_dict(inv) for inv in invoices]}


@router.post(
     "/{user_id}",
     response_model=InvoiceEnvelope,
     status_code=status.HTTP_201_CREATED,
     summary="Create a tenant's first bill for a resource"
)
def create_bill(
     user_id: int,
     bill_data: BillCreate,
     store: InvoiceStore = Depends(get_store)
):
     """
     Create the first bill for a tenant's resource.

     - **assignedResource**: desk / office / room being billed
     - **feePeriod**: defaults to Monthly
     - **startDate**: defaults to now
     - **dueDate**: defaults to startDate plus one fee period

     Later bills are generated by the recurring billing check.
     """
     try:
          invoice = BillingService.create_first_invoice(store, user_id, bill_data)
     except BillingError as e:
          _raise_http(e)
     return {
          "success": True,
          "message": "Bill created successfully",
          "data": BillingService.invoice_to_dict(invoice),
     }


@router.put(
     "/{user_id}/{bill_id}/update",
     response_model=InvoiceEnvelope,
     summary="Update a bill"
)
def update_bill(
     user_id: int,
     bill_id: int,
     bill_data: BillUpdate,
     store: InvoiceStore = Depends(get_store)
):
     """
     Edit amount, CUSA fee, parking fee, fee period or due date.

     Only provided fields are updated. An unreadable **dueDate** is rejected.
     """
     try:
          invoice = BillingService.update_invoice(store, user_id, bill_id, bill_data)
     except BillingError as e:
          _raise_http(e)
     return {
          "success": True,
          "message": "Bill updated successfully",
          "data": BillingService.invoice_to_dict(invoice),
     }


@router.post(
     "/{user_id}/{bill_id}/record-payment",
     response_model=InvoiceEnvelope,
     summary="Record payment for a bill"
)
def record_payment(
     user_id: int,
     bill_id: int,
     payment: PaymentRecord,
     store: InvoiceStore = Depends(get_store)
):
     """
     Mark a bill as paid.

     - **lateFee**: late fee charged with this payment
     - **damageFee**: damage fee charged with this payment
     """
     try:
          invoice = BillingService.record_payment(store, user_id, bill_id, payment)
     except BillingError as e:
          _raise_http(e)
     return {
          "success": True,
          "message": "Payment recorded successfully",
          "data": BillingService.invoice_to_dict(invoice),
     }
