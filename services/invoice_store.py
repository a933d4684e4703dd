# services/invoice_store.py
"""
Invoice Store - data access for tenants and their invoices.

The recurring billing service and the billing routes only talk to the
database through this class, so the persistence rules live in one place:
- invoices are listed newest first
- marking overdue is a no-op for bills that are not unpaid
- a cycle (tenant, resource, start date) can only be billed once
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from models import Invoice, InvoiceStatus, Tenant

logger = logging.getLogger(__name__)


class StoreUnavailableError(Exception):
     """Raised when the database cannot be reached."""


@dataclass
class InvoiceDraft:
     """Values for an invoice that has not been persisted yet."""
     assigned_resource: str
     fee_period: Optional[str] = None
     start_date: Optional[datetime] = None
     due_date: Optional[datetime] = None
     amount: Decimal = Decimal("0")
     cusa_fee: Decimal = Decimal("0")
     parking_fee: Decimal = Decimal("0")
     late_fee: Decimal = Decimal("0")
     damage_fee: Decimal = Decimal("0")
     status: InvoiceStatus = InvoiceStatus.UNPAID
     client_name: Optional[str] = None
     company_name: Optional[str] = None
     email: Optional[str] = None
     contact_number: Optional[str] = None
     service_type: Optional[str] = None
     booking_id: Optional[str] = None
     room_id: Optional[str] = None
     notes: Optional[str] = None


def build_cycle_key(tenant_id: int, resource: str, start_date: Optional[datetime]) -> Optional[str]:
     """Deterministic key for one billing cycle; None when the cycle has no start date."""
     if start_date is None:
          return None
     return f"{tenant_id}:{resource}:{start_date.replace(microsecond=0).isoformat()}"


class InvoiceStore:
     """Tenant and invoice persistence on top of a SQLAlchemy session."""

     def __init__(self, session: Session):
          self.session = session

     def list_tenants(self) -> List[Tenant]:
          try:
               return self.session.query(Tenant).order_by(Tenant.tenant_id).all()
          except (OperationalError, InterfaceError) as e:
               raise StoreUnavailableError(str(e)) from e

     def get_tenant(self, tenant_id: int) -> Optional[Tenant]:
          return self.session.query(Tenant).filter(Tenant.tenant_id == tenant_id).first()

     def list_invoices(self, tenant_id: int) -> List[Invoice]:
          """All invoices of a tenant, most recently created first."""
          return (
               self.session.query(Invoice)
               .filter(Invoice.tenant_id == tenant_id)
               .order_by(desc(Invoice.created_at), desc(Invoice.id))
               .all()
          )

     def list_all_invoices(self) -> List[Invoice]:
          return (
               self.session.query(Invoice)
               .order_by(Invoice.tenant_id, desc(Invoice.created_at), desc(Invoice.id))
               .all()
          )

     def get_invoice(self, tenant_id: int, invoice_id: int) -> Optional[Invoice]:
          return (
               self.session.query(Invoice)
               .filter(Invoice.tenant_id == tenant_id, Invoice.id == invoice_id)
               .first()
          )

     def mark_overdue(self, invoice: Invoice) -> bool:
          """
          Set an invoice's status to overdue.

          Returns:
               True if the status changed, False if it was not unpaid
          """
          changed = invoice.mark_as_overdue()
          if changed:
               self.session.flush()
          return changed

     def create_invoice(self, tenant_id: int, draft: InvoiceDraft) -> Optional[Invoice]:
          """
          Insert a new invoice for a tenant.

          The insert runs inside a savepoint. If another invoice already holds
          the same cycle key the savepoint is rolled back and None is
          returned; earlier work in the surrounding transaction is kept.

          Returns:
               The created Invoice, or None when the cycle is already billed
          """
          invoice = Invoice(
               tenant_id=tenant_id,
               assigned_resource=draft.assigned_resource,
               fee_period=draft.fee_period,
               start_date=draft.start_date,
               due_date=draft.due_date,
               amount=draft.amount,
               cusa_fee=draft.cusa_fee,
               parking_fee=draft.parking_fee,
               late_fee=draft.late_fee,
               damage_fee=draft.damage_fee,
               status=draft.status,
               client_name=draft.client_name,
               company_name=draft.company_name,
               email=draft.email,
               contact_number=draft.contact_number,
               service_type=draft.service_type,
               booking_id=draft.booking_id,
               room_id=draft.room_id,
               notes=draft.notes,
               cycle_key=build_cycle_key(tenant_id, draft.assigned_resource, draft.start_date),
          )

          try:
               with self.session.begin_nested():
                    self.session.add(invoice)
          except IntegrityError:
               logger.info(
                    "Invoice for cycle %s already exists, not creating another",
                    invoice.cycle_key,
               )
               return None

          return invoice
