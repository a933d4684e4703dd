# services/recurring_billing_service.py
"""
Recurring Billing Service - rolls invoices over from one cycle to the next.

For every tenant, invoices are grouped by the resource they bill (a tenant
may hold a desk and an office at the same time). The most recent invoice of
each group decides what happens:

1. Skip the group if billing is not configured yet (no fee period or due
   date) or the due date is a placeholder.
2. Once the due date has passed, every unpaid invoice of the group that is
   itself past due is marked OVERDUE.
3. The next cycle's invoice is created, unless one already exists for that
   cycle. Base rent, CUSA and parking fees carry over; late and damage fees
   start again from zero.

check_and_create_new_bills() runs this for all tenants and is what the
scheduler calls on every tick.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, ContextManager, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import config
from database import get_session_context
from models import Invoice, InvoiceStatus, Tenant
from services.billing_calendar import (
     coerce_datetime,
     compute_next_cycle,
     duplicate_tolerance,
     utcnow,
)
from services.invoice_store import InvoiceDraft, InvoiceStore, StoreUnavailableError

logger = logging.getLogger(__name__)

LOG_PREFIX = "[Billing Service]"
NOT_AVAILABLE = "N/A"


class RecurringBillingService:
     """Overdue detection, status transitions and successor invoice generation."""

     @staticmethod
     def resolve_resource_key(invoice: Invoice) -> str:
          """assigned_resource, then the legacy desk/room/office fields, then "Unknown"."""
          return invoice.resource_key

     @staticmethod
     def group_by_resource(invoices: List[Invoice]) -> Dict[str, List[Invoice]]:
          """
          Group invoices by resource, keeping the input order inside each group.

          Given a newest-first list, the first invoice of every group is that
          resource's most recent bill.
          """
          groups: Dict[str, List[Invoice]] = {}
          for invoice in invoices:
               key = RecurringBillingService.resolve_resource_key(invoice)
               groups.setdefault(key, []).append(invoice)
          return groups

     @staticmethod
     def billable_due_date(
          reference: Invoice,
          tenant_id: Optional[int] = None,
          resource: Optional[str] = None
     ) -> Optional[datetime]:
          """
          The reference invoice's due date, or None if the group must be skipped.

          A group is skipped while billing is not configured (no fee period or
          due date) or when the due date is a placeholder before year 2000.
          """
          if not reference.fee_period or reference.due_date is None:
               logger.info(
                    "%s Skipping tenant %s, resource %s - bill not configured (missing feePeriod or dueDate)",
                    LOG_PREFIX, tenant_id, resource,
               )
               return None

          due_date = coerce_datetime(reference.due_date)
          if due_date is None or due_date.year < config.MIN_VALID_DUE_YEAR:
               logger.info(
                    "%s Skipping tenant %s, resource %s - invalid dueDate: %r",
                    LOG_PREFIX, tenant_id, resource, reference.due_date,
               )
               return None
          return due_date

     @staticmethod
     def rollover_due_date(
          reference: Invoice,
          now: datetime,
          tenant_id: Optional[int] = None,
          resource: Optional[str] = None
     ) -> Optional[datetime]:
          """
          Decide whether a resource group is due for rollover.

          Args:
               reference: Most recent invoice of the group
               now: Current time (naive UTC)
               tenant_id: Only used for log context
               resource: Only used for log context

          Returns:
               The reference invoice's due date if it has passed, otherwise None.
               None is also returned when the group is not billable.
          """
          due_date = RecurringBillingService.billable_due_date(reference, tenant_id, resource)
          if due_date is not None and now > due_date:
               return due_date
          return None

     @staticmethod
     def mark_overdue_invoices(store: InvoiceStore, invoices: List[Invoice], now: datetime) -> int:
          """
          Mark every unpaid invoice whose own due date has passed as OVERDUE.

          Returns:
               Number of invoices that changed status
          """
          count = 0
          for invoice in invoices:
               if invoice.status != InvoiceStatus.UNPAID:
                    continue
               due_date = coerce_datetime(invoice.due_date)
               if due_date is None or not now > due_date:
                    continue
               if store.mark_overdue(invoice):
                    logger.info(
                         "%s Updated bill %s to overdue for tenant %s, resource %s",
                         LOG_PREFIX, invoice.id, invoice.tenant_id, invoice.resource_key,
                    )
                    count += 1
          return count

     @staticmethod
     def find_existing_cycle(
          invoices: List[Invoice],
          next_start: datetime,
          fee_period: Optional[str]
     ) -> Optional[Invoice]:
          """Return an invoice whose start date falls within the duplicate window of next_start."""
          tolerance = duplicate_tolerance(fee_period)
          for invoice in invoices:
               start_date = coerce_datetime(invoice.start_date)
               if start_date is None:
                    continue
               if abs(start_date - next_start) < tolerance:
                    return invoice
          return None

     @staticmethod
     def build_next_invoice(
          tenant: Tenant,
          resource: str,
          reference: Invoice,
          next_start: datetime,
          next_due: datetime
     ) -> InvoiceDraft:
          """
          Build the successor of reference for the cycle [next_start, next_due].

          Client details fall back to the tenant profile, then to "N/A".
          """
          return InvoiceDraft(
               client_name=reference.client_name or tenant.display_name or NOT_AVAILABLE,
               company_name=reference.company_name or tenant.company_name or NOT_AVAILABLE,
               email=reference.email or tenant.email or NOT_AVAILABLE,
               contact_number=reference.contact_number or tenant.contact_number or NOT_AVAILABLE,
               service_type=reference.service_type,
               assigned_resource=resource,
               amount=reference.amount or Decimal("0"),
               cusa_fee=reference.cusa_fee or Decimal("0"),
               parking_fee=reference.parking_fee or Decimal("0"),
               late_fee=Decimal("0"),
               damage_fee=Decimal("0"),
               fee_period=reference.fee_period,
               status=InvoiceStatus.UNPAID,
               start_date=next_start,
               due_date=next_due,
               booking_id=reference.booking_id,
               room_id=reference.room_id,
          )

     @staticmethod
     def generate_next_invoice(
          store: InvoiceStore,
          tenant: Tenant,
          resource: str,
          invoices: List[Invoice],
          due_date: datetime
     ) -> Optional[Invoice]:
          """
          Create the next cycle's invoice for a resource group unless it exists.

          Args:
               store: Invoice store bound to the current transaction
               tenant: Owner of the invoices
               resource: Resolved resource key of the group
               invoices: The group, most recent first
               due_date: Due date of the group's most recent invoice

          Returns:
               The created Invoice, or None if the cycle was already billed
          """
          reference = invoices[0]
          next_start, next_due = compute_next_cycle(due_date, reference.fee_period)

          if RecurringBillingService.find_existing_cycle(invoices, next_start, reference.fee_period):
               logger.info(
                    "%s Bill already exists for tenant %s, resource %s for period starting %s",
                    LOG_PREFIX, tenant.tenant_id, resource, next_start.isoformat(),
               )
               return None

          draft = RecurringBillingService.build_next_invoice(tenant, resource, reference, next_start, next_due)
          invoice = store.create_invoice(tenant.tenant_id, draft)
          if invoice is not None:
               logger.info(
                    "%s Created new bill for tenant %s, resource %s, start: %s, due: %s",
                    LOG_PREFIX, tenant.tenant_id, resource, next_start.isoformat(), next_due.isoformat(),
               )
          return invoice

     @staticmethod
     def process_tenant(store: InvoiceStore, tenant: Tenant, now: datetime) -> dict:
          """
          Run the rollover for every resource group of one tenant.

          Returns:
               Dictionary with counts of overdue transitions, created invoices
               and skipped groups
          """
          result = {"resources": 0, "marked_overdue": 0, "created": 0, "skipped": 0}

          invoices = store.list_invoices(tenant.tenant_id)
          if not invoices:
               return result

          groups = RecurringBillingService.group_by_resource(invoices)
          result["resources"] = len(groups)
          logger.debug("%s Tenant %s has bills for %d resources", LOG_PREFIX, tenant.tenant_id, len(groups))

          for resource, resource_invoices in groups.items():
               due_date = RecurringBillingService.billable_due_date(
                    resource_invoices[0], tenant.tenant_id, resource
               )
               if due_date is None:
                    result["skipped"] += 1
                    continue
               if not now > due_date:
                    continue

               result["marked_overdue"] += RecurringBillingService.mark_overdue_invoices(
                    store, resource_invoices, now
               )
               created = RecurringBillingService.generate_next_invoice(
                    store, tenant, resource, resource_invoices, due_date
               )
               if created is not None:
                    result["created"] += 1

          return result


def check_and_create_new_bills(
     now: Optional[datetime] = None,
     session_factory: Optional[Callable[[], ContextManager[Session]]] = None
) -> dict:
     """
     Run one recurring billing pass over every tenant.

     Each tenant is processed in its own transaction: a failure rolls back
     that tenant's changes, is logged, and the remaining tenants are still
     processed. Nothing is raised to the caller.

     Args:
          now: Time to evaluate due dates against (defaults to current UTC time)
          session_factory: Context manager yielding a session (defaults to get_session_context)

     Returns:
          Summary dictionary of the pass
     """
     now = now or utcnow()
     session_factory = session_factory or get_session_context

     summary = {
          "checked_at": now.isoformat(),
          "store_available": True,
          "tenants_checked": 0,
          "tenants_failed": 0,
          "invoices_marked_overdue": 0,
          "invoices_created": 0,
          "skipped": 0,
     }

     logger.info("%s Checking for overdue bills...", LOG_PREFIX)

     try:
          with session_factory() as db:
               tenant_ids = [tenant.tenant_id for tenant in InvoiceStore(db).list_tenants()]
     except (StoreUnavailableError, SQLAlchemyError) as e:
          logger.warning("%s Database not available, skipping check: %s", LOG_PREFIX, e)
          summary["store_available"] = False
          return summary

     for tenant_id in tenant_ids:
          try:
               with session_factory() as db:
                    store = InvoiceStore(db)
                    tenant = store.get_tenant(tenant_id)
                    if tenant is None:
                         continue
                    result = RecurringBillingService.process_tenant(store, tenant, now)
          except Exception:
               logger.exception("%s Error processing bills for tenant %s", LOG_PREFIX, tenant_id)
               summary["tenants_failed"] += 1
               continue

          summary["tenants_checked"] += 1
          summary["invoices_marked_overdue"] += result["marked_overdue"]
          summary["invoices_created"] += result["created"]
          summary["skipped"] += result["skipped"]

     logger.info(
          "%s Billing check completed: %d tenants, %d marked overdue, %d created, %d failed",
          LOG_PREFIX,
          summary["tenants_checked"],
          summary["invoices_marked_overdue"],
          summary["invoices_created"],
          summary["tenants_failed"],
     )
     return summary
