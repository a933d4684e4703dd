import enum
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Enum, Index, Text, text
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin


class InvoiceStatus(str, enum.Enum):
     """Enumeration for invoice payment status."""
     UNPAID = "unpaid"
     PAID = "paid"
     OVERDUE = "overdue"


# Resource fields in lookup order; older bills only carry the legacy ones
RESOURCE_FIELDS = ("assigned_resource", "desk", "room", "office")
UNKNOWN_RESOURCE = "Unknown"


class Invoice(TimestampMixin, Base):
     """
     Invoice model - one billing cycle for one tenant and one billable
     resource (desk, private office or virtual-office slot).

     A tenant holding several resources has one invoice history per
     resource; each history advances through its own cycles.
     """
     __tablename__ = "invoices"
     __table_args__ = (
          # Newest-first listing per tenant
          Index("ix_invoices_created_at", "created_at"),
          # Filtered so bills without a cycle start (NULL key) never collide
          Index(
               "uq_invoices_cycle_key",
               "cycle_key",
               unique=True,
               mssql_where=text("cycle_key IS NOT NULL"),
               sqlite_where=text("cycle_key IS NOT NULL"),
          ),
     )

     id = Column(Integer, primary_key=True, autoincrement=True)

     # Foreign keys
     tenant_id = Column(
          Integer,
          ForeignKey("tenants.tenant_id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )

     # Billed resource
     assigned_resource = Column(String(100), nullable=True, index=True)
     desk = Column(String(100), nullable=True)
     room = Column(String(100), nullable=True)
     office = Column(String(100), nullable=True)
     service_type = Column(String(50), nullable=True)

     # Client details captured on the bill
     client_name = Column(String(200), nullable=True)
     company_name = Column(String(255), nullable=True)
     email = Column(String(255), nullable=True)
     contact_number = Column(String(50), nullable=True)

     # Fees
     amount = Column(Numeric(12, 2), default=0, nullable=False)
     cusa_fee = Column(Numeric(12, 2), default=0, nullable=False)
     parking_fee = Column(Numeric(12, 2), default=0, nullable=False)
     late_fee = Column(Numeric(12, 2), default=0, nullable=False)
     damage_fee = Column(Numeric(12, 2), default=0, nullable=False)

     # Cycle
     fee_period = Column(String(50), nullable=True)
     status = Column(
          Enum(
               InvoiceStatus,
               name="invoice_status",
               create_constraint=True,
               values_callable=lambda e: [member.value for member in e],
          ),
          default=InvoiceStatus.UNPAID,
          nullable=False,
          index=True
     )
     start_date = Column(DateTime, nullable=True)
     due_date = Column(DateTime, nullable=True, index=True)

     # Links back to whatever produced the first bill
     booking_id = Column(String(100), nullable=True)
     room_id = Column(String(100), nullable=True)

     # tenant:resource:cycle-start, unique when set so a cycle can only be billed once
     cycle_key = Column(String(255), nullable=True)

     notes = Column(Text, nullable=True)

     paid_at = Column(DateTime, nullable=True)

     # Relationships
     tenant = relationship("Tenant", back_populates="invoices")

     def __repr__(self):
          status = self.status.value if self.status else None
          return f"<Invoice(id={self.id}, resource='{self.resource_key}', status='{status}', due_date={self.due_date})>"

     @property
     def resource_key(self) -> str:
          """The resource this bill belongs to, falling back to legacy fields."""
          for field in RESOURCE_FIELDS:
               value = getattr(self, field)
               if value:
                    return value
          return UNKNOWN_RESOURCE

     @property
     def total_amount(self) -> Decimal:
          """Sum of every fee on the bill."""
          return sum(
               (Decimal(str(getattr(self, field) or 0))
                for field in ("amount", "cusa_fee", "parking_fee", "late_fee", "damage_fee")),
               Decimal("0"),
          )

     def mark_as_paid(
          self,
          late_fee: Decimal = Decimal("0"),
          damage_fee: Decimal = Decimal("0"),
          paid_at: Optional[datetime] = None
     ) -> None:
          """Mark the invoice as paid, applying the late and damage fees charged at payment."""
          self.status = InvoiceStatus.PAID
          self.late_fee = late_fee or 0
          self.damage_fee = damage_fee or 0
          self.paid_at = paid_at or datetime.now(timezone.utc).replace(tzinfo=None)

     def mark_as_overdue(self) -> bool:
          """
          Mark an unpaid invoice as overdue.

          Returns False (and changes nothing) for invoices that are already
          overdue or paid; overdue never moves back to unpaid.
          """
          if self.status != InvoiceStatus.UNPAID:
               return False
          self.status = InvoiceStatus.OVERDUE
          return True
