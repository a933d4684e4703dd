"""
Pydantic schemas for the admin billing API.

JSON field names are camelCase (the admin UI's convention); Python
attribute names stay snake_case.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
     model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BillCreate(CamelModel):
     """Schema for creating the first bill of a tenant's resource."""
     assigned_resource: str = Field(..., min_length=1, max_length=100, description="Desk, office or room identifier")
     amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2, description="Base rent")
     cusa_fee: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
     parking_fee: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
     fee_period: str = Field(default="Monthly", description="Billing period name")
     start_date: Optional[datetime] = Field(None, description="Cycle start (defaults to now)")
     due_date: Optional[datetime] = Field(None, description="Cycle due date (defaults to start + period)")
     service_type: Optional[str] = Field(None, max_length=50)
     client_name: Optional[str] = Field(None, max_length=200)
     company_name: Optional[str] = Field(None, max_length=255)
     email: Optional[str] = Field(None, max_length=255)
     contact_number: Optional[str] = Field(None, max_length=50)
     booking_id: Optional[str] = Field(None, max_length=100)
     room_id: Optional[str] = Field(None, max_length=100)
     notes: Optional[str] = None

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "assignedResource": "A12",
                    "amount": 5000.00,
                    "cusaFee": 500.00,
                    "parkingFee": 0,
                    "feePeriod": "Monthly",
                    "startDate": "2024-01-01T00:00:00",
                    "serviceType": "Dedicated Desk"
               }
          }
     )


class BillUpdate(CamelModel):
     """
     Schema for editing an existing bill.

     dueDate is taken as a string and parsed by the service so that an
     unreadable value is reported as a 400 with a readable message.
     """
     amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
     cusa_fee: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
     parking_fee: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
     fee_period: Optional[str] = None
     due_date: Optional[str] = None

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "amount": 5500.00,
                    "feePeriod": "Quarterly",
                    "dueDate": "2024-04-01T00:00:00.000Z"
               }
          }
     )


class PaymentRecord(CamelModel):
     """Schema for recording a payment against a bill."""
     late_fee: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
     damage_fee: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)


class InvoiceResponse(CamelModel):
     """One bill as stored."""
     user_id: int
     bill_id: int
     assigned_resource: str
     service_type: Optional[str] = None
     client_name: Optional[str] = None
     company_name: Optional[str] = None
     email: Optional[str] = None
     contact_number: Optional[str] = None
     amount: float = 0
     cusa_fee: float = 0
     parking_fee: float = 0
     late_fee: float = 0
     damage_fee: float = 0
     total_amount: float = 0
     fee_period: Optional[str] = None
     status: str
     start_date: Optional[datetime] = None
     due_date: Optional[datetime] = None
     created_at: Optional[datetime] = None
     paid_at: Optional[datetime] = None
     booking_id: Optional[str] = None
     room_id: Optional[str] = None


class BillingRecord(CamelModel):
     """The representative bill of one tenant + resource pair."""
     user_id: int
     bill_id: int
     name: Optional[str] = None
     email: Optional[str] = None
     phone: Optional[str] = None
     company_name: Optional[str] = None
     service_type: Optional[str] = None
     assigned_resource: str
     amount: float = 0
     cusa_fee: float = 0
     parking_fee: float = 0
     late_fee: float = 0
     damage_fee: float = 0
     fee_period: Optional[str] = None
     status: str
     due_date: Optional[datetime] = None
     start_date: Optional[datetime] = None
     all_bills_paid: bool = False


class BillingStats(CamelModel):
     total_bills: int = 0
     total_revenue: float = 0
     paid_count: int = 0
     unpaid_amount: float = 0
     overdue_count: int = 0
     # keys: privateOffice, virtualOffice, dedicatedDesk, unknown
     by_service_type: Dict[str, int] = Field(default_factory=dict)


class InvoiceEnvelope(CamelModel):
     success: bool = True
     message: Optional[str] = None
     data: InvoiceResponse


class InvoiceListEnvelope(CamelModel):
     success: bool = True
     data: List[InvoiceResponse]


class BillingRecordListEnvelope(CamelModel):
     success: bool = True
     data: List[BillingRecord]


class BillingStatsEnvelope(CamelModel):
     success: bool = True
     data: BillingStats


class BillingCheckSummary(CamelModel):
     checked_at: str
     store_available: bool
     tenants_checked: int
     tenants_failed: int
     invoices_marked_overdue: int
     invoices_created: int
     skipped: int


class BillingCheckEnvelope(CamelModel):
     success: bool = True
     data: BillingCheckSummary
