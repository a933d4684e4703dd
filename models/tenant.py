from typing import Optional

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin


class Tenant(TimestampMixin, Base):
     """
     Tenant model - the client account that holds desks, offices and
     virtual-office slots. Invoices hang off a tenant.
     """
     __tablename__ = "tenants"

     tenant_id = Column(Integer, primary_key=True, autoincrement=True)

     # Profile
     first_name = Column(String(100), nullable=True)
     last_name = Column(String(100), nullable=True)
     company_name = Column(String(255), nullable=True)
     email = Column(String(255), nullable=True)
     contact_number = Column(String(50), nullable=True)

     # Relationships
     invoices = relationship("Invoice", back_populates="tenant", cascade="all, delete-orphan")

     def __repr__(self):
          return f"<Tenant(tenant_id={self.tenant_id}, name='{self.display_name}')>"

     @property
     def display_name(self) -> Optional[str]:
          """Full name, or None when either part is missing."""
          if self.first_name and self.last_name:
               return f"{self.first_name} {self.last_name}"
          return None
