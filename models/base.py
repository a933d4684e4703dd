from sqlalchemy import Column, DateTime, func
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
     """Declarative base for the billing tables."""


class TimestampMixin:
     """
     Row timestamps kept by the database.

     created_at is set on insert; updated_at stays NULL until the first
     update.
     """
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, onupdate=func.now(), nullable=True)
