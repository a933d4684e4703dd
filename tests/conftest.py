"""
Pytest fixtures for the billing backend tests.

Every test gets its own SQLite database file, a session factory bound to
it, and helpers to seed tenants and invoices. Seeding and assertions use
short-lived sessions so no transaction is held open while the code under
test writes.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BILLING_SCHEDULER_ENABLED", "false")

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from database import create_db_engine, get_session, init_db
from models import Invoice, InvoiceStatus, Tenant
from services.billing_scheduler import BillingScheduler
from services.invoice_store import InvoiceStore, build_cycle_key
from services.recurring_billing_service import check_and_create_new_bills


@pytest.fixture
def engine(tmp_path):
     engine = create_db_engine(f"sqlite:///{tmp_path / 'billing.sqlite3'}")
     init_db(engine)
     yield engine
     engine.dispose()


@pytest.fixture
def session_factory(engine):
     TestingSession = sessionmaker(
          bind=engine,
          autocommit=False,
          autoflush=False,
          expire_on_commit=False,
     )

     @contextmanager
     def factory():
          session = TestingSession()
          try:
               yield session
               session.commit()
          except Exception:
               session.rollback()
               raise
          finally:
               session.close()

     return factory


@pytest.fixture
def make_tenant(session_factory):
     def _make(**fields) -> int:
          values = {
               "first_name": "Ana",
               "last_name": "Reyes",
               "company_name": "Reyes Studio",
               "email": "ana@example.com",
               "contact_number": "09171234567",
          }
          values.update(fields)
          with session_factory() as session:
               tenant = Tenant(**values)
               session.add(tenant)
               session.flush()
               return tenant.tenant_id

     return _make


@pytest.fixture
def make_invoice(session_factory):
     def _make(tenant_id: int, **fields) -> int:
          values = {
               "assigned_resource": "A12",
               "service_type": "Dedicated Desk",
               "client_name": "Ana Reyes",
               "company_name": "Reyes Studio",
               "email": "ana@example.com",
               "contact_number": "09171234567",
               "amount": Decimal("5000.00"),
               "cusa_fee": Decimal("500.00"),
               "parking_fee": Decimal("0"),
               "late_fee": Decimal("0"),
               "damage_fee": Decimal("0"),
               "fee_period": "Monthly",
               "status": InvoiceStatus.UNPAID,
               "start_date": datetime(2024, 1, 1),
               "due_date": datetime(2024, 1, 31),
          }
          values.update(fields)
          if "cycle_key" not in values:
               values["cycle_key"] = build_cycle_key(
                    tenant_id, values.get("assigned_resource") or "Unknown", values.get("start_date")
               )
          with session_factory() as session:
               invoice = Invoice(tenant_id=tenant_id, **values)
               session.add(invoice)
               session.flush()
               return invoice.id

     return _make


@pytest.fixture
def fetch_invoices(session_factory):
     """Newest-first invoices of a tenant, loaded in a fresh session."""
     def _fetch(tenant_id: int):
          with session_factory() as session:
               return InvoiceStore(session).list_invoices(tenant_id)

     return _fetch


@pytest.fixture
def run_check(session_factory):
     def _run(now: datetime) -> dict:
          return check_and_create_new_bills(now=now, session_factory=session_factory)

     return _run


@pytest.fixture
def client(session_factory):
     from main import app
     from routers.billing import get_billing_scheduler

     def override_get_session():
          with session_factory() as session:
               yield session

     scheduler = BillingScheduler(
          interval_seconds=60,
          check=lambda: check_and_create_new_bills(session_factory=session_factory),
     )
     app.dependency_overrides[get_session] = override_get_session
     app.dependency_overrides[get_billing_scheduler] = lambda: scheduler
     yield TestClient(app)
     app.dependency_overrides.clear()
