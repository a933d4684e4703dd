from datetime import datetime
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import get_session
from models import InvoiceStatus

BASE = "/api/admin/billing"


def test_create_first_bill_defaults_due_date_from_period(client, make_tenant):
     tenant_id = make_tenant()

     response = client.post(
          f"{BASE}/{tenant_id}",
          json={
               "assignedResource": "A12",
               "amount": 5000,
               "cusaFee": 500,
               "startDate": "2024-01-01T00:00:00",
          },
     )

     assert response.status_code == 201
     body = response.json()
     assert body["success"] is True
     bill = body["data"]
     assert bill["userId"] == tenant_id
     assert bill["feePeriod"] == "Monthly"
     assert bill["status"] == "unpaid"
     assert bill["dueDate"] == "2024-01-31T00:00:00"
     assert bill["clientName"] == "Ana Reyes"
     assert bill["totalAmount"] == 5500.0


def test_create_bill_for_unknown_tenant_is_404(client):
     response = client.post(f"{BASE}/999", json={"assignedResource": "A12"})

     assert response.status_code == 404
     body = response.json()
     assert body["success"] is False
     assert body["error"] == "Not Found"
     assert "999" in body["message"]


def test_create_bill_twice_for_same_cycle_is_409(client, make_tenant):
     tenant_id = make_tenant()
     payload = {"assignedResource": "A12", "startDate": "2024-01-01T00:00:00"}

     assert client.post(f"{BASE}/{tenant_id}", json=payload).status_code == 201
     response = client.post(f"{BASE}/{tenant_id}", json=payload)

     assert response.status_code == 409
     assert response.json()["success"] is False


def test_create_bill_rejects_unknown_fee_period(client, make_tenant):
     tenant_id = make_tenant()

     response = client.post(f"{BASE}/{tenant_id}", json={"assignedResource": "A12", "feePeriod": "Weekly"})

     assert response.status_code == 400
     assert "Weekly" in response.json()["message"]


def test_create_bill_rejects_due_date_before_start(client, make_tenant):
     tenant_id = make_tenant()

     response = client.post(
          f"{BASE}/{tenant_id}",
          json={
               "assignedResource": "A12",
               "startDate": "2024-02-01T00:00:00",
               "dueDate": "2024-01-01T00:00:00",
          },
     )

     assert response.status_code == 400


def test_create_bill_validates_amounts(client, make_tenant):
     tenant_id = make_tenant()

     response = client.post(f"{BASE}/{tenant_id}", json={"assignedResource": "A12", "amount": -1})

     assert response.status_code == 422
     body = response.json()
     assert body["success"] is False
     assert "amount" in body["message"]


def test_all_shows_one_record_per_resource_with_priority_status(client, make_tenant, make_invoice):
     tenant_id = make_tenant()
     make_invoice(
          tenant_id,
          status=InvoiceStatus.OVERDUE,
          start_date=datetime(2023, 12, 1),
          due_date=datetime(2023, 12, 31),
          created_at=datetime(2023, 12, 1),
     )
     make_invoice(tenant_id, created_at=datetime(2024, 1, 1))
     make_invoice(tenant_id, assigned_resource="Office 3", status=InvoiceStatus.PAID)

     response = client.get(f"{BASE}/all")

     assert response.status_code == 200
     records = {record["assignedResource"]: record for record in response.json()["data"]}
     assert set(records) == {"A12", "Office 3"}
     assert records["A12"]["status"] == "overdue"
     assert records["A12"]["dueDate"] == "2023-12-31T00:00:00"
     assert records["A12"]["allBillsPaid"] is False
     assert records["Office 3"]["status"] == "paid"
     assert records["Office 3"]["allBillsPaid"] is True
     assert records["Office 3"]["name"] == "Ana Reyes"


def test_stats_sum_paid_and_outstanding_fees(client, make_tenant, make_invoice):
     tenant_id = make_tenant()
     make_invoice(tenant_id, status=InvoiceStatus.PAID, late_fee=Decimal("100"), start_date=datetime(2023, 12, 1))
     make_invoice(tenant_id, status=InvoiceStatus.OVERDUE, start_date=datetime(2024, 1, 1))
     make_invoice(tenant_id, status=InvoiceStatus.UNPAID, start_date=datetime(2024, 2, 1))

     response = client.get(f"{BASE}/stats")

     assert response.status_code == 200
     stats = response.json()["data"]
     assert stats == {
          "totalBills": 3,
          "totalRevenue": 5600.0,
          "paidCount": 1,
          "unpaidAmount": 11000.0,
          "overdueCount": 1,
          "byServiceType": {"privateOffice": 0, "virtualOffice": 0, "dedicatedDesk": 3, "unknown": 0},
     }


def test_stats_count_bills_by_service_type(client, make_tenant, make_invoice):
     tenant_id = make_tenant()
     make_invoice(tenant_id, service_type="Dedicated Desk", start_date=datetime(2024, 1, 1))
     make_invoice(tenant_id, service_type="Dedicated Desk", start_date=datetime(2024, 2, 1))
     make_invoice(tenant_id, assigned_resource="Office 3", service_type="Private Office")
     make_invoice(tenant_id, assigned_resource="VO-1", service_type=None)

     response = client.get(f"{BASE}/stats")

     stats = response.json()["data"]
     assert stats["totalBills"] == 4
     assert stats["byServiceType"] == {
          "privateOffice": 1,
          "virtualOffice": 0,
          "dedicatedDesk": 2,
          "unknown": 1,
     }


def test_user_bills_newest_first_and_filtered_by_resource(client, make_tenant, make_invoice):
     tenant_id = make_tenant()
     older = make_invoice(tenant_id, created_at=datetime(2024, 1, 1))
     newer = make_invoice(tenant_id, start_date=datetime(2024, 2, 1), created_at=datetime(2024, 2, 1))
     office = make_invoice(tenant_id, assigned_resource="Office 3", created_at=datetime(2024, 1, 15))

     everything = client.get(f"{BASE}/user/{tenant_id}/bills").json()["data"]
     desk_only = client.get(f"{BASE}/user/{tenant_id}/bills", params={"assignedResource": "A12"}).json()["data"]

     assert [bill["billId"] for bill in everything] == [newer, office, older]
     assert [bill["billId"] for bill in desk_only] == [newer, older]


def test_user_bills_for_unknown_tenant_is_404(client):
     response = client.get(f"{BASE}/user/42/bills")

     assert response.status_code == 404


def test_update_bill_changes_only_given_fields(client, make_tenant, make_invoice):
     tenant_id = make_tenant()
     bill_id = make_invoice(tenant_id)

     response = client.put(
          f"{BASE}/{tenant_id}/{bill_id}/update",
          json={"amount": 5500, "feePeriod": "Quarterly", "dueDate": "2024-04-01T00:00:00.000Z"},
     )

     assert response.status_code == 200
     bill = response.json()["data"]
     assert bill["amount"] == 5500.0
     assert bill["cusaFee"] == 500.0
     assert bill["feePeriod"] == "Quarterly"
     assert bill["dueDate"] == "2024-04-01T00:00:00"


def test_update_bill_rejects_unreadable_due_date(client, make_tenant, make_invoice, fetch_invoices):
     tenant_id = make_tenant()
     bill_id = make_invoice(tenant_id)

     response = client.put(f"{BASE}/{tenant_id}/{bill_id}/update", json={"amount": 1, "dueDate": "next tuesday"})

     assert response.status_code == 400
     assert response.json()["error"] == "Bad Request"
     (bill,) = fetch_invoices(tenant_id)
     assert bill.amount == Decimal("5000.00")


def test_update_bill_rejects_due_date_before_start(client, make_tenant, make_invoice, fetch_invoices):
     tenant_id = make_tenant()
     bill_id = make_invoice(tenant_id, start_date=datetime(2024, 1, 1), due_date=datetime(2024, 1, 31))

     response = client.put(f"{BASE}/{tenant_id}/{bill_id}/update", json={"dueDate": "2023-06-01T00:00:00"})

     assert response.status_code == 400
     assert response.json()["message"] == "dueDate must be after startDate"
     (bill,) = fetch_invoices(tenant_id)
     assert bill.due_date == datetime(2024, 1, 31)


def test_update_bill_rejects_due_date_equal_to_start(client, make_tenant, make_invoice):
     tenant_id = make_tenant()
     bill_id = make_invoice(tenant_id, start_date=datetime(2024, 1, 1))

     response = client.put(f"{BASE}/{tenant_id}/{bill_id}/update", json={"dueDate": "2024-01-01T00:00:00"})

     assert response.status_code == 400


def test_update_missing_bill_is_404(client, make_tenant):
     tenant_id = make_tenant()

     response = client.put(f"{BASE}/{tenant_id}/12345/update", json={"amount": 1})

     assert response.status_code == 404


def test_record_payment_marks_paid_with_fees(client, make_tenant, make_invoice, fetch_invoices):
     tenant_id = make_tenant()
     bill_id = make_invoice(tenant_id, status=InvoiceStatus.OVERDUE)

     response = client.post(
          f"{BASE}/{tenant_id}/{bill_id}/record-payment",
          json={"lateFee": 250, "damageFee": 0},
     )

     assert response.status_code == 200
     bill = response.json()["data"]
     assert bill["status"] == "paid"
     assert bill["lateFee"] == 250.0
     assert bill["paidAt"] is not None
     (stored,) = fetch_invoices(tenant_id)
     assert stored.status == InvoiceStatus.PAID
     assert stored.paid_at is not None


def test_run_check_returns_the_summary(client, make_tenant, make_invoice, fetch_invoices):
     tenant_id = make_tenant()
     make_invoice(tenant_id)

     response = client.post(f"{BASE}/run-check")

     assert response.status_code == 200
     summary = response.json()["data"]
     assert summary["storeAvailable"] is True
     assert summary["tenantsChecked"] == 1
     assert summary["invoicesCreated"] == 1
     assert summary["invoicesMarkedOverdue"] == 1
     assert len(fetch_invoices(tenant_id)) == 2


def test_unknown_route_uses_error_envelope(client):
     response = client.get("/api/admin/nothing-here")

     assert response.status_code == 404
     assert response.json() == {"success": False, "error": "Not Found", "message": "Route not found"}


def test_unreachable_database_is_503(client, tmp_path):
     from main import app

     engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'billing.sqlite3'}")
     factory = sessionmaker(bind=engine)

     def broken_session():
          session = factory()
          try:
               yield session
          finally:
               session.close()

     app.dependency_overrides[get_session] = broken_session
     try:
          response = client.get(f"{BASE}/all")
     finally:
          engine.dispose()

     assert response.status_code == 503
     body = response.json()
     assert body["success"] is False
     assert body["error"] == "Service Unavailable"
