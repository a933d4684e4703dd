from sqlalchemy import inspect
from sqlalchemy.orm import sessionmaker

from database import check_connection, create_db_engine, get_session_context
from models import Tenant


def test_init_db_creates_billing_tables(engine):
     tables = set(inspect(engine).get_table_names())

     assert {"tenants", "invoices"} <= tables


def test_check_connection(engine, tmp_path):
     broken = create_db_engine(f"sqlite:///{tmp_path / 'missing' / 'billing.sqlite3'}")
     try:
          assert check_connection(engine) is True
          assert check_connection(broken) is False
     finally:
          broken.dispose()


def test_nested_rollback_keeps_outer_work(session_factory):
     with session_factory() as session:
          session.add(Tenant(first_name="Kept"))
          session.flush()
          try:
               with session.begin_nested():
                    session.add(Tenant(first_name="Dropped"))
                    session.flush()
                    raise RuntimeError("undo the savepoint")
          except RuntimeError:
               pass

     with session_factory() as session:
          names = [t.first_name for t in session.query(Tenant).all()]

     assert names == ["Kept"]


def test_health_reports_connected_database(client):
     response = client.get("/health")

     assert response.status_code == 200
     assert response.json() == {"success": True, "database": "connected"}


def test_session_context_rolls_back_on_error(monkeypatch, session_factory, engine):
     import database

     monkeypatch.setattr(database, "SessionLocal", sessionmaker(bind=engine, expire_on_commit=False))

     try:
          with get_session_context() as session:
               session.add(Tenant(first_name="Ghost"))
               session.flush()
               raise ValueError("abort")
     except ValueError:
          pass

     with session_factory() as session:
          assert session.query(Tenant).count() == 0
