"""
Pytest fixtures for orderflow backend tests.

Provides a file-backed SQLite database (so competing sessions in other
threads see committed data), per-test table wipe, order factories, actor
headers, and a helper that injects a competing write between an operation's
read and its write.
"""

import threading
from datetime import datetime

import pytest

from orderflow import create_app
from orderflow.extensions import db
from orderflow.models import ModificationPolicy
from orderflow.services import order_service, order_store


T0 = datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    db_path = tmp_path_factory.mktemp("db") / "orderflow-test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CAS_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def policy(db_session):
    """Persist the stock policy (3 requests, 24h window, reason required)."""
    return order_store.write_policy_config(ModificationPolicy(), updated_by="test")


@pytest.fixture(scope='function')
def make_order(db_session, policy):
    """Factory: create an order at T0 (processing by default)."""
    def _make(*, user_id="buyer-1", status="processing", now=T0, payment_status=None, **kwargs):
        if payment_status is None:
            payment_status = "completed" if status != "pending" else "pending"
        order = order_service.create_order(
            user_id=user_id,
            items=kwargs.pop("items", [
                {"product_id": "sku-1", "product_name": "Kettle", "quantity": 2, "unit_price_cents": 1500},
                {"product_id": "sku-2", "product_name": "Mug", "quantity": 1, "unit_price_cents": 700},
            ]),
            shipping_cost_cents=kwargs.pop("shipping_cost_cents", 500),
            insurance_cost_cents=kwargs.pop("insurance_cost_cents", 0),
            payment_status=payment_status,
            now=now,
        )
        if status != order.status or kwargs:
            order.status = status
            for key, value in kwargs.items():
                setattr(order, key, value)
            db.session.commit()
        return order
    return _make


@pytest.fixture(scope='function')
def t0():
    return T0


@pytest.fixture(scope='function')
def buyer_headers():
    return {"X-User-Id": "buyer-1"}


@pytest.fixture(scope='function')
def other_buyer_headers():
    return {"X-User-Id": "buyer-2"}


@pytest.fixture(scope='function')
def staff_headers():
    return {"X-User-Id": "staff-1", "X-User-Role": "staff"}


def run_in_other_session(app, func):
    """
    Run func in a separate thread with its own app context (and therefore
    its own SQLAlchemy session) and wait for it. Returns func's result or
    re-raises its exception.
    """
    outcome = {}

    def worker():
        with app.app_context():
            try:
                outcome["result"] = func()
            except Exception as exc:  # surfaced to the caller below
                outcome["error"] = exc
            finally:
                db.session.remove()

    thread = threading.Thread(target=worker)
    thread.start()
    thread.join(timeout=30)
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result")


@pytest.fixture(scope='function')
def interleave(app, monkeypatch):
    """
    Arrange for `competitor` to commit right after the next read_order() in
    this session, i.e. between the operation's read and its write.

    Usage:
        interleave(lambda: arbitration_service.resolve_request(...))
    """
    state = {"pending": None, "ran": False, "result": None}
    real_read_order = order_store.read_order

    def patched_read_order(order_id, **kwargs):
        found = real_read_order(order_id, **kwargs)
        competitor = state["pending"]
        if competitor is not None and threading.current_thread() is threading.main_thread():
            state["pending"] = None
            state["result"] = run_in_other_session(app, competitor)
            state["ran"] = True
        return found

    monkeypatch.setattr(order_store, "read_order", patched_read_order)

    def _arm(competitor):
        state["pending"] = competitor
        return state

    return _arm
