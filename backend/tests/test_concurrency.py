"""
Concurrency tests.

Runs real threads against a file-backed SQLite database (an in-memory
database is a single shared connection, which would serialize everything
and prove nothing).

Verifies:
- Two simultaneous adjust_stock(-5) on stock 8: exactly one wins
- Two simultaneous sales for the last units: exactly one is recorded
- Concurrent commit_increment calls never hand out the same number
- run_with_retry turns persistent storage errors into StorageFault
"""

import threading

import pytest
from sqlalchemy.exc import OperationalError

from conftest import totals_for

from attar_pos import create_app
from attar_pos.errors import InsufficientStockError, StorageFault
from attar_pos.extensions import db
from attar_pos.models import InventoryItem, Sale
from attar_pos.services import inventory_service, invoice_service, sales_service
from attar_pos.services.concurrency import run_with_retry


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {"connect_args": {"timeout": 15, "check_same_thread": False}},
        'STORAGE_RETRY_ATTEMPTS': 5,
        'STORAGE_RETRY_BACKOFF': 0.01,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def _create_item(app, stock):
    with app.app_context():
        item = InventoryItem(name="Rose Attar", type="Attar", price=500, stock=stock)
        db.session.add(item)
        db.session.commit()
        return item.id


def _run_concurrently(app, func, count=2):
    """Start count threads at the same moment; collect results or exceptions."""
    barrier = threading.Barrier(count)
    outcomes = [None] * count

    def worker(index):
        with app.app_context():
            barrier.wait()
            try:
                outcomes[index] = ("ok", func())
            except Exception as exc:  # collected for assertions
                outcomes[index] = ("error", exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


def test_concurrent_decrements_exactly_one_wins(file_app):
    item_id = _create_item(file_app, stock=8)

    outcomes = _run_concurrently(file_app, lambda: inventory_service.adjust_stock(item_id, -5).stock)

    successes = [value for status, value in outcomes if status == "ok"]
    failures = [value for status, value in outcomes if status == "error"]
    assert successes == [3]
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStockError)

    with file_app.app_context():
        assert db.session.get(InventoryItem, item_id).stock == 3


def test_concurrent_sales_cannot_oversell(file_app):
    item_id = _create_item(file_app, stock=8)

    def sell():
        lines = [{"item_id": item_id, "name": "Rose Attar", "qty": 5, "rate": 500, "amount": 2500}]
        return sales_service.record_sale(items=lines, totals=totals_for(lines), username="cashier").invoice_number

    outcomes = _run_concurrently(file_app, sell)

    statuses = sorted(status for status, _ in outcomes)
    assert statuses == ["error", "ok"]
    error = next(value for status, value in outcomes if status == "error")
    assert isinstance(error, InsufficientStockError)

    with file_app.app_context():
        assert db.session.get(InventoryItem, item_id).stock == 3
        assert db.session.query(Sale).count() == 1


def test_concurrent_increments_are_unique(file_app):
    outcomes = _run_concurrently(file_app, lambda: invoice_service.commit_increment(2031), count=5)

    values = [value for status, value in outcomes if status == "ok"]
    assert [status for status, _ in outcomes] == ["ok"] * 5
    assert sorted(values) == [1, 2, 3, 4, 5]


class TestRunWithRetry:

    def test_persistent_failure_becomes_storage_fault(self, app, db_session):
        calls = []

        def _always_locked():
            calls.append(1)
            raise OperationalError("UPDATE inventory_items", {}, Exception("database is locked"))

        with pytest.raises(StorageFault) as exc:
            run_with_retry(_always_locked, attempts=3, backoff_base=0)

        assert len(calls) == 3
        assert exc.value.retryable is True
        assert exc.value.status_code == 503

    def test_transient_failure_is_retried(self, app, db_session):
        calls = []

        def _flaky():
            calls.append(1)
            if len(calls) < 2:
                raise OperationalError("UPDATE inventory_items", {}, Exception("database is locked"))
            return "done"

        assert run_with_retry(_flaky, attempts=3, backoff_base=0) == "done"
        assert len(calls) == 2

    def test_business_errors_are_not_retried(self, app, db_session):
        calls = []

        def _short():
            calls.append(1)
            raise InsufficientStockError("Insufficient stock")

        with pytest.raises(InsufficientStockError):
            run_with_retry(_short, attempts=3, backoff_base=0)
        assert len(calls) == 1
