"""
Pytest fixtures for ReUSE Store backend tests.

Provides an in-memory database, a test client, and a factory for checkout
sessions with items in chosen verification states.
"""

from contextlib import contextmanager
from datetime import datetime, timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from reuse_store import create_app
from reuse_store.extensions import db
from reuse_store.models import Checkout, Fridge, Item


# Fixed reference time for window arithmetic
NOW = datetime(2026, 3, 15, 12, 0, 0)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'APPROVED_WINDOW_DAYS': 30,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_checkout(db_session):
    """
    Factory for a checkout session with one item per entry in `statuses`.

    Approved/flagged items get verified_at = `verified_at` (default NOW)
    and the matching flagged mirror.
    """
    def _make(
        statuses=("pending",),
        *,
        needs_approval=True,
        year_range="2025-2026",
        date=None,
        owner_name="Test Donor",
        email="donor@haverford.edu",
        verified_at=None,
        item_names=None,
    ):
        checkout = Checkout(
            year_range=year_range,
            date=date or NOW,
            owner_name=owner_name,
            email=email,
            housing_assignment="Lloyd 201",
            graduation_year="2026",
            needs_approval=needs_approval,
        )
        for index, status in enumerate(statuses):
            name = item_names[index] if item_names else f"Item {index + 1}"
            checkout.items.append(Item(
                year_range=year_range,
                item_name=name,
                item_quantity=1,
                verification_status=status,
                flagged=status == "flagged",
                verified_at=(verified_at or NOW) if status != "pending" else None,
            ))
        db_session.add(checkout)
        db_session.commit()
        return checkout

    return _make


@pytest.fixture(scope='function')
def make_fridge(db_session):
    """Factory for a fridge with the next free number."""
    def _make(*, status="available", has_freezer=False, condition="Good"):
        number = str(db_session.query(Fridge).count() + 1)
        fridge = Fridge(
            fridge_number=number,
            has_freezer=has_freezer,
            brand="Frigidaire",
            size="3.2 cu ft",
            condition=condition,
            status=status,
        )
        db_session.add(fridge)
        db_session.commit()
        return fridge

    return _make


def days_ago(days: int) -> datetime:
    return NOW - timedelta(days=days)


@contextmanager
def failing_statements(prefix: str, *, start_at: int = 1):
    """
    Make the database reject SQL starting with `prefix`.

    Statements before the `start_at`-th match run normally, so earlier
    writes of the same transaction really reach the database. Yields the
    list of matching statements seen.
    """
    seen = []

    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith(prefix.upper()):
            seen.append(statement)
            if len(seen) >= start_at:
                raise OperationalError(statement, parameters, Exception("database is locked"))

    event.listen(db.engine, "before_cursor_execute", _before_cursor_execute)
    try:
        yield seen
    finally:
        event.remove(db.engine, "before_cursor_execute", _before_cursor_execute)
