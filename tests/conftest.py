"""Test fixtures for versionic.

Provides:
- engine: an in-memory SQLite engine shared by every session of a test
- versionic_store (autouse): tables created and stores injected per test
- frozen_clock: controls ``versionic.core.clock.now_utc``
- book, book_with_two_versions, book_with_three_versions: saved Books
  (record types live in tests/records.py)
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from tests.records import Book
from versionic import Record, Snapshot, init_versionic
from versionic.core import clock


class FrozenClock:
    """Replacement for ``clock.now_utc`` that only moves when told to."""

    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc)

    def set(self, value: str) -> datetime:
        """Move to an ISO time string (naive means UTC) and return it."""
        self.now = clock.as_utc(datetime.fromisoformat(value))
        return self.now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def engine() -> Engine:
    """Create an in-memory SQLite engine.

    Returns:
        Engine whose connections all share one in-memory database.
    """
    return create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest.fixture(autouse=True)
def versionic_store(engine: Engine):
    """Wire versionic to a fresh database for every test."""
    init_versionic(engine)
    yield
    Record._store = None
    Snapshot._store = None
    engine.dispose()


@pytest.fixture()
def frozen_clock(monkeypatch: pytest.MonkeyPatch) -> FrozenClock:
    """Freeze versionic's notion of now.

    Returns:
        FrozenClock; call ``set("2011-07-01 01:00")`` to move it.
    """
    frozen = FrozenClock()
    monkeypatch.setattr(clock, "now_utc", frozen)
    return frozen


@pytest.fixture()
def book_attributes() -> dict[str, str]:
    return {"title": "title 1", "text": "text 1"}


@pytest.fixture()
def book(book_attributes: dict[str, str]) -> Book:
    """A saved Book with a single version."""
    return Book.create(**book_attributes)


@pytest.fixture()
def book_with_two_versions(book: Book) -> Book:
    book.update(title="title 2", text="text 2")
    return book


@pytest.fixture()
def book_with_three_versions(book_with_two_versions: Book) -> Book:
    book_with_two_versions.update(title="title 3", text="text 3")
    return book_with_two_versions
