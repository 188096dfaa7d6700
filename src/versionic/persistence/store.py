"""
Thin data-access layer around the `records` and `snapshots` tables.
Everything crossing this boundary is a plain dict; the pydantic models
live in ``versionic.core``.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import Any, Dict, Iterator, List

from sqlalchemy import delete, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import DuplicateSnapshotNumber
from .models import RecordRow, SnapshotRow

logger = logging.getLogger(__name__)

SNAPSHOT_COLUMNS = (
    "id",
    "uuid",
    "owner_id",
    "owner_kind",
    "owner_uuid",
    "number",
    "created_at",
    "updated_at",
    "versioned_attributes",
)


def _snapshot_dict(row: SnapshotRow) -> Dict[str, Any]:
    return {name: getattr(row, name) for name in SNAPSHOT_COLUMNS}


class RecordStore:
    """Current state of every record, one row per record."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _new_session(self) -> Session:
        return Session(bind=self.engine)

    # ---- reads ---------------------------------------------------------
    def load(self, kind: str, rec_id: uuid.UUID) -> Dict[str, Any] | None:
        """Return the stored ``data`` of a record or None."""
        with self._new_session() as s:
            q = select(RecordRow.data).where(
                RecordRow.id == rec_id, RecordRow.kind == kind
            )
            row = s.execute(q).first()
            return dict(row.data) if row else None

    def ids(self, kind: str) -> List[uuid.UUID]:
        with self._new_session() as s:
            q = select(RecordRow.id).where(RecordRow.kind == kind)
            return [rid for (rid,) in s.execute(q)]

    # ---- writes --------------------------------------------------------
    def upsert(self, kind: str, rec_id: uuid.UUID, data: Dict[str, Any]) -> None:
        with self._new_session() as s, s.begin():
            row = s.get(RecordRow, rec_id)
            if row is None:
                s.add(RecordRow(id=rec_id, kind=kind, data=data))
            else:
                row.kind = kind
                row.data = data

    def delete(self, kind: str, rec_id: uuid.UUID) -> bool:
        """Remove a record together with all of its snapshots.

        Both deletes share one transaction: either both halves are gone
        afterwards or neither is.
        """
        with self._new_session() as s, s.begin():
            s.execute(
                delete(SnapshotRow).where(
                    SnapshotRow.owner_id == rec_id, SnapshotRow.owner_kind == kind
                )
            )
            result = s.execute(
                delete(RecordRow).where(RecordRow.id == rec_id, RecordRow.kind == kind)
            )
            removed = result.rowcount > 0
        logger.info("deleted %s %s with its snapshots", kind, rec_id)
        return removed


class SnapshotStore:
    """Past states of records, numbered per (owner id, owner kind)."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _new_session(self) -> Session:
        return Session(bind=self.engine)

    def _owned(self, owner_id: uuid.UUID, owner_kind: str):
        return select(SnapshotRow).where(
            SnapshotRow.owner_id == owner_id, SnapshotRow.owner_kind == owner_kind
        )

    # ---- reads ---------------------------------------------------------
    def find(
        self, owner_id: uuid.UUID, owner_kind: str, number: int
    ) -> Dict[str, Any] | None:
        with self._new_session() as s:
            q = self._owned(owner_id, owner_kind).where(SnapshotRow.number == number)
            row = s.execute(q).scalars().first()
            return _snapshot_dict(row) if row else None

    def find_by_uuid(self, snapshot_uuid: str) -> Dict[str, Any] | None:
        with self._new_session() as s:
            q = select(SnapshotRow).where(SnapshotRow.uuid == snapshot_uuid)
            row = s.execute(q).scalars().first()
            return _snapshot_dict(row) if row else None

    def latest(self, owner_id: uuid.UUID, owner_kind: str) -> Dict[str, Any] | None:
        """Highest-numbered snapshot of an owner."""
        with self._new_session() as s:
            q = (
                self._owned(owner_id, owner_kind)
                .order_by(SnapshotRow.number.desc())
                .limit(1)
            )
            row = s.execute(q).scalars().first()
            return _snapshot_dict(row) if row else None

    def latest_at(
        self, owner_id: uuid.UUID, owner_kind: str, at: dt.datetime
    ) -> Dict[str, Any] | None:
        """Newest snapshot created at or before ``at``; ties go to the higher number."""
        with self._new_session() as s:
            q = (
                self._owned(owner_id, owner_kind)
                .where(SnapshotRow.created_at <= at)
                .order_by(SnapshotRow.created_at.desc(), SnapshotRow.number.desc())
                .limit(1)
            )
            row = s.execute(q).scalars().first()
            return _snapshot_dict(row) if row else None

    def stream(self, owner_id: uuid.UUID, owner_kind: str) -> Iterator[Dict[str, Any]]:
        """Yield snapshots in insertion order."""
        with self._new_session() as s:
            q = self._owned(owner_id, owner_kind).order_by(SnapshotRow.id)
            rows = [_snapshot_dict(row) for row in s.execute(q).scalars()]
        yield from rows

    def count(self, owner_id: uuid.UUID, owner_kind: str) -> int:
        with self._new_session() as s:
            q = select(func.count()).where(
                SnapshotRow.owner_id == owner_id, SnapshotRow.owner_kind == owner_kind
            )
            return s.execute(q).scalar_one()

    # ---- writes --------------------------------------------------------
    def insert(self, values: Dict[str, Any]) -> int:
        """Insert a snapshot row and return its row id."""
        values = {k: v for k, v in values.items() if k != "id"}
        try:
            with self._new_session() as s, s.begin():
                row = SnapshotRow(**values)
                s.add(row)
                s.flush()
                row_id = row.id
        except IntegrityError as exc:
            raise DuplicateSnapshotNumber(
                f"snapshot {values.get('number')} of {values.get('owner_kind')} "
                f"{values.get('owner_id')} already exists"
            ) from exc
        return row_id

    def update(self, row_id: int, values: Dict[str, Any]) -> bool:
        values = {k: v for k, v in values.items() if k != "id"}
        try:
            with self._new_session() as s, s.begin():
                result = s.execute(
                    update(SnapshotRow).where(SnapshotRow.id == row_id).values(**values)
                )
                return result.rowcount > 0
        except IntegrityError as exc:
            raise DuplicateSnapshotNumber(
                f"snapshot {values.get('number')} of {values.get('owner_kind')} "
                f"{values.get('owner_id')} already exists"
            ) from exc

    def delete(self, row_id: int) -> bool:
        with self._new_session() as s, s.begin():
            result = s.execute(delete(SnapshotRow).where(SnapshotRow.id == row_id))
            return result.rowcount > 0

    def delete_for_owner(self, owner_id: uuid.UUID, owner_kind: str) -> int:
        with self._new_session() as s, s.begin():
            result = s.execute(
                delete(SnapshotRow).where(
                    SnapshotRow.owner_id == owner_id, SnapshotRow.owner_kind == owner_kind
                )
            )
            return result.rowcount
