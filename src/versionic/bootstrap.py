"""
Single entry-point that wires SQLAlchemy into versionic.
Call once at application start-up, before touching any Record.
"""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from .config import VersionicSettings
from .core.record import Record
from .core.snapshot import Snapshot
from .persistence.models import Base
from .persistence.store import RecordStore, SnapshotStore

logger = logging.getLogger(__name__)


def init_versionic(engine: Engine) -> None:
    """
    Create the tables and inject the stores into Record (inherited by every
    subclass) and Snapshot.
    """
    Base.metadata.create_all(engine)  # ← this line creates tables
    Record._store = RecordStore(engine)
    Snapshot._store = SnapshotStore(engine)
    logger.debug("versionic bound to %s", engine.url)


def init_from_env(settings: VersionicSettings | None = None) -> Engine:
    """Build the engine from settings (environment by default) and wire it."""
    settings = settings or VersionicSettings.from_env()
    logging.getLogger("versionic").setLevel(settings.log_level)
    engine = create_engine(settings.database_url, echo=settings.echo_sql, pool_pre_ping=True)
    init_versionic(engine)
    return engine
