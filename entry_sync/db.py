"""
Entry store abstraction for SQL databases and an in-memory test implementation.

Both implementations honor the same contract: documents are keyed by
(owner, client_id), an upsert replaces the whole document in one atomic
operation, and nothing can be read or written before `initialize()` ran.
"""

from __future__ import annotations

import copy
import logging
import math
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import (
    JSON,
    Column,
    Float,
    Index,
    String,
    UniqueConstraint,
    create_engine,
    delete,
    select,
)
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from entry_sync.errors import StoreUnavailable

logger = logging.getLogger(__name__)

STORAGE_ID_FIELD = "_id"

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class EntryStore(Protocol):
    """Operations the service needs from the persistent entry collection."""

    @property
    def ready(self) -> bool:
        ...

    def initialize(self) -> None:
        ...

    def find_by_owner(self, owner: str) -> list[dict]:
        ...

    def upsert(self, owner: str, client_id: str, document: dict) -> None:
        ...

    def delete(self, owner: str, client_id: str) -> int:
        ...

    def close(self) -> None:
        ...


def timestamp_sort_key(value: Any) -> Optional[float]:
    """
    Map an entry's `timestamp` to a float used only for ordering.

    Numbers are used as-is and ISO 8601 strings become epoch seconds (naive
    values are read as UTC). Anything else, including numbers with no finite
    float value, has no sort key and is listed after every timestamped entry.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.timestamp()
        except (ValueError, OverflowError):
            return None
    return None


class InMemoryEntryStore:
    """Lock-guarded in-memory store for development and tests."""

    def __init__(self):
        self._lock = threading.Lock()
        self._ready = False
        self.records: Dict[tuple[str, str], tuple[str, Optional[float], dict]] = {}
        self.operations = 0

    @property
    def ready(self) -> bool:
        return self._ready

    def initialize(self) -> None:
        self._ready = True

    def close(self) -> None:
        self._ready = False

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.records.clear()
            self.operations = 0

    def _require_ready(self) -> None:
        if not self._ready:
            raise StoreUnavailable()

    def find_by_owner(self, owner: str) -> list[dict]:
        self._require_ready()
        with self._lock:
            self.operations += 1
            rows = [
                (sort_key, storage_id, document)
                for (row_owner, _), (storage_id, sort_key, document) in self.records.items()
                if row_owner == owner
            ]
        rows.sort(key=lambda row: (row[0] is None, -(row[0] or 0.0)))
        return [
            {STORAGE_ID_FIELD: storage_id, **copy.deepcopy(document)}
            for _, storage_id, document in rows
        ]

    def upsert(self, owner: str, client_id: str, document: dict) -> None:
        self._require_ready()
        stored = copy.deepcopy(document)
        sort_key = timestamp_sort_key(stored.get("timestamp"))
        with self._lock:
            self.operations += 1
            existing = self.records.get((owner, client_id))
            storage_id = existing[0] if existing else uuid.uuid4().hex
            self.records[(owner, client_id)] = (storage_id, sort_key, stored)

    def delete(self, owner: str, client_id: str) -> int:
        self._require_ready()
        with self._lock:
            self.operations += 1
            removed = self.records.pop((owner, client_id), None)
        return 1 if removed else 0


class SqlEntryStore:
    """
    SQLAlchemy-backed implementation. Accepts Postgres URLs in production and
    SQLite URLs for tests; both dialects provide a native ON CONFLICT upsert.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlEntryStore")
        url = make_url(database_url)
        backend = url.get_backend_name()
        if backend not in _UPSERT_DIALECTS:
            raise ValueError(f"Unsupported database backend for entries: {backend}")
        self._insert = _UPSERT_DIALECTS[backend]

        engine_kwargs: dict[str, Any] = {"future": True, "pool_pre_ping": True}
        if backend == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:") or url.query.get("mode") == "memory":
                # Every connection to :memory: is a new database; share one.
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def initialize(self) -> None:
        """Create the entries table and its indexes. Must run before serving."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StoreUnavailable() from exc
        self._ready = True
        logger.info(
            "Entry store connected (%s) and indexes ensured",
            self.engine.dialect.name,
        )

    def close(self) -> None:
        self._ready = False
        self.engine.dispose()

    def _require_ready(self) -> None:
        if not self._ready:
            raise StoreUnavailable()

    def find_by_owner(self, owner: str) -> list[dict]:
        self._require_ready()
        stmt = (
            select(EntryRow.storage_id, EntryRow.document)
            .where(EntryRow.owner == owner)
            .order_by(EntryRow.sort_timestamp.desc().nulls_last())
        )
        try:
            with self.Session() as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StoreUnavailable() from exc
        return [
            {STORAGE_ID_FIELD: storage_id, **(document or {})}
            for storage_id, document in rows
        ]

    def upsert(self, owner: str, client_id: str, document: dict) -> None:
        self._require_ready()
        stmt = self._insert(EntryRow).values(
            storage_id=uuid.uuid4().hex,
            owner=owner,
            client_id=client_id,
            sort_timestamp=timestamp_sort_key(document.get("timestamp")),
            document=document,
        )
        # storage_id is left alone on conflict so the record keeps its identity.
        stmt = stmt.on_conflict_do_update(
            index_elements=["owner", "client_id"],
            set_={
                "sort_timestamp": stmt.excluded.sort_timestamp,
                "document": stmt.excluded.document,
            },
        )
        try:
            with self.Session() as session:
                session.execute(stmt)
                session.commit()
        except SQLAlchemyError as exc:
            raise StoreUnavailable() from exc

    def delete(self, owner: str, client_id: str) -> int:
        self._require_ready()
        stmt = delete(EntryRow).where(
            EntryRow.owner == owner, EntryRow.client_id == client_id
        )
        try:
            with self.Session() as session:
                result = session.execute(stmt)
                session.commit()
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            raise StoreUnavailable() from exc


Base = declarative_base()


class EntryRow(Base):
    __tablename__ = "entries"

    storage_id = Column(String, primary_key=True)
    owner = Column(String, nullable=False)
    client_id = Column(String, nullable=False)
    sort_timestamp = Column(Float, nullable=True)
    document = Column(JSON, nullable=False)

    __table_args__ = (
        UniqueConstraint("owner", "client_id", name="uq_entries_owner_client_id"),
        Index("ix_entries_owner_timestamp", owner, sort_timestamp.desc()),
    )
