"""Append-only audit trail of delivered records."""

from __future__ import annotations

import asyncio
import json
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import duckdb
from loguru import logger

from venrich.core.data import DISPATCH_AUDIT_TABLE, DuckDBFactory, DuckDBFactoryConfig
from venrich.core.exceptions import AuditError
from venrich.core.models import Ack, UnifiedRecord


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _naive_utc(value: datetime) -> datetime:
    """DuckDB TIMESTAMP columns hold naive UTC values."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class AuditSink(ABC):
    """Records each delivered record with its acknowledgement. Append-only."""

    @abstractmethod
    async def record(self, record: UnifiedRecord, ack: Ack) -> None:
        """Append an audit entry or raise :class:`AuditError`."""
        pass

    async def close(self) -> None:
        return None


class DuckDBAuditSink(AuditSink):
    """Audit sink backed by the ``dispatch_audit`` DuckDB table.

    Entries are only ever inserted. Writes run in a worker thread and are
    serialised on one connection.
    """

    def __init__(
        self,
        database: str = ":memory:",
        *,
        factory: DuckDBFactory | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._factory = factory or DuckDBFactory(DuckDBFactoryConfig(database=database))
        self._clock = clock
        self._lock = threading.Lock()
        try:
            self._conn = self._factory.create_connection()
            DISPATCH_AUDIT_TABLE.ensure(self._conn)
        except duckdb.Error as exc:
            raise AuditError(f"Cannot open audit database {self._factory.database}: {exc}") from exc
        self._closed = False

    @property
    def database(self) -> str:
        return self._factory.database

    def _row(self, record: UnifiedRecord, ack: Ack) -> list[Any]:
        return [
            uuid4().hex,
            record.identifier.isin,
            record.identifier.figi,
            record.source_id,
            record.product_category.value,
            record.idempotency_key,
            ack.endpoint,
            ack.reference,
            list(record.failed_attributes),
            json.dumps(record.to_payload(), default=str, sort_keys=True),
            _naive_utc(record.fetched_at),
            _naive_utc(ack.acknowledged_at),
            _naive_utc(self._clock()),
        ]

    def _insert(self, row: list[Any]) -> None:
        with self._lock:
            if self._closed:
                raise AuditError("Audit sink is closed")
            try:
                self._conn.execute(DISPATCH_AUDIT_TABLE.insert_sql(), row)
            except duckdb.Error as exc:
                raise AuditError(f"Failed to write audit entry: {exc}", details={"isin": row[1]}) from exc

    async def record(self, record: UnifiedRecord, ack: Ack) -> None:
        await asyncio.to_thread(self._insert, self._row(record, ack))
        logger.debug("Audit entry written", isin=record.identifier.isin, endpoint=ack.endpoint)

    def entries(self) -> list[dict[str, Any]]:
        """Return all audit entries in insertion order."""
        columns = DISPATCH_AUDIT_TABLE.column_names
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {', '.join(columns)} FROM {DISPATCH_AUDIT_TABLE.name} ORDER BY rowid"
            ).fetchall()
        entries = []
        for row in rows:
            entry = dict(zip(columns, row, strict=True))
            entry["record"] = json.loads(entry["record"])
            entry["failed_attributes"] = list(entry["failed_attributes"] or [])
            entries.append(entry)
        return entries

    def count(self) -> int:
        with self._lock:
            result = self._conn.execute(f"SELECT COUNT(*) FROM {DISPATCH_AUDIT_TABLE.name}").fetchone()
        return int(result[0]) if result else 0

    async def close(self) -> None:
        with self._lock:
            if not self._closed:
                self._conn.close()
                self._closed = True


__all__ = ["AuditSink", "DuckDBAuditSink"]
