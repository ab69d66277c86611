"""
Ordered key-value storage engine with named partitions.

Each partition is an independent keyspace supporting get / put / delete /
prefix scan in key order. A WriteBatch collects puts and deletes across
partitions and is committed all-or-nothing.

SQLite implementation: one table per partition (key TEXT PRIMARY KEY, value
BLOB), one connection per operation, WAL journal. Keys compare with BINARY
collation, i.e. by UTF-8 bytes, which matches Python str ordering.
"""

from __future__ import annotations

import re
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from gitcircles.core.exceptions import StorageError
from gitcircles.gitcircles_logging import get_logger

logger = get_logger(__name__)

_PARTITION_NAME_RE = re.compile(r"^[a-z_]+$")
_MAX_CODE_POINT = 0x10FFFF


def _prefix_upper_bound(prefix: str) -> str | None:
    """Smallest string greater than every string starting with prefix; None if unbounded."""
    trimmed = prefix
    while trimmed and ord(trimmed[-1]) == _MAX_CODE_POINT:
        trimmed = trimmed[:-1]
    if not trimmed:
        return None
    return trimmed[:-1] + chr(ord(trimmed[-1]) + 1)


@dataclass(frozen=True)
class BatchOperation:
    partition: str
    key: str
    value: bytes | None
    """None means delete."""


class WriteBatch:
    """Pending writes across partitions; applied by StorageEngine.commit() as one unit."""

    def __init__(self) -> None:
        self._operations: list[BatchOperation] = []

    def put(self, partition: "Partition | str", key: str, value: bytes) -> None:
        self._operations.append(BatchOperation(_partition_name(partition), key, bytes(value)))

    def delete(self, partition: "Partition | str", key: str) -> None:
        self._operations.append(BatchOperation(_partition_name(partition), key, None))

    @property
    def operations(self) -> tuple[BatchOperation, ...]:
        return tuple(self._operations)

    def __len__(self) -> int:
        return len(self._operations)


# -----------------------------------------------------------------------------
# Abstract engine: swap implementation without touching Database.
# -----------------------------------------------------------------------------


class StorageEngine(ABC):
    """Abstract ordered key-value store with partitions and atomic batches."""

    @abstractmethod
    def open_partition(self, name: str) -> None:
        """Create the partition if it does not exist."""
        ...

    @abstractmethod
    def get(self, partition: str, key: str) -> bytes | None:
        ...

    @abstractmethod
    def put(self, partition: str, key: str, value: bytes) -> None:
        """Insert or overwrite; durable when this returns."""
        ...

    @abstractmethod
    def delete(self, partition: str, key: str) -> None:
        ...

    @abstractmethod
    def contains(self, partition: str, key: str) -> bool:
        ...

    @abstractmethod
    def scan_prefix(self, partition: str, prefix: str) -> list[tuple[str, bytes]]:
        """All (key, value) pairs whose key starts with prefix, ascending by key."""
        ...

    @abstractmethod
    def commit(self, batch: WriteBatch) -> None:
        """Apply every operation in batch, or none of them."""
        ...

    def partition(self, name: str) -> "Partition":
        """Open (if needed) and return a handle for partition name."""
        self.open_partition(name)
        return Partition(self, name)

    def batch(self) -> WriteBatch:
        return WriteBatch()


class Partition:
    """Handle bound to one partition of an engine; shared by every caller."""

    def __init__(self, engine: StorageEngine, name: str) -> None:
        self.engine = engine
        self.name = name

    def get(self, key: str) -> bytes | None:
        return self.engine.get(self.name, key)

    def put(self, key: str, value: bytes) -> None:
        self.engine.put(self.name, key, value)

    def delete(self, key: str) -> None:
        self.engine.delete(self.name, key)

    def contains(self, key: str) -> bool:
        return self.engine.contains(self.name, key)

    def scan_prefix(self, prefix: str) -> list[tuple[str, bytes]]:
        return self.engine.scan_prefix(self.name, prefix)

    def __repr__(self) -> str:
        return f"Partition({self.name!r})"


def _partition_name(partition: Partition | str) -> str:
    return partition.name if isinstance(partition, Partition) else partition


# -----------------------------------------------------------------------------
# SQLite engine
# -----------------------------------------------------------------------------


class SQLiteEngine(StorageEngine):
    """SQLite implementation; single file, one connection per operation."""

    def __init__(
        self,
        path: str | Path,
        *,
        timeout_sec: float = 5.0,
        synchronous: str = "FULL",
    ) -> None:
        self._path = Path(path)
        self._timeout_sec = timeout_sec
        self._synchronous = synchronous
        self._opened: set[str] = set()

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._path), timeout=self._timeout_sec)
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute(f"PRAGMA synchronous = {self._synchronous}")
        return conn

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        conn = self._connect()
        try:
            cur = conn.cursor()
            yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _table(partition: str) -> str:
        if not _PARTITION_NAME_RE.match(partition):
            raise StorageError("invalid partition name", partition=partition)
        return f"kv_{partition}"

    def open_partition(self, name: str) -> None:
        table = self._table(name)
        if name in self._opened:
            return
        try:
            with self._cursor() as cur:
                cur.execute(
                    f"CREATE TABLE IF NOT EXISTS {table} ("
                    "key TEXT PRIMARY KEY, value BLOB NOT NULL) WITHOUT ROWID"
                )
        except sqlite3.Error as e:
            raise StorageError(f"cannot open partition: {e}", partition=name) from e
        self._opened.add(name)
        logger.debug("storage_partition_opened", partition=name, path=str(self._path))

    def get(self, partition: str, key: str) -> bytes | None:
        table = self._table(partition)
        try:
            with self._cursor() as cur:
                cur.execute(f"SELECT value FROM {table} WHERE key = ?", (key,))
                row = cur.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"get failed: {e}", partition=partition, key=key) from e
        return bytes(row[0]) if row is not None else None

    def put(self, partition: str, key: str, value: bytes) -> None:
        table = self._table(partition)
        try:
            with self._cursor() as cur:
                cur.execute(
                    f"INSERT OR REPLACE INTO {table} (key, value) VALUES (?, ?)",
                    (key, sqlite3.Binary(value)),
                )
        except sqlite3.Error as e:
            raise StorageError(f"put failed: {e}", partition=partition, key=key) from e

    def delete(self, partition: str, key: str) -> None:
        table = self._table(partition)
        try:
            with self._cursor() as cur:
                cur.execute(f"DELETE FROM {table} WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StorageError(f"delete failed: {e}", partition=partition, key=key) from e

    def contains(self, partition: str, key: str) -> bool:
        table = self._table(partition)
        try:
            with self._cursor() as cur:
                cur.execute(f"SELECT 1 FROM {table} WHERE key = ?", (key,))
                return cur.fetchone() is not None
        except sqlite3.Error as e:
            raise StorageError(f"contains failed: {e}", partition=partition, key=key) from e

    def scan_prefix(self, partition: str, prefix: str) -> list[tuple[str, bytes]]:
        table = self._table(partition)
        upper = _prefix_upper_bound(prefix)
        sql = f"SELECT key, value FROM {table} WHERE key >= ?"
        params: list[str] = [prefix]
        if upper is not None:
            sql += " AND key < ?"
            params.append(upper)
        sql += " ORDER BY key"
        try:
            with self._cursor() as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"prefix scan failed: {e}", partition=partition, key=prefix) from e
        return [(row[0], bytes(row[1])) for row in rows]

    def _apply_operation(self, cur: sqlite3.Cursor, op: BatchOperation) -> None:
        table = self._table(op.partition)
        if op.value is None:
            cur.execute(f"DELETE FROM {table} WHERE key = ?", (op.key,))
        else:
            cur.execute(
                f"INSERT OR REPLACE INTO {table} (key, value) VALUES (?, ?)",
                (op.key, sqlite3.Binary(op.value)),
            )

    def commit(self, batch: WriteBatch) -> None:
        operations = batch.operations
        if not operations:
            return
        current: BatchOperation | None = None
        try:
            with self._cursor() as cur:
                for op in operations:
                    current = op
                    self._apply_operation(cur, op)
        except sqlite3.Error as e:
            logger.error(
                "storage_batch_failed",
                operations=len(operations),
                partition=current.partition if current else None,
                error=str(e),
            )
            raise StorageError(
                f"batch commit failed, nothing applied: {e}",
                partition=current.partition if current else None,
                key=current.key if current else None,
            ) from e
        logger.debug("storage_batch_committed", operations=len(operations))
