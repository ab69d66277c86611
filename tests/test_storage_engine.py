"""
Tests for the SQLite key-value engine: partitions, prefix scans, atomic batches.
"""

from __future__ import annotations

import sqlite3

import pytest

from gitcircles.core.exceptions import StorageError
from gitcircles.database.engine import SQLiteEngine, _prefix_upper_bound


@pytest.fixture
def engine(tmp_path):
    eng = SQLiteEngine(tmp_path / "kv.db")
    eng.open_partition("alpha")
    eng.open_partition("beta")
    return eng


def test_put_get_delete_contains(engine):
    assert engine.get("alpha", "k") is None
    assert engine.contains("alpha", "k") is False
    engine.put("alpha", "k", b"v1")
    assert engine.get("alpha", "k") == b"v1"
    assert engine.contains("alpha", "k") is True
    engine.put("alpha", "k", b"v2")
    assert engine.get("alpha", "k") == b"v2"
    engine.delete("alpha", "k")
    assert engine.get("alpha", "k") is None


def test_partitions_are_independent(engine):
    engine.put("alpha", "k", b"a")
    engine.put("beta", "k", b"b")
    assert engine.get("alpha", "k") == b"a"
    assert engine.get("beta", "k") == b"b"


def test_scan_prefix_orders_by_key_and_respects_boundary(engine):
    engine.put("alpha", "pr:a/bc:1", b"other")
    engine.put("alpha", "pr:a/b:2", b"two")
    engine.put("alpha", "pr:a/b:10", b"ten")
    engine.put("alpha", "pr:a/b:1", b"one")
    engine.put("alpha", "pr:a/c:1", b"skip")
    rows = engine.scan_prefix("alpha", "pr:a/b:")
    assert [k for k, _ in rows] == ["pr:a/b:1", "pr:a/b:10", "pr:a/b:2"]
    assert [v for _, v in rows] == [b"one", b"ten", b"two"]


def test_scan_prefix_empty_partition(engine):
    assert engine.scan_prefix("beta", "anything:") == []


def test_prefix_upper_bound():
    assert _prefix_upper_bound("abc:") == "abc;"
    assert _prefix_upper_bound("") is None


def test_partition_handle_delegates(engine):
    part = engine.partition("alpha")
    part.put("x", b"1")
    assert part.get("x") == b"1"
    assert part.contains("x")
    assert part.scan_prefix("x") == [("x", b"1")]
    part.delete("x")
    assert part.get("x") is None


def test_invalid_partition_name_rejected(engine):
    with pytest.raises(StorageError):
        engine.open_partition("bad-name; DROP TABLE")


def test_batch_commit_applies_all(engine):
    batch = engine.batch()
    batch.put("alpha", "a", b"1")
    batch.put("beta", "b", b"2")
    batch.delete("alpha", "missing")
    assert len(batch) == 3
    engine.commit(batch)
    assert engine.get("alpha", "a") == b"1"
    assert engine.get("beta", "b") == b"2"


def test_empty_batch_is_noop(engine):
    engine.commit(engine.batch())


def test_batch_failure_applies_nothing(engine, monkeypatch):
    """A failure on the third operation rolls back the first two."""
    engine.put("alpha", "existing", b"old")
    original = SQLiteEngine._apply_operation
    calls = {"n": 0}

    def flaky(self, cur, op):
        calls["n"] += 1
        if calls["n"] == 3:
            raise sqlite3.OperationalError("disk I/O error")
        return original(self, cur, op)

    monkeypatch.setattr(SQLiteEngine, "_apply_operation", flaky)
    batch = engine.batch()
    batch.put("alpha", "existing", b"new")
    batch.put("beta", "b", b"2")
    batch.put("alpha", "c", b"3")
    with pytest.raises(StorageError, match="nothing applied") as exc:
        engine.commit(batch)
    assert exc.value.partition == "alpha"
    assert exc.value.key == "c"
    assert engine.get("alpha", "existing") == b"old"
    assert engine.get("beta", "b") is None
    assert engine.get("alpha", "c") is None


def test_values_survive_reopen(tmp_path):
    path = tmp_path / "kv.db"
    first = SQLiteEngine(path)
    first.open_partition("alpha")
    first.put("alpha", "k", b"durable")
    second = SQLiteEngine(path)
    second.open_partition("alpha")
    assert second.get("alpha", "k") == b"durable"
