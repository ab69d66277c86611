"""
Tests for WalletSyncService: first sync, no-op resync, address change with
reverse index kept, fetch failures, and the all-or-nothing wallet write.
"""

from __future__ import annotations

import asyncio
import gc
import sqlite3
from datetime import timedelta

import pytest

from gitcircles.core.exceptions import (
    FetchError,
    RepoNotAccessibleError,
    StorageError,
    TransportError,
)
from gitcircles.database.engine import SQLiteEngine
from gitcircles.utils.wallet_utils import WalletAddress
from gitcircles.wallet_sync import WalletSyncService

from conftest import T0, StepClock, make_p2pk_address

ADDR_A = make_p2pk_address("carol-a")
ADDR_B = make_p2pk_address("carol-b", parity=0x03)


def _service(db, fetcher, clock, **kwargs):
    return WalletSyncService(db, fetcher, clock=clock, **kwargs)


def test_first_sync_records_wallet_history_and_link(db, wallet_fetcher, clock):
    wallet_fetcher.publish("alice", ADDR_A, branch="master")
    service = _service(db, wallet_fetcher, clock)

    result = asyncio.run(service.sync("alice"))

    assert result.changed is True
    assert result.previous is None
    assert result.current == WalletAddress(ADDR_A)
    assert result.source.branch == "master"
    assert result.source.type == "github_profile_repo"
    wallet = service.current("alice")
    assert wallet.address == WalletAddress(ADDR_A)
    assert wallet.synced_at == T0
    history = service.history("alice")
    assert [str(e.address) for e in history] == [ADDR_A]
    assert [link.login for link in service.logins_for(WalletAddress(ADDR_A))] == ["alice"]


def test_resync_with_same_address_is_noop(db, wallet_fetcher, clock):
    wallet_fetcher.publish("alice", ADDR_A)
    service = _service(db, wallet_fetcher, clock)
    asyncio.run(service.sync("alice"))

    second = asyncio.run(service.sync("alice"))

    assert second.changed is False
    assert second.previous == WalletAddress(ADDR_A)
    assert second.current == WalletAddress(ADDR_A)
    assert len(service.history("alice")) == 1
    assert service.current("alice").synced_at == T0


def test_address_change_keeps_old_index_link(db, wallet_fetcher, clock):
    """carol: A then B; history [A, B]; both addresses resolve to carol."""
    service = _service(db, wallet_fetcher, clock)
    wallet_fetcher.publish("carol", ADDR_A)
    asyncio.run(service.sync("carol"))
    assert str(service.current("carol").address) == ADDR_A

    wallet_fetcher.publish("carol", ADDR_B)
    result = asyncio.run(service.sync("carol"))

    assert result.changed is True
    assert result.previous == WalletAddress(ADDR_A)
    assert str(service.current("carol").address) == ADDR_B
    assert [str(e.address) for e in service.history("carol")] == [ADDR_A, ADDR_B]
    assert [link.login for link in service.logins_for(WalletAddress(ADDR_A))] == ["carol"]
    assert [link.login for link in service.logins_for(WalletAddress(ADDR_B))] == ["carol"]


def test_history_is_monotonic(db, wallet_fetcher, clock):
    service = _service(db, wallet_fetcher, clock)
    for i in range(5):
        wallet_fetcher.publish("dave", make_p2pk_address(f"dave-{i}"))
        asyncio.run(service.sync("dave"))
    recorded = [e.recorded_at for e in service.history("dave")]
    assert len(recorded) == 5
    assert recorded == sorted(recorded)


def test_shared_address_resolves_to_every_login(db, wallet_fetcher, clock):
    service = _service(db, wallet_fetcher, clock)
    wallet_fetcher.publish("erin", ADDR_A)
    wallet_fetcher.publish("frank", ADDR_A)
    asyncio.run(service.sync("erin"))
    asyncio.run(service.sync("frank"))
    assert [link.login for link in service.logins_for(WalletAddress(ADDR_A))] == ["erin", "frank"]


def test_nothing_published_returns_none_without_writes(db, wallet_fetcher, clock):
    service = _service(db, wallet_fetcher, clock)
    assert asyncio.run(service.sync("ghost")) is None
    assert service.current("ghost") is None
    assert service.history("ghost") == []
    assert clock.calls == 0


def test_inaccessible_repo_propagates_by_default(db, wallet_fetcher, clock):
    wallet_fetcher.fail("private", RepoNotAccessibleError("private/gitcircles-profile"))
    service = _service(db, wallet_fetcher, clock)
    with pytest.raises(RepoNotAccessibleError):
        asyncio.run(service.sync("private"))
    assert service.current("private") is None


def test_inaccessible_repo_as_absent_when_configured(db, wallet_fetcher, clock):
    wallet_fetcher.fail("private", RepoNotAccessibleError("private/gitcircles-profile"))
    service = _service(db, wallet_fetcher, clock, treat_inaccessible_as_absent=True)
    assert asyncio.run(service.sync("private")) is None


def test_transport_error_is_not_treated_as_unchanged(db, wallet_fetcher, clock):
    wallet_fetcher.publish("alice", ADDR_A)
    service = _service(db, wallet_fetcher, clock, treat_inaccessible_as_absent=True)
    asyncio.run(service.sync("alice"))

    wallet_fetcher.fail("alice", TransportError("connection reset"))
    with pytest.raises(FetchError):
        asyncio.run(service.sync("alice"))
    assert len(service.history("alice")) == 1


def _fail_third_operation(monkeypatch):
    original = SQLiteEngine._apply_operation
    calls = {"n": 0}

    def flaky(self, cur, op):
        calls["n"] += 1
        if calls["n"] == 3:
            raise sqlite3.OperationalError("disk I/O error")
        return original(self, cur, op)

    monkeypatch.setattr(SQLiteEngine, "_apply_operation", flaky)


def test_failed_commit_on_first_sync_leaves_nothing(db, wallet_fetcher, clock, monkeypatch):
    wallet_fetcher.publish("alice", ADDR_A)
    service = _service(db, wallet_fetcher, clock)
    _fail_third_operation(monkeypatch)

    with pytest.raises(StorageError):
        asyncio.run(service.sync("alice"))

    assert service.current("alice") is None
    assert service.history("alice") == []
    assert service.logins_for(WalletAddress(ADDR_A)) == []


def test_failed_commit_on_change_keeps_previous_state(db, wallet_fetcher, clock, monkeypatch):
    service = _service(db, wallet_fetcher, clock)
    wallet_fetcher.publish("carol", ADDR_A)
    asyncio.run(service.sync("carol"))

    wallet_fetcher.publish("carol", ADDR_B)
    _fail_third_operation(monkeypatch)
    with pytest.raises(StorageError):
        asyncio.run(service.sync("carol"))

    assert str(service.current("carol").address) == ADDR_A
    assert [str(e.address) for e in service.history("carol")] == [ADDR_A]
    assert service.logins_for(WalletAddress(ADDR_B)) == []


def test_sync_github_login_alias(db, wallet_fetcher, clock):
    wallet_fetcher.publish("alice", ADDR_A)
    service = _service(db, wallet_fetcher, clock)
    result = asyncio.run(service.sync_github_login("alice"))
    assert result.changed is True
    assert service.platform == "github"


def test_changes_within_one_second_keep_both_history_entries(db, wallet_fetcher):
    """carol: A then B 200 ms apart; both land in history, in order."""
    service = _service(db, wallet_fetcher, StepClock(step=timedelta(milliseconds=200)))
    wallet_fetcher.publish("carol", ADDR_A)
    first = asyncio.run(service.sync("carol"))
    wallet_fetcher.publish("carol", ADDR_B)
    second = asyncio.run(service.sync("carol"))

    assert first.changed is True
    assert second.changed is True
    history = service.history("carol")
    assert [str(e.address) for e in history] == [ADDR_A, ADDR_B]
    assert [e.recorded_at for e in history] == [T0, T0 + timedelta(milliseconds=200)]


def test_login_locks_are_released_after_sync(db, wallet_fetcher, clock):
    service = _service(db, wallet_fetcher, clock)
    for i in range(3):
        login = f"user{i}"
        wallet_fetcher.publish(login, make_p2pk_address(login))
        asyncio.run(service.sync(login))
    gc.collect()
    assert len(service._locks) == 0
