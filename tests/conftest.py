"""
Pytest fixtures for GitCircles tests. Uses a temporary SQLite file per test,
deterministic clocks, and in-memory fetchers in place of GitHub.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone

import base58
import pytest

from gitcircles.utils.wallet_utils import WalletAddress, p2pk_checksum
from gitcircles.wallet_sync.models import WalletFetchOutcome

T0 = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_p2pk_address(seed: str, parity: int = 0x02, address_type: int = 0x01) -> str:
    """Deterministic mainnet-shaped P2PK address with a correct checksum."""
    key = hashlib.sha256(seed.encode("utf-8")).digest()
    body = bytes([address_type, parity]) + key
    return base58.b58encode(body + p2pk_checksum(body)).decode("ascii")


class StepClock:
    """Returns start, start+step, start+2*step, ... on successive calls."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(minutes=1)) -> None:
        self.now = start
        self.step = step
        self.calls = 0

    def __call__(self) -> datetime:
        value = self.now
        self.now = self.now + self.step
        self.calls += 1
        return value


class FakeWalletFetcher:
    """
    login -> WalletFetchOutcome | None | Exception. An exception value is raised;
    unknown logins behave as "nothing published".
    """

    def __init__(self) -> None:
        self.outcomes: dict[str, object] = {}
        self.calls: list[str] = []

    def publish(self, login: str, address: str, branch: str = "main") -> None:
        self.outcomes[login] = WalletFetchOutcome(address=WalletAddress(address), branch=branch)

    def fail(self, login: str, error: Exception) -> None:
        self.outcomes[login] = error

    async def fetch_wallet_address(self, login: str) -> WalletFetchOutcome | None:
        self.calls.append(login)
        outcome = self.outcomes.get(login)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakePullRequestFetcher:
    def __init__(self, prs=None, error: Exception | None = None) -> None:
        self.prs = list(prs or [])
        self.error = error
        self.calls: list[tuple] = []

    async def fetch_merged_pull_requests(self, owner, repo, base_branch, days_back=None):
        self.calls.append((owner, repo, base_branch, days_back))
        if self.error is not None:
            raise self.error
        return list(self.prs)


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "gitcircles.db"


@pytest.fixture
def db(db_path):
    """Fresh Database on a temporary SQLite file."""
    from gitcircles.database import get_database

    return get_database(db_path)


@pytest.fixture
def address_factory():
    return make_p2pk_address


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def wallet_fetcher():
    return FakeWalletFetcher()
