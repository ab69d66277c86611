"""
Data models for wallet sync: fetch outcome, sync result, and the fetcher
capability the service depends on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from gitcircles.database.models import WalletSource
from gitcircles.utils.wallet_utils import WalletAddress


@dataclass(frozen=True)
class WalletFetchOutcome:
    """A validated address read from a profile repo, and the branch it came from."""

    address: WalletAddress
    branch: str


@dataclass(frozen=True)
class WalletSyncResult:
    """
    Outcome of one sync. Returned for both changed and unchanged syncs;
    previous is None on the first sync for a login.
    """

    current: WalletAddress
    previous: WalletAddress | None
    changed: bool
    source: WalletSource


class WalletFetcher(Protocol):
    """Anything that can look up the address a login publishes."""

    async def fetch_wallet_address(self, login: str) -> WalletFetchOutcome | None:
        """
        None when no address is published. Raises RepoNotAccessibleError for a
        private or unreadable profile repo, FetchError for anything else.
        """
        ...
