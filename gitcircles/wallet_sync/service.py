"""
Wallet sync: keep each login's current address, history, and the reverse
address index consistent with what the login publishes.

States per (platform, login): no UserWallet -> Tracked(address) ->
Tracked(address') ... Only a fetch outcome moves a login between states.

A change writes three records (current wallet, history entry, index link)
in one WriteBatch: either all three land or none do. Index links for earlier
addresses are never removed, so an old address still resolves to the login.

Read-previous, compare and commit run under a per-(platform, login) lock.
Locks are held weakly and dropped once no sync uses them. They are
in-process only; two processes syncing the same login can still race, in
which case history keeps both entries and the current wallet is
last-writer-wins.
"""

from __future__ import annotations

import threading
import weakref

import structlog

from gitcircles.core.clock import Clock, utc_now
from gitcircles.core.exceptions import RepoNotAccessibleError
from gitcircles.database.database import Database
from gitcircles.database.models import (
    GITHUB_PLATFORM,
    UserWallet,
    WalletHistoryEntry,
    WalletLoginLink,
    WalletSource,
)
from gitcircles.gitcircles_logging import bind_login, get_logger
from gitcircles.utils.wallet_utils import WalletAddress
from gitcircles.wallet_sync.models import WalletFetcher, WalletFetchOutcome, WalletSyncResult

logger = get_logger(__name__)


class WalletSyncService:
    """Sync one login at a time from a WalletFetcher into the Database."""

    def __init__(
        self,
        db: Database,
        fetcher: WalletFetcher,
        *,
        platform: str = GITHUB_PLATFORM,
        clock: Clock = utc_now,
        treat_inaccessible_as_absent: bool = False,
    ) -> None:
        self._db = db
        self._fetcher = fetcher
        self._platform = platform
        self._clock = clock
        self._treat_inaccessible_as_absent = treat_inaccessible_as_absent
        self._locks: weakref.WeakValueDictionary[tuple[str, str], threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    @property
    def platform(self) -> str:
        return self._platform

    def _lock_for(self, login: str) -> threading.Lock:
        key = (self._platform, login)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    async def sync(self, login: str) -> WalletSyncResult | None:
        """
        Fetch the address login publishes and record it if it changed.

        Returns None when nothing is published (no writes). Fetch failures
        propagate; a private profile repo counts as "nothing published" only
        when treat_inaccessible_as_absent is set.
        """
        log = bind_login(self._platform, login)
        try:
            outcome = await self._fetcher.fetch_wallet_address(login)
        except RepoNotAccessibleError as e:
            if not self._treat_inaccessible_as_absent:
                raise
            log.info("wallet_sync_inaccessible_as_absent", error=str(e))
            return None
        if outcome is None:
            log.info("wallet_sync_no_address")
            return None
        with self._lock_for(login):
            return self._apply(login, outcome, log)

    async def sync_github_login(self, login: str) -> WalletSyncResult | None:
        return await self.sync(login)

    def _apply(
        self,
        login: str,
        outcome: WalletFetchOutcome,
        log: structlog.BoundLogger,
    ) -> WalletSyncResult:
        existing = self._db.get_user_wallet(self._platform, login)
        previous = existing.address if existing is not None else None
        source = WalletSource(login=login, branch=outcome.branch)
        changed = previous != outcome.address

        if not changed:
            log.info("wallet_sync_unchanged", address=outcome.address.truncated())
            return WalletSyncResult(current=outcome.address, previous=previous, changed=False, source=source)

        now = self._clock()
        batch = self._db.new_batch()
        self._db.upsert_user_wallet_batch(
            batch,
            UserWallet(
                login=login,
                platform=self._platform,
                address=outcome.address,
                source=source,
                synced_at=now,
            ),
        )
        self._db.append_wallet_history_batch(
            batch,
            WalletHistoryEntry(
                login=login,
                platform=self._platform,
                address=outcome.address,
                source=source,
                recorded_at=now,
            ),
        )
        self._db.replace_wallet_link_batch(
            batch,
            WalletLoginLink(
                wallet=outcome.address,
                platform=self._platform,
                login=login,
                linked_at=now,
            ),
        )
        self._db.commit(batch)
        log.info(
            "wallet_sync_changed",
            address=outcome.address.truncated(),
            previous=previous.truncated() if previous is not None else None,
            branch=outcome.branch,
        )
        return WalletSyncResult(current=outcome.address, previous=previous, changed=True, source=source)

    # --- Readers ---

    def current(self, login: str) -> UserWallet | None:
        return self._db.get_user_wallet(self._platform, login)

    def history(self, login: str) -> list[WalletHistoryEntry]:
        return self._db.get_wallet_history(self._platform, login)

    def logins_for(self, address: WalletAddress) -> list[WalletLoginLink]:
        return self._db.get_logins_for_wallet(address, self._platform)
