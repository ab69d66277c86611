"""
Database facade for repositories, pull requests, projects and wallet state.

All access goes through an ordered key-value StorageEngine (SQLite by default).
Single-key writes are durable on return and carry no cross-key atomicity; the
wallet trio (current wallet, history entry, index link) is written through a
WriteBatch so callers can commit it as one unit.

Corrupt records: single-key gets log record_corrupted and return None unless
strict_reads is set; prefix scans always raise RecordCorruptedError.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, TypeVar

from gitcircles.core.clock import utc_now
from gitcircles.core.exceptions import RecordCorruptedError
from gitcircles.database import schema
from gitcircles.database.engine import Partition, SQLiteEngine, StorageEngine, WriteBatch
from gitcircles.database.models import (
    BaseBranchChange,
    MergedPullRequest,
    Project,
    ProjectOwner,
    Repository,
    UserWallet,
    WalletHistoryEntry,
    WalletLoginLink,
)
from gitcircles.gitcircles_logging import get_logger
from gitcircles.utils.wallet_utils import WalletAddress

logger = get_logger(__name__)

T = TypeVar("T")


class Database:
    """
    Storage facade: one shared Partition handle per namespace for the
    lifetime of the instance.
    """

    def __init__(self, engine: StorageEngine, *, strict_reads: bool = False) -> None:
        self._engine = engine
        self.strict_reads = strict_reads
        self._repositories = engine.partition(schema.REPOSITORIES)
        self._pull_requests = engine.partition(schema.PULL_REQUESTS)
        self._base_branch_history = engine.partition(schema.BASE_BRANCH_HISTORY)
        self._user_wallets = engine.partition(schema.USER_WALLETS)
        self._user_wallet_history = engine.partition(schema.USER_WALLET_HISTORY)
        self._wallet_index = engine.partition(schema.WALLET_INDEX)
        self._projects = engine.partition(schema.PROJECTS)
        self._project_owners = engine.partition(schema.PROJECT_OWNERS)

    @property
    def engine(self) -> StorageEngine:
        return self._engine

    # --- Decode helpers ---

    def _get(self, partition: Partition, key: str, decode: Callable[[bytes], T]) -> T | None:
        raw = partition.get(key)
        if raw is None:
            return None
        try:
            return decode(raw)
        except RecordCorruptedError as e:
            if self.strict_reads:
                raise RecordCorruptedError(str(e), partition=partition.name, key=key) from e
            logger.warning("record_corrupted", partition=partition.name, key=key, error=str(e))
            return None

    @staticmethod
    def _scan(partition: Partition, prefix: str, decode: Callable[[bytes], T]) -> list[T]:
        items: list[T] = []
        for key, raw in partition.scan_prefix(prefix):
            try:
                items.append(decode(raw))
            except RecordCorruptedError as e:
                logger.error("record_corrupted", partition=partition.name, key=key, error=str(e))
                raise RecordCorruptedError(str(e), partition=partition.name, key=key) from e
        return items

    # --- Repositories ---

    def upsert_repository(self, repo: Repository) -> None:
        key = schema.repository_key(repo.owner, repo.name)
        self._repositories.put(key, schema.encode_record(repo))
        logger.debug("repository_saved", repository=repo.full_name, total_prs=repo.total_prs)

    def get_repository(self, owner: str, name: str) -> Repository | None:
        return self._get(self._repositories, schema.repository_key(owner, name), schema.decode_repository)

    def list_repositories(self) -> list[Repository]:
        return self._scan(self._repositories, schema.REPOSITORY_PREFIX, schema.decode_repository)

    def list_repositories_for_project(self, project_id: str) -> list[Repository]:
        return [r for r in self.list_repositories() if r.project_id == project_id]

    # --- Pull requests ---

    def pull_request_exists(self, repo: str, number: int) -> bool:
        return self._pull_requests.contains(schema.pull_request_key(repo, number))

    def upsert_pull_request(self, pr: MergedPullRequest) -> None:
        key = schema.pull_request_key(pr.repository, pr.number)
        self._pull_requests.put(key, schema.encode_record(pr))

    def get_pull_requests(self, repo: str) -> list[MergedPullRequest]:
        """Pull requests of one repository in key order."""
        return self._scan(self._pull_requests, schema.pull_request_prefix(repo), schema.decode_pull_request)

    def get_pull_requests_for_project(self, project_id: str) -> list[MergedPullRequest]:
        """Every PR of every repository linked to project_id, newest merge first."""
        prs: list[MergedPullRequest] = []
        for repo in self.list_repositories_for_project(project_id):
            prs.extend(self.get_pull_requests(repo.full_name))
        prs.sort(key=lambda pr: pr.merged_at, reverse=True)
        return prs

    # --- Base branch history ---

    def record_base_branch_change(
        self,
        repo: str,
        old_branch: str,
        new_branch: str,
        changed_at: datetime | None = None,
    ) -> BaseBranchChange:
        change = BaseBranchChange(
            repository=repo,
            old_branch=old_branch,
            new_branch=new_branch,
            changed_at=changed_at if changed_at is not None else utc_now(),
        )
        key = schema.base_branch_change_key(repo, change.changed_at)
        self._base_branch_history.put(key, schema.encode_record(change))
        logger.info("base_branch_changed", repository=repo, old_branch=old_branch, new_branch=new_branch)
        return change

    def get_base_branch_history(self, repo: str) -> list[BaseBranchChange]:
        return self._scan(
            self._base_branch_history,
            schema.base_branch_history_prefix(repo),
            schema.decode_base_branch_change,
        )

    # --- Projects ---

    def upsert_project(self, project: Project) -> None:
        self._projects.put(schema.project_key(project.id), schema.encode_record(project))

    def get_project(self, project_id: str) -> Project | None:
        return self._get(self._projects, schema.project_key(project_id), schema.decode_project)

    def list_projects(self) -> list[Project]:
        return self._scan(self._projects, schema.PROJECT_PREFIX, schema.decode_project)

    def delete_project(self, project_id: str) -> None:
        self._projects.delete(schema.project_key(project_id))

    def add_project_owner(self, owner: ProjectOwner) -> None:
        key = schema.project_owner_key(owner.project_id, owner.github_username)
        self._project_owners.put(key, schema.encode_record(owner))

    def get_project_owners(self, project_id: str) -> list[ProjectOwner]:
        return self._scan(self._project_owners, schema.project_owner_prefix(project_id), schema.decode_project_owner)

    def remove_project_owner(self, project_id: str, username: str) -> None:
        self._project_owners.delete(schema.project_owner_key(project_id, username))

    def get_projects_for_owner(self, username: str) -> list[Project]:
        """Projects on which username holds any role (full owner scan)."""
        projects: list[Project] = []
        for owner in self._scan(self._project_owners, schema.PROJECT_OWNER_PREFIX, schema.decode_project_owner):
            if owner.github_username != username:
                continue
            project = self.get_project(owner.project_id)
            if project is not None:
                projects.append(project)
        return projects

    # --- Wallets ---

    def get_user_wallet(self, platform: str, login: str) -> UserWallet | None:
        return self._get(self._user_wallets, schema.user_wallet_key(platform, login), schema.decode_user_wallet)

    def upsert_user_wallet(self, wallet: UserWallet) -> None:
        batch = self.new_batch()
        self.upsert_user_wallet_batch(batch, wallet)
        self.commit(batch)

    def append_wallet_history(self, entry: WalletHistoryEntry) -> None:
        batch = self.new_batch()
        self.append_wallet_history_batch(batch, entry)
        self.commit(batch)

    def get_wallet_history(self, platform: str, login: str) -> list[WalletHistoryEntry]:
        """Every address change for (platform, login), oldest first."""
        return self._scan(
            self._user_wallet_history,
            schema.wallet_history_prefix(platform, login),
            schema.decode_wallet_history_entry,
        )

    def replace_wallet_link(self, link: WalletLoginLink) -> None:
        batch = self.new_batch()
        self.replace_wallet_link_batch(batch, link)
        self.commit(batch)

    def get_logins_for_wallet(self, address: WalletAddress, platform: str) -> list[WalletLoginLink]:
        """Every login ever linked to address on platform, each with its own linked_at."""
        return self._scan(
            self._wallet_index,
            schema.wallet_link_prefix(address, platform),
            schema.decode_wallet_link,
        )

    # --- Batches ---

    def new_batch(self) -> WriteBatch:
        return self._engine.batch()

    def upsert_user_wallet_batch(self, batch: WriteBatch, wallet: UserWallet) -> None:
        key = schema.user_wallet_key(wallet.platform, wallet.login)
        batch.put(self._user_wallets, key, schema.encode_record(wallet))

    def append_wallet_history_batch(self, batch: WriteBatch, entry: WalletHistoryEntry) -> None:
        key = schema.wallet_history_key(entry.platform, entry.login, entry.recorded_at)
        batch.put(self._user_wallet_history, key, schema.encode_record(entry))

    def replace_wallet_link_batch(self, batch: WriteBatch, link: WalletLoginLink) -> None:
        key = schema.wallet_link_key(link.wallet, link.platform, link.login)
        batch.put(self._wallet_index, key, schema.encode_record(link))

    def commit(self, batch: WriteBatch) -> None:
        """Apply batch atomically; StorageError means nothing was written."""
        self._engine.commit(batch)


def get_database(
    path: str | Path | None = None,
    *,
    synchronous: str = "FULL",
    strict_reads: bool = False,
) -> Database:
    """
    Return a Database backed by SQLite.

    path: storage file. Default: GITCIRCLES_DB_PATH or ~/.gitcircles/db.
    """
    if path is None:
        from gitcircles.config.env import get_database_path

        path = get_database_path()
    engine = SQLiteEngine(path, synchronous=synchronous)
    db = Database(engine, strict_reads=strict_reads)
    logger.debug("database_opened", path=str(path))
    return db
