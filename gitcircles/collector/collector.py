"""
Repository collector: pull merged PRs for one repository into the store.

Steps for collect_repository():
1. Parse 'owner/name'; check the project exists when one is given.
2. Fetch merged PRs (no writes happen before the fetch succeeds).
3. Load or create the Repository, relink its project, record a base-branch
   change if the requested base differs from the tracked one.
4. Insert only PRs not stored yet; bump total_prs by that count and stamp
   last_sync.

Check-then-insert is not atomic; two collectors on the same repository can
both insert a PR, which is harmless (same key) but counts it twice.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Protocol

from gitcircles.core.clock import Clock, utc_now
from gitcircles.core.exceptions import ProjectNotFoundError
from gitcircles.database.database import Database
from gitcircles.database.models import BaseBranchChange, MergedPullRequest, Repository
from gitcircles.gitcircles_logging import get_logger
from gitcircles.utils.repo_utils import parse_repo

logger = get_logger(__name__)

DEFAULT_BASE_BRANCH = "main"


class PullRequestFetcher(Protocol):
    async def fetch_merged_pull_requests(
        self,
        owner: str,
        repo: str,
        base_branch: str,
        days_back: int | None = None,
    ) -> list[MergedPullRequest]:
        ...


@dataclass(frozen=True)
class CollectResult:
    repository: Repository
    new_pull_requests: list[MergedPullRequest]
    base_branch_change: BaseBranchChange | None = None


async def collect_repository(
    db: Database,
    fetcher: PullRequestFetcher,
    repo: str,
    *,
    base_branch: str = DEFAULT_BASE_BRANCH,
    days_back: int | None = None,
    project_id: str | None = None,
    clock: Clock = utc_now,
) -> CollectResult:
    owner, name = parse_repo(repo)
    full_name = f"{owner}/{name}"
    if project_id is not None and db.get_project(project_id) is None:
        raise ProjectNotFoundError(project_id)

    fetched = await fetcher.fetch_merged_pull_requests(owner, name, base_branch, days_back)

    now = clock()
    record = db.get_repository(owner, name)
    if record is None:
        record = Repository(
            owner=owner,
            name=name,
            current_base_branch=base_branch,
            first_sync=now,
            project_id=project_id,
        )
        logger.info("repository_tracked", repository=full_name, base_branch=base_branch)
    elif project_id is not None:
        record = replace(record, project_id=project_id)

    change: BaseBranchChange | None = None
    if record.current_base_branch != base_branch:
        change = db.record_base_branch_change(full_name, record.current_base_branch, base_branch, now)
        record = replace(record, current_base_branch=base_branch)

    new_prs: list[MergedPullRequest] = []
    for pr in fetched:
        if db.pull_request_exists(pr.repository, pr.number):
            continue
        db.upsert_pull_request(pr)
        new_prs.append(pr)

    record = replace(record, last_sync=now, total_prs=record.total_prs + len(new_prs))
    db.upsert_repository(record)
    logger.info(
        "repository_collected",
        repository=full_name,
        fetched=len(fetched),
        new=len(new_prs),
        total_prs=record.total_prs,
    )
    return CollectResult(repository=record, new_pull_requests=new_prs, base_branch_change=change)
