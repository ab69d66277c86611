"""
GitHub access for collect and wallet sync.

Responsibilities:
- Validate a personal access token (GET /user).
- Page through closed pull requests for a base branch and keep the merged ones.
- Read P2PK.pub from a login's public gitcircles-profile repo, trying main,
  master, then the repo's default branch.

One httpx.AsyncClient per GitHubClient; pass http_client to share one or to
substitute a mock transport.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from gitcircles.core.exceptions import (
    AuthError,
    FetchError,
    RepoNotAccessibleError,
    TransportError,
)
from gitcircles.database.models import MergedPullRequest
from gitcircles.gitcircles_logging import get_logger
from gitcircles.utils.wallet_utils import validate_wallet_address
from gitcircles.wallet_sync.models import WalletFetchOutcome

logger = get_logger(__name__)

PROFILE_REPO_NAME = "gitcircles-profile"
WALLET_FILE_PATH = "P2PK.pub"
PULLS_PER_PAGE = 100
DEFAULT_BRANCH_FALLBACK = "main"
PRIORITY_BRANCHES = ("main", "master")
GITHUB_API_VERSION = "2022-11-28"


def compute_branch_priority(default_branch: str) -> list[str]:
    """main, master, then default_branch; duplicates dropped, order kept."""
    branches: list[str] = []
    for branch in (*PRIORITY_BRANCHES, default_branch):
        if branch and branch not in branches:
            branches.append(branch)
    return branches


def _parse_github_datetime(raw: str) -> datetime:
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _pull_request_from_api(item: dict[str, Any], repository: str) -> MergedPullRequest | None:
    """Build a MergedPullRequest from one /pulls item; None when it was closed unmerged."""
    merged_at = item.get("merged_at")
    if not merged_at:
        return None
    user = item.get("user") or {}
    base = item.get("base") or {}
    return MergedPullRequest(
        number=int(item["number"]),
        title=item.get("title") or "No title",
        author=user.get("login") or "unknown",
        merged_at=_parse_github_datetime(merged_at),
        base_branch=base.get("ref") or "",
        merge_commit_sha=item.get("merge_commit_sha") or "unknown",
        repository=repository,
    )


class GitHubClient:
    """Async GitHub REST + raw-content client."""

    def __init__(
        self,
        token: str | None,
        *,
        api_url: str = "https://api.github.com",
        raw_url: str = "https://raw.githubusercontent.com",
        timeout_sec: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token = token
        self._api_url = api_url.rstrip("/")
        self._raw_url = raw_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    def _api_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(self, url: str, *, params: dict[str, Any] | None = None, api: bool = True) -> httpx.Response:
        try:
            return await self._client.get(url, params=params, headers=self._api_headers() if api else None)
        except httpx.HTTPError as e:
            logger.warning("github_request_failed", url=url, error=str(e))
            raise TransportError(f"Request to {url} failed: {e}") from e

    async def _api_json(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        url = f"{self._api_url}{path}"
        resp = await self._request(url, params=params)
        if resp.status_code == 401:
            raise AuthError("GitHub rejected the token (401). Check GITHUB_TOKEN or --token.")
        if resp.status_code != 200:
            raise FetchError(f"GitHub API {path} returned HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise FetchError(f"GitHub API {path} returned invalid JSON: {e}") from e

    async def test_token(self) -> str:
        """Return the login the token authenticates as."""
        data = await self._api_json("/user")
        login = data.get("login") if isinstance(data, dict) else None
        if not login:
            raise FetchError("GitHub /user response has no login")
        logger.info("github_token_valid", login=login)
        return login

    async def fetch_merged_pull_requests(
        self,
        owner: str,
        repo: str,
        base_branch: str,
        days_back: int | None = None,
    ) -> list[MergedPullRequest]:
        """
        All merged PRs into base_branch, newest page first as GitHub returns them.

        days_back limits results to PRs merged within that many days of now.
        Paging stops at an empty page or one shorter than PULLS_PER_PAGE.
        """
        repository = f"{owner}/{repo}"
        cutoff = datetime.now(timezone.utc) - timedelta(days=days_back) if days_back is not None else None
        merged: list[MergedPullRequest] = []
        page = 1
        while True:
            items = await self._api_json(
                f"/repos/{owner}/{repo}/pulls",
                params={
                    "state": "closed",
                    "base": base_branch,
                    "per_page": PULLS_PER_PAGE,
                    "page": page,
                },
            )
            if not isinstance(items, list) or not items:
                break
            for item in items:
                pr = _pull_request_from_api(item, repository)
                if pr is None:
                    continue
                if cutoff is not None and pr.merged_at < cutoff:
                    continue
                merged.append(pr)
            logger.debug("github_pulls_page", repository=repository, page=page, items=len(items))
            if len(items) < PULLS_PER_PAGE:
                break
            page += 1
        logger.info("github_pulls_fetched", repository=repository, base_branch=base_branch, merged=len(merged))
        return merged

    async def fetch_wallet_address(self, login: str) -> WalletFetchOutcome | None:
        """
        Read and validate the address login publishes.

        None when the profile repo or the file on every candidate branch is
        missing. A file that is present but invalid raises
        InvalidWalletAddressError.
        """
        repo_full = f"{login}/{PROFILE_REPO_NAME}"
        meta_url = f"{self._api_url}/repos/{login}/{PROFILE_REPO_NAME}"
        resp = await self._request(meta_url)
        if resp.status_code == 404:
            logger.info("github_profile_repo_missing", login=login)
            return None
        if resp.status_code != 200:
            # A 403 here is usually rate limiting, not a private repo.
            detail = " (rate limit exhausted)" if resp.headers.get("X-RateLimit-Remaining") == "0" else ""
            raise FetchError(f"Repository metadata for {repo_full} returned HTTP {resp.status_code}{detail}")
        try:
            default_branch = resp.json().get("default_branch") or DEFAULT_BRANCH_FALLBACK
        except (ValueError, AttributeError) as e:
            raise FetchError(f"Repository metadata for {repo_full} is not valid JSON: {e}") from e

        for branch in compute_branch_priority(default_branch):
            url = f"{self._raw_url}/{login}/{PROFILE_REPO_NAME}/{branch}/{WALLET_FILE_PATH}"
            raw = await self._request(url, api=False)
            if raw.status_code == 200:
                address = validate_wallet_address(raw.text)
                logger.info("github_wallet_fetched", login=login, branch=branch, address=address.truncated())
                return WalletFetchOutcome(address=address, branch=branch)
            if raw.status_code == 404:
                continue
            if raw.status_code in (401, 403):
                raise RepoNotAccessibleError(repo_full)
            raise FetchError(f"Unexpected HTTP status {raw.status_code} reading {WALLET_FILE_PATH} from {repo_full}")

        logger.info("github_wallet_file_missing", login=login)
        return None
