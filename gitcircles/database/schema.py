"""
Record schema: entity <-> (partition, key, value) mapping.

Keys are colon-joined composites whose leading components group every record
of a parent entity under one contiguous prefix, so "indexes" are prefix scans:

    repositories          repo:{owner}/{name}
    pull_requests         pr:{owner}/{name}:{number}
    base_branch_history   base:{owner}/{name}:{unix_us}
    user_wallets          login:{platform}:{login}
    user_wallet_history   history:{platform}:{login}:{unix_us}
    wallet_index          wallet:{address}:{platform}:{login}
    projects              project:{id}
    project_owners        owner:{project_id}:{github_username}

unix_us is epoch microseconds zero-padded to 16 digits, so key order is
chronological order and changes within the same second get distinct keys.
Variable components may not be empty or contain ':'; otherwise one record
could masquerade as another record's prefix.

Values are UTF-8 JSON objects. Unknown fields are ignored on decode, so older
readers accept newer records.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, TypeVar

from gitcircles.core.exceptions import (
    InvalidKeyComponentError,
    InvalidWalletAddressError,
    RecordCorruptedError,
)
from gitcircles.database.models import (
    BaseBranchChange,
    MergedPullRequest,
    Project,
    ProjectOwner,
    Repository,
    UserWallet,
    WalletHistoryEntry,
    WalletLoginLink,
    WalletSource,
)
from gitcircles.utils.wallet_utils import WalletAddress

T = TypeVar("T")

KEY_SEPARATOR = ":"
TIMESTAMP_WIDTH = 16
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)

# Partition names
REPOSITORIES = "repositories"
PULL_REQUESTS = "pull_requests"
BASE_BRANCH_HISTORY = "base_branch_history"
USER_WALLETS = "user_wallets"
USER_WALLET_HISTORY = "user_wallet_history"
WALLET_INDEX = "wallet_index"
PROJECTS = "projects"
PROJECT_OWNERS = "project_owners"

ALL_PARTITIONS = (
    REPOSITORIES,
    PULL_REQUESTS,
    BASE_BRANCH_HISTORY,
    USER_WALLETS,
    USER_WALLET_HISTORY,
    WALLET_INDEX,
    PROJECTS,
    PROJECT_OWNERS,
)


# -----------------------------------------------------------------------------
# Keys
# -----------------------------------------------------------------------------


def key_part(component: str, value: str) -> str:
    """Return value if it is safe inside a composite key; raise otherwise."""
    if not isinstance(value, str) or not value or KEY_SEPARATOR in value:
        raise InvalidKeyComponentError(component, str(value))
    return value


def _repo_part(repo: str) -> str:
    return key_part("repository", repo)


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _ts_part(moment: datetime) -> str:
    micros = (as_utc(moment) - _EPOCH) // _MICROSECOND
    return f"{micros:0{TIMESTAMP_WIDTH}d}"


def repository_key(owner: str, name: str) -> str:
    return f"repo:{key_part('owner', owner)}/{key_part('name', name)}"


REPOSITORY_PREFIX = "repo:"


def pull_request_key(repo: str, number: int) -> str:
    return f"pr:{_repo_part(repo)}:{int(number)}"


def pull_request_prefix(repo: str) -> str:
    return f"pr:{_repo_part(repo)}:"


def base_branch_change_key(repo: str, changed_at: datetime) -> str:
    return f"base:{_repo_part(repo)}:{_ts_part(changed_at)}"


def base_branch_history_prefix(repo: str) -> str:
    return f"base:{_repo_part(repo)}:"


def user_wallet_key(platform: str, login: str) -> str:
    return f"login:{key_part('platform', platform)}:{key_part('login', login)}"


def wallet_history_key(platform: str, login: str, recorded_at: datetime) -> str:
    return f"{wallet_history_prefix(platform, login)}{_ts_part(recorded_at)}"


def wallet_history_prefix(platform: str, login: str) -> str:
    return f"history:{key_part('platform', platform)}:{key_part('login', login)}:"


def wallet_link_key(address: WalletAddress, platform: str, login: str) -> str:
    return f"{wallet_link_prefix(address, platform)}{key_part('login', login)}"


def wallet_link_prefix(address: WalletAddress, platform: str) -> str:
    return f"wallet:{key_part('address', str(address))}:{key_part('platform', platform)}:"


def project_key(project_id: str) -> str:
    return f"project:{key_part('project_id', project_id)}"


PROJECT_PREFIX = "project:"


def project_owner_key(project_id: str, username: str) -> str:
    return f"{project_owner_prefix(project_id)}{key_part('github_username', username)}"


def project_owner_prefix(project_id: str) -> str:
    return f"owner:{key_part('project_id', project_id)}:"


PROJECT_OWNER_PREFIX = "owner:"


# -----------------------------------------------------------------------------
# Values
# -----------------------------------------------------------------------------


def _dt_out(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat()


def _dt_in(raw: Any) -> datetime:
    if not isinstance(raw, str):
        raise ValueError(f"expected ISO-8601 string, got {type(raw).__name__}")
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _dt_in_optional(raw: Any) -> datetime | None:
    return None if raw is None else _dt_in(raw)


def _source_out(source: WalletSource) -> dict[str, Any]:
    return {"type": source.type, "login": source.login, "branch": source.branch}


def _source_in(raw: dict[str, Any]) -> WalletSource:
    return WalletSource(login=raw["login"], branch=raw["branch"], type=raw.get("type", WalletSource.type))


def _to_dict(entity: Any) -> dict[str, Any]:
    if isinstance(entity, Repository):
        return {
            "owner": entity.owner,
            "name": entity.name,
            "current_base_branch": entity.current_base_branch,
            "last_sync": _dt_out(entity.last_sync),
            "total_prs": entity.total_prs,
            "first_sync": _dt_out(entity.first_sync),
            "project_id": entity.project_id,
        }
    if isinstance(entity, MergedPullRequest):
        return {
            "number": entity.number,
            "title": entity.title,
            "author": entity.author,
            "merged_at": _dt_out(entity.merged_at),
            "base_branch": entity.base_branch,
            "merge_commit_sha": entity.merge_commit_sha,
            "repository": entity.repository,
        }
    if isinstance(entity, BaseBranchChange):
        return {
            "repository": entity.repository,
            "old_branch": entity.old_branch,
            "new_branch": entity.new_branch,
            "changed_at": _dt_out(entity.changed_at),
        }
    if isinstance(entity, UserWallet):
        return {
            "login": entity.login,
            "platform": entity.platform,
            "address": str(entity.address),
            "source": _source_out(entity.source),
            "synced_at": _dt_out(entity.synced_at),
        }
    if isinstance(entity, WalletHistoryEntry):
        return {
            "login": entity.login,
            "platform": entity.platform,
            "address": str(entity.address),
            "source": _source_out(entity.source),
            "recorded_at": _dt_out(entity.recorded_at),
        }
    if isinstance(entity, WalletLoginLink):
        return {
            "wallet": str(entity.wallet),
            "platform": entity.platform,
            "login": entity.login,
            "linked_at": _dt_out(entity.linked_at),
        }
    if isinstance(entity, Project):
        return {
            "id": entity.id,
            "name": entity.name,
            "description": entity.description,
            "created_at": _dt_out(entity.created_at),
            "updated_at": _dt_out(entity.updated_at),
        }
    if isinstance(entity, ProjectOwner):
        return {
            "project_id": entity.project_id,
            "github_username": entity.github_username,
            "role": entity.role,
            "added_at": _dt_out(entity.added_at),
        }
    raise TypeError(f"no record schema for {type(entity).__name__}")


def encode_record(entity: Any) -> bytes:
    """Serialize an entity to its stored JSON bytes."""
    return json.dumps(_to_dict(entity), sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _load(value: bytes) -> dict[str, Any]:
    data = json.loads(value.decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError("stored value is not a JSON object")
    return data


def _repository_in(d: dict[str, Any]) -> Repository:
    return Repository(
        owner=d["owner"],
        name=d["name"],
        current_base_branch=d["current_base_branch"],
        first_sync=_dt_in(d["first_sync"]),
        last_sync=_dt_in_optional(d.get("last_sync")),
        total_prs=int(d.get("total_prs", 0)),
        project_id=d.get("project_id"),
    )


def _pull_request_in(d: dict[str, Any]) -> MergedPullRequest:
    return MergedPullRequest(
        number=int(d["number"]),
        title=d["title"],
        author=d["author"],
        merged_at=_dt_in(d["merged_at"]),
        base_branch=d["base_branch"],
        merge_commit_sha=d["merge_commit_sha"],
        repository=d["repository"],
    )


def _base_branch_change_in(d: dict[str, Any]) -> BaseBranchChange:
    return BaseBranchChange(
        repository=d["repository"],
        old_branch=d["old_branch"],
        new_branch=d["new_branch"],
        changed_at=_dt_in(d["changed_at"]),
    )


def _user_wallet_in(d: dict[str, Any]) -> UserWallet:
    return UserWallet(
        login=d["login"],
        platform=d["platform"],
        address=WalletAddress(d["address"]),
        source=_source_in(d["source"]),
        synced_at=_dt_in(d["synced_at"]),
    )


def _history_entry_in(d: dict[str, Any]) -> WalletHistoryEntry:
    return WalletHistoryEntry(
        login=d["login"],
        platform=d["platform"],
        address=WalletAddress(d["address"]),
        source=_source_in(d["source"]),
        recorded_at=_dt_in(d["recorded_at"]),
    )


def _wallet_link_in(d: dict[str, Any]) -> WalletLoginLink:
    return WalletLoginLink(
        wallet=WalletAddress(d["wallet"]),
        platform=d["platform"],
        login=d["login"],
        linked_at=_dt_in(d["linked_at"]),
    )


def _project_in(d: dict[str, Any]) -> Project:
    return Project(
        id=d["id"],
        name=d["name"],
        description=d.get("description"),
        created_at=_dt_in(d["created_at"]),
        updated_at=_dt_in(d["updated_at"]),
    )


def _project_owner_in(d: dict[str, Any]) -> ProjectOwner:
    return ProjectOwner(
        project_id=d["project_id"],
        github_username=d["github_username"],
        role=d["role"],
        added_at=_dt_in(d["added_at"]),
    )


def _decoder(build: Callable[[dict[str, Any]], T], entity: str) -> Callable[[bytes], T]:
    def decode(value: bytes) -> T:
        try:
            return build(_load(value))
        except (ValueError, KeyError, TypeError, AttributeError, InvalidWalletAddressError) as e:
            raise RecordCorruptedError(f"cannot decode {entity}: {e}") from e

    decode.__name__ = f"decode_{entity}"
    return decode


# Stored addresses are re-validated on decode; a record holding an address
# that fails the checksum is treated as corrupt.
decode_repository = _decoder(_repository_in, "repository")
decode_pull_request = _decoder(_pull_request_in, "pull_request")
decode_base_branch_change = _decoder(_base_branch_change_in, "base_branch_change")
decode_user_wallet = _decoder(_user_wallet_in, "user_wallet")
decode_wallet_history_entry = _decoder(_history_entry_in, "wallet_history_entry")
decode_wallet_link = _decoder(_wallet_link_in, "wallet_link")
decode_project = _decoder(_project_in, "project")
decode_project_owner = _decoder(_project_owner_in, "project_owner")
