"""
Plain-text tables for CLI output.
"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from gitcircles.database.models import (
    MergedPullRequest,
    Project,
    ProjectOwner,
    Repository,
    UserWallet,
    WalletHistoryEntry,
    WalletLoginLink,
)

TITLE_MAX = 50
SHA_DISPLAY = 8


def _minute(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M UTC")


def _day(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d")


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Left-aligned columns separated by two spaces, with a dashed rule under the header."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    lines = [
        "  ".join(h.ljust(widths[i]) for i, h in enumerate(headers)).rstrip(),
        "  ".join("-" * w for w in widths),
    ]
    for row in rows:
        lines.append("  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip())
    return "\n".join(lines)


def display_pull_requests(prs: Sequence[MergedPullRequest]) -> None:
    if not prs:
        print("No merged pull requests found.")
        return
    rows = [
        [
            str(pr.number),
            _truncate(pr.title, TITLE_MAX),
            pr.author,
            _minute(pr.merged_at),
            pr.base_branch,
            pr.merge_commit_sha[:SHA_DISPLAY],
        ]
        for pr in prs
    ]
    print(render_table(["PR#", "Title", "Author", "Merged Date", "Base Branch", "Commit SHA"], rows))
    print(f"Total merged PRs: {len(prs)}")


def display_repository_status(repos: Sequence[Repository]) -> None:
    if not repos:
        print("No repositories being tracked.")
        print("Use 'gitcircles collect --repo owner/repo' to start tracking.")
        return
    rows = [
        [
            repo.full_name,
            repo.current_base_branch,
            _minute(repo.last_sync) if repo.last_sync else "Never",
            str(repo.total_prs),
            _day(repo.first_sync),
        ]
        for repo in repos
    ]
    print(render_table(["Repository", "Base Branch", "Last Sync", "Total PRs", "First Tracked"], rows))
    print(f"Total repositories tracked: {len(repos)}")


def display_projects(projects: Sequence[Project]) -> None:
    if not projects:
        print("No projects found.")
        print("Use 'gitcircles project create <name>' to create a project.")
        return
    rows = [
        [p.id, p.name, p.description or "-", _day(p.created_at), _day(p.updated_at)]
        for p in projects
    ]
    print(render_table(["Project ID", "Name", "Description", "Created", "Updated"], rows))
    print(f"Total projects: {len(projects)}")


def display_project_details(
    project: Project,
    owners: Sequence[ProjectOwner],
    repos: Sequence[Repository],
) -> None:
    print(f"Project: {project.name}")
    print(f"ID: {project.id}")
    if project.description:
        print(f"Description: {project.description}")
    print(f"Created: {_minute(project.created_at)}")
    print(f"Updated: {_minute(project.updated_at)}")

    print(f"\nProject Owners ({len(owners)}):")
    if owners:
        rows = [[o.github_username, o.role, _day(o.added_at)] for o in owners]
        print(render_table(["Username", "Role", "Added"], rows))
    else:
        print("  No owners added yet.")

    print(f"\nRepositories ({len(repos)}):")
    if repos:
        display_repository_status(repos)
    else:
        print("  No repositories tracked for this project yet.")
        print(
            f"  Use 'gitcircles collect --repo owner/repo --project-id {project.id}' to add repositories.",
        )


def display_user_wallet(wallet: UserWallet) -> None:
    print(f"Login: {wallet.login} ({wallet.platform})")
    print(f"Address: {wallet.address}")
    print(f"Source: {wallet.source.type} (branch {wallet.source.branch})")
    print(f"Synced: {_minute(wallet.synced_at)}")


def display_wallet_history(entries: Sequence[WalletHistoryEntry]) -> None:
    if not entries:
        print("No wallet history.")
        return
    rows = [[_minute(e.recorded_at), str(e.address), e.source.branch] for e in entries]
    print(render_table(["Recorded", "Address", "Branch"], rows))


def display_wallet_links(links: Sequence[WalletLoginLink]) -> None:
    if not links:
        print("No logins linked to this address.")
        return
    rows = [[link.login, link.platform, _minute(link.linked_at)] for link in links]
    print(render_table(["Login", "Platform", "Linked"], rows))
