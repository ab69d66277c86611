"""
gitcircles command line.

    gitcircles init
    gitcircles collect --repo owner/name [--token T] [--base-branch main] [--days N] [--project-id ID]
    gitcircles status [--project-id ID]
    gitcircles project create|list|show|delete|add-owner|remove-owner ...
    gitcircles wallet sync|show|history|lookup ...

Tables go to stdout, logs to stderr. Any GitCirclesError prints
"error: ..." and exits 1.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from gitcircles.cli import display
from gitcircles.collector import collect_repository
from gitcircles.config import Settings, get_settings
from gitcircles.config.env import load_gitcircles_env
from gitcircles.core.exceptions import AuthError, GitCirclesError, ProjectNotFoundError
from gitcircles.database import Database, get_database
from gitcircles.database.models import GITHUB_PLATFORM
from gitcircles.github_client import GitHubClient
from gitcircles.gitcircles_logging import get_logger
from gitcircles.projects import PROJECT_ROLES, ProjectService
from gitcircles.utils.wallet_utils import validate_wallet_address
from gitcircles.wallet_sync import WalletSyncService

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitcircles",
        description="Collect merged pull requests and contributor wallet addresses from GitHub.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Initialize the local database")

    collect = sub.add_parser("collect", help="Collect merged pull requests from a repository")
    collect.add_argument("-r", "--repo", required=True, help="Repository as owner/repo")
    collect.add_argument("-t", "--token", default=None, help="GitHub token (default: GITHUB_TOKEN)")
    collect.add_argument("-b", "--base-branch", default="main", help="Target base branch (default: main)")
    collect.add_argument("-d", "--days", type=int, default=None, help="Only PRs merged in the last N days")
    collect.add_argument("-p", "--project-id", default=None, help="Link the repository to this project")

    status = sub.add_parser("status", help="Show tracked repositories and projects")
    status.add_argument("-p", "--project-id", default=None, help="Show one project only")

    project = sub.add_parser("project", help="Manage projects")
    psub = project.add_subparsers(dest="project_command", required=True)
    create = psub.add_parser("create", help="Create a project")
    create.add_argument("name")
    create.add_argument("-d", "--description", default=None)
    psub.add_parser("list", help="List projects")
    show = psub.add_parser("show", help="Show a project with owners and repositories")
    show.add_argument("project_id")
    delete = psub.add_parser("delete", help="Delete a project with no linked repositories")
    delete.add_argument("project_id")
    add_owner = psub.add_parser("add-owner", help="Add an owner to a project")
    add_owner.add_argument("project_id")
    add_owner.add_argument("username")
    add_owner.add_argument("-r", "--role", default="member", help=f"One of: {', '.join(PROJECT_ROLES)}")
    remove_owner = psub.add_parser("remove-owner", help="Remove an owner from a project")
    remove_owner.add_argument("project_id")
    remove_owner.add_argument("username")

    wallet = sub.add_parser("wallet", help="Contributor wallet addresses")
    wsub = wallet.add_subparsers(dest="wallet_command", required=True)
    wsync = wsub.add_parser("sync", help="Fetch and record the address a login publishes")
    wsync.add_argument("login")
    wsync.add_argument("-t", "--token", default=None, help="GitHub token (default: GITHUB_TOKEN)")
    wshow = wsub.add_parser("show", help="Show the current address for a login")
    wshow.add_argument("login")
    whistory = wsub.add_parser("history", help="Show every address a login has published")
    whistory.add_argument("login")
    wlookup = wsub.add_parser("lookup", help="Show every login linked to an address")
    wlookup.add_argument("address")

    return parser


def _github_client(settings: Settings) -> GitHubClient:
    return GitHubClient(
        settings.github_token,
        api_url=settings.github_api_url,
        raw_url=settings.github_raw_url,
        timeout_sec=settings.http_timeout_sec,
    )


def cmd_init(settings: Settings, db: Database, args: argparse.Namespace) -> int:
    print(f"Database initialized at: {settings.database_path}")
    return 0


async def _collect(settings: Settings, db: Database, args: argparse.Namespace):
    async with _github_client(settings) as client:
        return await collect_repository(
            db,
            client,
            args.repo,
            base_branch=args.base_branch,
            days_back=args.days,
            project_id=args.project_id,
        )


def cmd_collect(settings: Settings, db: Database, args: argparse.Namespace) -> int:
    if not settings.github_token:
        raise AuthError("GitHub token required. Use --token or set GITHUB_TOKEN environment variable")
    print(f"Collecting merged PRs from {args.repo} (base: {args.base_branch})")
    if args.days is not None:
        print(f"Looking back {args.days} days")
    result = asyncio.run(_collect(settings, db, args))
    if result.base_branch_change is not None:
        change = result.base_branch_change
        print(f"Base branch changed from '{change.old_branch}' to '{change.new_branch}'")
    total = result.repository.total_prs
    if not result.new_pull_requests:
        print(f"No new merged PRs found. {total} total PRs tracked.")
    else:
        display.display_pull_requests(result.new_pull_requests)
        print(f"Added {len(result.new_pull_requests)} new PRs. {total} total PRs tracked.")
    return 0


def cmd_status(settings: Settings, db: Database, args: argparse.Namespace) -> int:
    if args.project_id:
        details = ProjectService(db).show(args.project_id)
        if details is None:
            raise ProjectNotFoundError(args.project_id)
        display.display_project_details(details.project, details.owners, details.repositories)
        return 0
    repos = db.list_repositories()
    projects = db.list_projects()
    if projects:
        print("Projects:")
        display.display_projects(projects)
        print()
    if repos:
        print("All Repositories:")
        display.display_repository_status(repos)
    elif not projects:
        print("No repositories or projects being tracked.")
        print("Use 'gitcircles collect --repo owner/repo' to start tracking repositories.")
        print("Use 'gitcircles project create <name>' to create a project.")
    return 0


def cmd_project(settings: Settings, db: Database, args: argparse.Namespace) -> int:
    service = ProjectService(db)
    action = args.project_command
    if action == "create":
        project = service.create(args.name, args.description)
        print(f"Created project '{project.name}' with ID: {project.id}")
        if project.description:
            print(f"  Description: {project.description}")
    elif action == "list":
        display.display_projects(service.list())
    elif action == "show":
        details = service.show(args.project_id)
        if details is None:
            raise ProjectNotFoundError(args.project_id)
        display.display_project_details(details.project, details.owners, details.repositories)
    elif action == "delete":
        project = service.delete(args.project_id)
        print(f"Deleted project '{project.name}' ({project.id})")
    elif action == "add-owner":
        owner = service.add_owner(args.project_id, args.username, args.role)
        print(f"Added {owner.github_username} as {owner.role} to project {owner.project_id}")
    elif action == "remove-owner":
        service.remove_owner(args.project_id, args.username)
        print(f"Removed {args.username} from project {args.project_id}")
    return 0


async def _wallet_sync(settings: Settings, db: Database, login: str):
    async with _github_client(settings) as client:
        return await WalletSyncService(db, client).sync(login)


def cmd_wallet(settings: Settings, db: Database, args: argparse.Namespace) -> int:
    action = args.wallet_command
    if action == "sync":
        result = asyncio.run(_wallet_sync(settings, db, args.login))
        if result is None:
            print(f"{args.login} has not published a wallet address.")
        elif result.changed:
            previous = result.previous if result.previous is not None else "none"
            print(f"Wallet for {args.login} updated: {previous} -> {result.current} (branch {result.source.branch})")
        else:
            print(f"Wallet for {args.login} unchanged: {result.current}")
    elif action == "show":
        wallet = db.get_user_wallet(GITHUB_PLATFORM, args.login)
        if wallet is None:
            print(f"No wallet recorded for {args.login}.")
        else:
            display.display_user_wallet(wallet)
    elif action == "history":
        display.display_wallet_history(db.get_wallet_history(GITHUB_PLATFORM, args.login))
    elif action == "lookup":
        address = validate_wallet_address(args.address)
        display.display_wallet_links(db.get_logins_for_wallet(address, GITHUB_PLATFORM))
    return 0


COMMANDS = {
    "init": cmd_init,
    "collect": cmd_collect,
    "status": cmd_status,
    "project": cmd_project,
    "wallet": cmd_wallet,
}


def main(argv: list[str] | None = None) -> int:
    load_gitcircles_env()
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings(token=getattr(args, "token", None))
        db = get_database(settings.database_path, synchronous=settings.sqlite_synchronous)
        return COMMANDS[args.command](settings, db, args)
    except GitCirclesError as e:
        logger.error("command_failed", command=args.command, error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
