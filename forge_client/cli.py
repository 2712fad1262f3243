"""
Forge CLI - Opinionated command-line interface.

This layer provides the user-facing CLI commands, using the SDK layer
for all operations. It handles:
- Argument parsing
- TTY detection for human vs machine output
- Pretty formatting for human output
- JSON output for piping/automation
"""

import argparse
import itertools
import json
import logging
import sys
from typing import Any

from forge_client.builder import ForgeBuilder
from forge_client.core.errors import ForgeError
from forge_client.models.issue import IssueState
from forge_client.models.pull_request import PullRequest
from forge_client.models.repository import Repository
from forge_client.models.user import Person
from forge_client.sdk import Forge

logger = logging.getLogger(__name__)

# =============================================================================
# Output Helpers
# =============================================================================


HUMAN_LIMIT = 20  # Default limit for human-readable output
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (LLM/machine)."""
    return sys.stdout.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: ForgeError) -> None:
    """Print error and exit."""
    json_output(error.to_dict())
    sys.exit(1)


def success_output(data: Any) -> None:
    """Print success output."""
    json_output(data)


def table_output(
    headers: list[str],
    rows: list[list[str]],
    widths: list[int],
) -> None:
    """Print a formatted table for human output."""
    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
    print(header_line)
    print("-" * len(header_line))

    for row in rows:
        print("  ".join(str(v)[:w].ljust(w) for v, w in zip(row, widths)))


def setup_logging(level: int = logging.INFO) -> None:
    """
    Configure the root logger to write to stderr.

    Args:
        level: Minimum level to emit (e.g. logging.DEBUG)

    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stdout is reserved for command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)
    logger.debug("Logging configured. Level=%s", logging.getLevelName(level))


# =============================================================================
# Serialisation
# =============================================================================


def repository_dict(repo: Repository) -> dict[str, Any]:
    return {
        "full_name": repo.full_name,
        "description": repo.description,
        "private": repo.private,
        "fork": repo.is_fork,
        "archived": repo.archived,
        "default_branch": repo.default_branch,
        "language": repo.language,
        "stargazers_count": repo.stargazers_count,
        "forks_count": repo.forks_count,
        "open_issues_count": repo.open_issues_count,
        "html_url": repo.html_url,
        "pushed_at": repo.pushed_at,
    }


def pull_request_dict(pr: PullRequest) -> dict[str, Any]:
    return {
        "number": pr.number,
        "title": pr.title,
        "state": pr.state,
        "user": pr.user.login if pr.user else None,
        "head": pr.head.ref if pr.head else None,
        "base": pr.base.ref if pr.base else None,
        "draft": pr.draft,
        "html_url": pr.html_url,
        "created_at": pr.created_at,
    }


def person_dict(person: Person) -> dict[str, Any]:
    return {
        "login": person.login,
        "name": person.name,
        "type": person.type,
        "company": person.company,
        "location": person.location,
        "public_repos": person.public_repos,
        "followers": person.followers,
        "html_url": person.html_url,
    }


# =============================================================================
# CLI Commands
# =============================================================================


def cmd_rate_limit(forge: Forge, _args: argparse.Namespace) -> None:
    """Show the current request quota."""
    try:
        limit = forge.get_rate_limit()
        if is_tty():
            print(f"Limit:     {limit.limit}")
            print(f"Remaining: {limit.remaining}")
            print(f"Resets at: {limit.reset_date.isoformat()}")
        else:
            success_output(
                {
                    "limit": limit.limit,
                    "remaining": limit.remaining,
                    "reset": limit.reset,
                    "reset_date": limit.reset_date.isoformat(),
                }
            )
    except ForgeError as e:
        error_output(e)


def cmd_repo_get(forge: Forge, args: argparse.Namespace) -> None:
    """Get a repository by full name."""
    try:
        success_output(repository_dict(forge.get_repository(args.name)))
    except ForgeError as e:
        error_output(e)


def cmd_repo_prs(forge: Forge, args: argparse.Namespace) -> None:
    """List the pull requests of a repository."""
    try:
        repo = forge.get_repository(args.name)
        prs = repo.list_pull_requests(state=IssueState[args.state.upper()])
        if is_tty():
            limit = args.limit if args.limit is not None else HUMAN_LIMIT
            page = list(itertools.islice(prs.iterator(page_size=min(limit, 100)), limit))
            if not page:
                print("No pull requests found.")
                return
            table_output(
                ["#", "Title", "Author", "Head"],
                [[pr.number, pr.title or "", pr.user.login if pr.user else "", pr.head.ref if pr.head else ""] for pr in page],
                [6, 50, 20, 30],
            )
        else:
            items = prs if args.limit is None else itertools.islice(prs, args.limit)
            data = [pull_request_dict(pr) for pr in items]
            success_output({"data": data, "total_count": len(data)})
    except ForgeError as e:
        error_output(e)


def cmd_user_get(forge: Forge, args: argparse.Namespace) -> None:
    """Get a user by login."""
    try:
        user = forge.get_user(args.login)
        if user is None:
            raise ForgeError(f"User not found: {args.login}")
        success_output(person_dict(user))
    except ForgeError as e:
        error_output(e)


def cmd_search_repos(forge: Forge, args: argparse.Namespace) -> None:
    """Search repositories."""
    try:
        search = forge.search_repositories().q(args.query)
        if args.language:
            search.language(args.language)
        if args.sort:
            search.sort(args.sort)
        results = search.list()
        limit = args.limit if args.limit is not None else HUMAN_LIMIT
        if is_tty():
            page = list(itertools.islice(results.iterator(page_size=min(limit, 100)), limit))
            if not page:
                print("No repositories found.")
                return
            table_output(
                ["Name", "Stars", "Language", "Description"],
                [[r.full_name, r.stargazers_count, r.language or "", r.description or ""] for r in page],
                [40, 7, 12, 50],
            )
            print(f"\nShowing {len(page)} of {results.total_count} repositories")
        else:
            data = [repository_dict(r) for r in itertools.islice(results, limit)]
            success_output({"data": data, "total_count": results.total_count})
    except ForgeError as e:
        error_output(e)


# =============================================================================
# Main CLI
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Forge CLI - Command-line interface for the Forge v3 API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output Modes:
  TTY (human):  Pretty tables, limited rows
  Pipe (LLM):   Full JSON, auto-paginates all results

Credentials:
  --token, then ~/.github (oauth=..., login=..., endpoint=...),
  then GITHUB_OAUTH / GITHUB_LOGIN / GITHUB_ENDPOINT.

Examples:
  forge rate-limit
  forge repo get octo/hello
  forge repo prs octo/hello --state all | jq '.data[].number'
  forge search repos "http client" --language python
""",
    )
    parser.add_argument("--endpoint", "-e", help="API base URL (overrides GITHUB_ENDPOINT)")
    parser.add_argument("--token", "-t", help="OAuth token (overrides GITHUB_OAUTH)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log requests and rate-limit activity")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ========== Rate limit ==========
    rate = subparsers.add_parser("rate-limit", help="Show the current request quota")
    rate.set_defaults(func=cmd_rate_limit)

    # ========== Repositories ==========
    repo = subparsers.add_parser("repo", help="Inspect repositories")
    repo.set_defaults(func=lambda _f, _a: repo.print_help())
    repo_sub = repo.add_subparsers(dest="repo_command")

    r_get = repo_sub.add_parser("get", help="Get repository details")
    r_get.add_argument("name", help="Repository full name (owner/name)")
    r_get.set_defaults(func=cmd_repo_get)

    r_prs = repo_sub.add_parser("prs", help="List pull requests")
    r_prs.add_argument("name", help="Repository full name (owner/name)")
    r_prs.add_argument("--state", "-s", choices=["open", "closed", "all"], default="open", help="Filter by state")
    r_prs.add_argument("--limit", "-l", type=int, help="Max results")
    r_prs.set_defaults(func=cmd_repo_prs)

    # ========== Users ==========
    user = subparsers.add_parser("user", help="Inspect users")
    user.set_defaults(func=lambda _f, _a: user.print_help())
    user_sub = user.add_subparsers(dest="user_command")

    u_get = user_sub.add_parser("get", help="Get user profile")
    u_get.add_argument("login", help="User login")
    u_get.set_defaults(func=cmd_user_get)

    # ========== Search ==========
    search = subparsers.add_parser("search", help="Search the forge")
    search.set_defaults(func=lambda _f, _a: search.print_help())
    search_sub = search.add_subparsers(dest="search_command")

    s_repos = search_sub.add_parser("repos", help="Search repositories")
    s_repos.add_argument("query", help="Search terms")
    s_repos.add_argument("--language", help="Restrict to a language")
    s_repos.add_argument("--sort", choices=["stars", "forks", "updated"], help="Sort field")
    s_repos.add_argument("--limit", "-l", type=int, help=f"Max results (default {HUMAN_LIMIT})")
    s_repos.set_defaults(func=cmd_search_repos)

    return parser


def create_forge(args: argparse.Namespace) -> Forge:
    """Build a session from the global flags, the property file or the environment."""
    try:
        builder = ForgeBuilder.from_credentials()
    except ForgeError as e:
        logger.debug("%s; continuing anonymously", e)
        builder = ForgeBuilder()
    if args.token:
        builder.with_oauth_token(args.token)
    if args.endpoint:
        builder.with_endpoint(args.endpoint)
    return builder.build()


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    if args.verbose:
        setup_logging(logging.DEBUG)

    forge = create_forge(args)

    # Run command (all subparsers have default funcs that print help)
    args.func(forge, args)


if __name__ == "__main__":
    main()
