"""
Abby CLI - Opinionated command-line interface.

This layer provides the user-facing CLI commands, using the SDK layer
for all operations. It handles:
- Argument parsing
- Loading ABBY_* settings from the environment or a .env file
- TTY detection for human vs machine output
- JSON output for piping/automation
"""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any

from dotenv import load_dotenv

from abby_sdk.core.errors import AbbyError, APIError
from abby_sdk.events import ResponseEvent
from abby_sdk.sdk import Abby

# =============================================================================
# Output Helpers
# =============================================================================


HUMAN_LIMIT = 20  # Default limit for human-readable output

STATUS_HINTS = {
    401: "Invalid API key. Check your ABBY_API_KEY.",
    403: "Access denied. Your API key may lack permissions.",
    404: "Resource not found.",
    429: "Rate limited. Please wait and try again.",
}


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (machine)."""
    return sys.stdout.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: AbbyError) -> None:
    """Print error and exit."""
    result = error.to_dict()
    if isinstance(error, APIError) and error.status in STATUS_HINTS:
        result["hint"] = STATUS_HINTS[error.status]
    json_output(result)
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
    # Header
    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
    print(header_line)
    print("-" * len(header_line))

    # Rows
    for row in rows:
        print("  ".join(str(v)[:w].ljust(w) for v, w in zip(row, widths)))


def log_response(event: ResponseEvent) -> None:
    """Print one line per API call to stderr (--verbose)."""
    print(f"{event.method} {event.url} - {event.status} ({event.duration}ms)", file=sys.stderr)


# =============================================================================
# CLI Commands
# =============================================================================


async def cmd_me(client: Abby, _args: argparse.Namespace) -> None:
    """Show the company and user behind the API key."""
    me = await client.company.get_me()

    if is_tty():
        print(f"Company: {me.company.commercial_name or '(not set)'}")
        print(f"User: {me.user.full_name}")
        print(f"Email: {me.user.email or '-'}")
    else:
        success_output(
            {
                "company": {"id": me.company.id, "commercial_name": me.company.commercial_name},
                "user": {"id": me.user.id, "name": me.user.full_name, "email": me.user.email},
            }
        )


async def cmd_contacts_list(client: Abby, args: argparse.Namespace) -> None:
    """List contacts."""
    limit = args.limit or (HUMAN_LIMIT if is_tty() else 100)
    result = await client.contact.retrieve_contacts(page=args.page, limit=limit, archived=args.archived)

    if is_tty():
        if not result.docs:
            print("No contacts found.")
            return
        rows = [[c.id, c.fullname, c.emails[0] if c.emails else "no email"] for c in result.docs]
        table_output(["ID", "NAME", "EMAIL"], rows, [26, 30, 36])
        remaining = result.total_docs - len(result.docs)
        if remaining > 0:
            print(f"\n... and {remaining} more")
    else:
        success_output(
            {
                "data": [{"id": c.id, "fullname": c.fullname, "emails": c.emails} for c in result.docs],
                "total_docs": result.total_docs,
                "page": result.page,
            }
        )


async def cmd_organizations_list(client: Abby, args: argparse.Namespace) -> None:
    """List organizations."""
    limit = args.limit or (HUMAN_LIMIT if is_tty() else 100)
    result = await client.organization.retrieve_organizations(page=args.page, limit=limit)

    if is_tty():
        if not result.docs:
            print("No organizations found.")
            return
        rows = [[o.id, o.name, o.siret or "-"] for o in result.docs]
        table_output(["ID", "NAME", "SIRET"], rows, [26, 36, 16])
    else:
        success_output(
            {
                "data": [{"id": o.id, "name": o.name, "siret": o.siret} for o in result.docs],
                "total_docs": result.total_docs,
                "page": result.page,
            }
        )


async def cmd_request(client: Abby, args: argparse.Namespace) -> None:
    """Call an arbitrary endpoint through the authenticated client."""
    try:
        payload = json.loads(args.data) if args.data else None
    except json.JSONDecodeError as e:
        raise AbbyError(f"--data is not valid JSON: {e}") from e

    response = await client.get_client().request(args.method, args.path, json=payload)
    try:
        success_output(response.json())
    except ValueError:
        success_output({"status": response.status, "body": response.text()})


# =============================================================================
# Parser
# =============================================================================


Command = Callable[[Abby, argparse.Namespace], Awaitable[None]]


def _add_paging(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--page", type=int, default=1, help="Page number (default 1)")
    parser.add_argument("--limit", type=int, default=None, help="Items per page")


def create_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(prog="abby", description="Command-line access to the Abby API")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every API call to stderr")
    parser.add_argument("--base-url", help="API base URL (or ABBY_BASE_URL env var)")
    parser.add_argument("--timeout", type=int, help="Request timeout in milliseconds (or ABBY_TIMEOUT env var)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    me = subparsers.add_parser("me", help="Show current company and user")
    me.set_defaults(func=cmd_me)

    contacts = subparsers.add_parser("contacts", help="Contact operations")
    contacts_sub = contacts.add_subparsers(dest="action", required=True)
    contacts_list = contacts_sub.add_parser("list", help="List contacts")
    _add_paging(contacts_list)
    contacts_list.add_argument("--archived", action="store_true", default=None, help="Only archived contacts")
    contacts_list.set_defaults(func=cmd_contacts_list)

    organizations = subparsers.add_parser("organizations", help="Organization operations")
    organizations_sub = organizations.add_subparsers(dest="action", required=True)
    organizations_list = organizations_sub.add_parser("list", help="List organizations")
    _add_paging(organizations_list)
    organizations_list.set_defaults(func=cmd_organizations_list)

    request = subparsers.add_parser("request", help="Call any API endpoint")
    request.add_argument("method", choices=["GET", "POST", "PUT", "PATCH", "DELETE"], type=str.upper)
    request.add_argument("path", help="API path, e.g. /me")
    request.add_argument("--data", help="JSON request body")
    request.set_defaults(func=cmd_request)

    return parser


def run(client: Abby, args: argparse.Namespace) -> None:
    """Run the selected command, turning SDK errors into JSON error output."""
    command: Command = args.func
    try:
        asyncio.run(command(client, args))
    except AbbyError as e:
        error_output(e)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    load_dotenv()
    args = create_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        client = Abby.from_env(base_url=args.base_url, timeout=args.timeout)
    except AbbyError as e:
        error_output(e)
        return

    if args.verbose:
        client.on("response", log_response)

    run(client, args)


if __name__ == "__main__":
    main()
