"""Command-line wrapper around the directory client services."""
from __future__ import annotations
import argparse
import json
import os
import sys
from typing import Any, Optional, Sequence

from .config import configure_logging, load_settings
from .config.settings import CONFIG_PATH_ENV
from .core import DirectoryClient, EventService, GroupService, UserService
from .exceptions import DirectoryClientError


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="directory-client", description="Directory API helper")
    parser.add_argument("--config", default=os.environ.get(CONFIG_PATH_ENV),
                        help=f"Config file (default: ${CONFIG_PATH_ENV})")
    parser.add_argument("--max-pages", type=_positive_int, default=None,
                        help="Stop list commands after this many pages")

    sub = parser.add_subparsers(dest="cmd")

    su = sub.add_parser("users", help="List users")
    su.add_argument("--search")
    su.add_argument("--limit", type=int)

    sg = sub.add_parser("user", help="Show one user")
    sg.add_argument("user_id")

    sa = sub.add_parser("activate", help="Activate a user")
    sa.add_argument("user_id")
    sa.add_argument("--send-email", action="store_true")

    sd = sub.add_parser("deactivate", help="Deactivate a user")
    sd.add_argument("user_id")

    sm = sub.add_parser("group-members", help="List group members")
    sm.add_argument("group_id")

    sga = sub.add_parser("group-add", help="Add a user to a group")
    sga.add_argument("group_id")
    sga.add_argument("user_id")

    sgr = sub.add_parser("group-remove", help="Remove a user from a group")
    sgr.add_argument("group_id")
    sgr.add_argument("user_id")

    se = sub.add_parser("events", help="Fetch audit events")
    se.add_argument("--since")
    se.add_argument("--until")
    se.add_argument("--filter", dest="filter_expr")
    se.add_argument("--limit", type=int)

    return parser


def _print(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True, default=str))


def run(args: argparse.Namespace, client: DirectoryClient) -> Any:
    """Dispatch a parsed command and return what should be printed."""
    users = UserService(client)
    groups = GroupService(client)

    if args.cmd == "users":
        return users.list_users(search=args.search, limit=args.limit, max_pages=args.max_pages)
    if args.cmd == "user":
        return users.get_user(args.user_id)
    if args.cmd == "activate":
        users.activate_user(args.user_id, send_email=args.send_email)
        return {"user": args.user_id, "status": "activated"}
    if args.cmd == "deactivate":
        users.deactivate_user(args.user_id)
        return {"user": args.user_id, "status": "deactivated"}
    if args.cmd == "group-members":
        return groups.list_group_members(args.group_id, max_pages=args.max_pages)
    if args.cmd == "group-add":
        groups.add_user_to_group(args.group_id, args.user_id)
        return {"group": args.group_id, "user": args.user_id, "member": True}
    if args.cmd == "group-remove":
        removed = groups.remove_user_from_group(args.group_id, args.user_id)
        return {"group": args.group_id, "user": args.user_id, "removed": removed}
    if args.cmd == "events":
        return EventService(client).fetch_events(
            since=args.since,
            until=args.until,
            filter_expr=args.filter_expr,
            limit=args.limit,
            max_pages=args.max_pages,
        )
    raise ValueError(f"Unknown command {args.cmd!r}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return

    if not args.config:
        parser.error(f"Missing --config (or set {CONFIG_PATH_ENV})")

    try:
        settings = load_settings(args.config)
        logger = configure_logging(settings.logging)
        client = DirectoryClient.from_settings(settings, logger=logger)
        result = run(args, client)
    except DirectoryClientError as e:
        print(f"[{args.cmd}] Error: {e}", file=sys.stderr)
        sys.exit(1)

    _print(result)


if __name__ == "__main__":
    main()
