#!/usr/bin/env python3
"""
Advocate directory -- account provisioning from the command line.

The HTTP API cannot create the first admin (every user route needs one), so
accounts are bootstrapped here, against the same DATABASE_URL the server uses.

Usage:
  python main.py create-user USERNAME PASSWORD --name "Full Name" --role admin
  python main.py create-user USERNAME PASSWORD --name "Full Name"
  python main.py list-users
  python main.py list-users --search ali

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the user database (default: sqlite:///advocates.db)
"""

import argparse
import sys

from auth import users as user_service
from auth.errors import UserError
from auth.models import Role
from auth.store import UserStore
from core.config import get_settings


def _create_user(store: UserStore, args: argparse.Namespace) -> int:
    try:
        user = user_service.create_user(store, args.username, args.password, args.name or args.username, Role(args.role))
    except UserError as e:
        print(f"  [!] {e.message}")
        return 1
    print(f"  Created {user.role} '{user.username}' (id={user.id}).")
    return 0


def _list_users(store: UserStore, args: argparse.Namespace) -> int:
    page = user_service.list_users(store, page=1, limit=args.limit, search=args.search)
    if not page.users:
        print("  No users found.")
        return 0
    print(f"  {'ID':>4}  {'USERNAME':<20} {'ROLE':<6} NAME")
    for user in page.users:
        print(f"  {user.id:>4}  {user.username:<20} {user.role:<6} {user.name}")
    if page.total > len(page.users):
        print(f"\n  Showing {len(page.users)} of {page.total}. Use --limit to see more.")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="advocates",
        description="Provision accounts for the advocate directory.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-user admin 'change-me-now' --name "Site Admin" --role admin
  python main.py create-user alice 's3cret-pass' --name "Alice Smith"
  DATABASE_URL=sqlite:///prod.db python main.py list-users
        """,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    create = subparsers.add_parser("create-user", help="Create a user account")
    create.add_argument("username", help="Login name (unique, max 50 characters)")
    create.add_argument("password", help="Plaintext password; stored as a bcrypt hash")
    create.add_argument("--name", default=None, help="Display name (defaults to the username)")
    create.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.USER.value,
        help="Role to grant: admin or user (default: user)",
    )

    lister = subparsers.add_parser("list-users", help="List user accounts")
    lister.add_argument("--search", default="", help="Filter by username or name substring")
    lister.add_argument("--limit", type=int, default=50, help="Maximum rows to print (default: 50)")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    store = UserStore(get_settings().database_url)
    try:
        if args.command == "create-user":
            return _create_user(store, args)
        return _list_users(store, args)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
