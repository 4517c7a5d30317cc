#!/usr/bin/env python3
"""
BuildTrack -- admin command line.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 4000
  python main.py serve --reload
  python main.py create-user --email alex@buildtrack.com --name "Alex Builder"
  python main.py purge-sessions

Configuration comes from the environment / .env file (see core/config.py):
  DATABASE_URL          Auth store URL (users and sessions).
  TRACKER_DATABASE_URL  Tracker store URL (projects, tasks, expenses).
  KDF_ROUNDS            Password KDF work factor (>= 50 unless DEBUG=true).
"""

import argparse
import getpass
import sys

from api.models import MAX_PASSWORD_LENGTH, MIN_PASSWORD_LENGTH
from auth.accounts import EmailTakenError, register_user
from auth.credentials import CredentialManager
from auth.sessions import SessionAuthority
from auth.store import AuthStore
from core.config import get_settings


def _prompt_password() -> str:
    """Prompt twice for a password. Returns "" if the entries are unusable."""
    password = getpass.getpass("  Password: ")
    if not MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH:
        print(f"  [!] Password must be {MIN_PASSWORD_LENGTH}-{MAX_PASSWORD_LENGTH} characters.")
        return ""
    if getpass.getpass("  Confirm password: ") != password:
        print("  [!] Passwords do not match.")
        return ""
    return password


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    """Register an account from the terminal, e.g. the first admin of a fresh install."""
    password = _prompt_password()
    if not password:
        return 1

    settings = get_settings()
    store = AuthStore(settings.database_url)
    try:
        user = register_user(store, CredentialManager.from_settings(settings), args.name, args.email, password)
    except EmailTakenError:
        print(f"  [!] An account with email '{args.email}' already exists.")
        return 1
    finally:
        store.close()

    print(f"  Created user {user.id} <{user.email}>.")
    return 0


def cmd_purge_sessions(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = AuthStore(settings.database_url)
    try:
        removed = SessionAuthority(store, ttl_seconds=settings.session_ttl_seconds).purge_expired()
    finally:
        store.close()
    print(f"  Removed {removed} expired session(s).")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildtrack",
        description="BuildTrack API server and account administration.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --port 4000
  python main.py create-user --email alex@buildtrack.com --name "Alex Builder"
  DATABASE_URL=sqlite:///prod_auth.db python main.py purge-sessions
        """,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = subparsers.add_parser("serve", help="Run the API server with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=4000, help="Bind port (default: 4000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=cmd_serve)

    create_user = subparsers.add_parser("create-user", help="Register an account; prompts for the password")
    create_user.add_argument("--email", required=True, help="Login email (exact match, case-sensitive)")
    create_user.add_argument("--name", required=True, help="Display name")
    create_user.set_defaults(func=cmd_create_user)

    purge = subparsers.add_parser("purge-sessions", help="Delete every expired session")
    purge.set_defaults(func=cmd_purge_sessions)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
