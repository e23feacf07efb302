#!/usr/bin/env python3
"""
Alumni Connect -- operator command line.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload
  python main.py seed
  python main.py purge-sessions
  python main.py create-user mod@alumni.edu --name "Mod Erator" --role moderator
  python main.py create-user admin2@alumni.edu --name "Second Admin" --role admin --password s3cret

Self-registration through POST /auth/signup only ever creates role "user";
moderator and admin accounts are provisioned here.

Environment variables: see core/config.py (DATABASE_URL, SECRET_KEY, DEBUG, ...).
"""

import argparse
import getpass
import sys

from auth.errors import InvalidPassword, UserAlreadyExists
from auth.models import Role
from auth.service import AuthService, seed_demo_users
from auth.sessions import SessionManager
from core.config import get_settings
from kv.store import KVStore


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _cmd_seed(args: argparse.Namespace) -> int:
    store = KVStore(get_settings().database_url)
    try:
        created = seed_demo_users(store)
    finally:
        store.close()
    print(f"  Demo accounts created: {created}")
    return 0


def _cmd_create_user(args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    if not password:
        print("  [!] Password must not be empty.")
        return 1

    store = KVStore(get_settings().database_url)
    try:
        service = AuthService(store, SessionManager(store))
        user = service.create_user(args.email.strip().lower(), password, args.name, role=args.role)
    except UserAlreadyExists:
        print(f"  [!] A user with email '{args.email}' already exists.")
        return 1
    except InvalidPassword as exc:
        print(f"  [!] {exc.message}.")
        return 1
    finally:
        store.close()
    print(f"  Created {user.role} '{user.email}' (id {user.id})")
    return 0


def _cmd_purge_sessions(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = KVStore(settings.database_url)
    try:
        removed = SessionManager(store, ttl_seconds=settings.session_ttl_seconds).purge_expired()
    finally:
        store.close()
    print(f"  Expired sessions removed: {removed}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Alumni Connect operator commands")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes (development)")
    serve.set_defaults(func=_cmd_serve)

    seed = sub.add_parser("seed", help="Create the demo admin and user accounts if missing")
    seed.set_defaults(func=_cmd_seed)

    create = sub.add_parser("create-user", help="Provision an account with any role")
    create.add_argument("email")
    create.add_argument("--name", required=True)
    create.add_argument("--role", choices=[r.value for r in Role], default=Role.user.value)
    create.add_argument("--password", help="Prompted for if omitted")
    create.set_defaults(func=_cmd_create_user)

    purge = sub.add_parser("purge-sessions", help="Delete sessions older than SESSION_TTL_SECONDS")
    purge.set_defaults(func=_cmd_purge_sessions)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
