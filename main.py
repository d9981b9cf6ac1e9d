#!/usr/bin/env python3
"""
Oil Union API -- operator command line.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload
  python main.py create-admin --email root@union.example --username root --name "Union Admin"
  python main.py prune-audit --days 365

Environment variables (see core/config.py for the full list):
  DATABASE_URL         SQLAlchemy URL. Default: sqlite:///./oilunion.db
  SECRET_KEY           Access-token signing key (>= 32 chars). Required unless DEBUG=true.
  REFRESH_SECRET_KEY   Refresh-token signing key (>= 32 chars, different from SECRET_KEY).
  DEBUG                true generates throwaway keys and enables /docs.
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from core.config import get_settings


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run("asgi:app", host=args.host, port=args.port or settings.port, reload=args.reload)
    return 0


def _read_password(supplied: Optional[str]) -> Optional[str]:
    if supplied:
        return supplied
    first = getpass.getpass("Password: ")
    second = getpass.getpass("Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return None
    return first


def _create_admin(args: argparse.Namespace) -> int:
    """Create an admin account. The API has no endpoint for this; it is an operator task."""
    from sqlalchemy.exc import IntegrityError

    from auth.models import ROLE_ADMIN, User
    from auth.store import UserStore
    from auth.tokens import PASSWORD_MAX_BYTES, hash_password
    from core.database import Database

    password = _read_password(args.password)
    if password is None:
        return 1
    if len(password) < 6:
        print("  [!] Password must be at least 6 characters.")
        return 1
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        print(f"  [!] Password must be at most {PASSWORD_MAX_BYTES} bytes.")
        return 1

    db = Database.from_settings(get_settings())
    try:
        store = UserStore(db)
        if store.get_by_email(args.email) is not None:
            print(f"  [!] A user with email {args.email} already exists.")
            return 1
        user = User(
            role=ROLE_ADMIN,
            name=args.name,
            username=args.username,
            email=args.email,
            password_hash=hash_password(password),
        )
        try:
            user_id = store.create_user(user)
        except IntegrityError:
            print(f"  [!] Username {args.username} is already taken.")
            return 1
        print(f"  Admin created: {args.email} (id {user_id})")
        return 0
    finally:
        db.close()


def _prune_audit(args: argparse.Namespace) -> int:
    from core.database import Database
    from registry.store import RegistryStore
    from services.audit import AuditService

    if args.days < 1:
        print("  [!] --days must be at least 1.")
        return 1
    db = Database.from_settings(get_settings())
    try:
        removed = AuditService(RegistryStore(db)).prune(args.days)
    finally:
        db.close()
    print(f"  Removed {removed} audit entries older than {args.days} days.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="main.py",
        description="Oil Union API -- run the server and perform operator tasks.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API with uvicorn.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=None, help="Default: PORT setting (5000).")
    serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes (development).")
    serve.set_defaults(func=_serve)

    admin = sub.add_parser("create-admin", help="Create an admin account.")
    admin.add_argument("--email", required=True)
    admin.add_argument("--username", required=True)
    admin.add_argument("--name", required=True)
    admin.add_argument("--password", default=None, help="Omit to be prompted (recommended).")
    admin.set_defaults(func=_create_admin)

    prune = sub.add_parser("prune-audit", help="Delete audit entries older than N days.")
    prune.add_argument("--days", type=int, required=True)
    prune.set_defaults(func=_prune_audit)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
