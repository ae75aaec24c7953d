#!/usr/bin/env python3
"""
Library backend -- command-line entry point.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload
  python main.py create-admin --email admin@example.com --name "Head Librarian"

Accounts registered over HTTP are never admins. create-admin is the only way
to grant admin rights: it creates the account, or promotes an existing one
with the same email.

Environment variables (see core/config.py):
  SECRET_KEY     Signs session cookies and bearer tokens (32+ chars).
  DATABASE_URL   SQLAlchemy URL. Defaults to library.db next to this file.
  DEBUG          true to auto-generate a SECRET_KEY for local development.
"""

import argparse
import getpass
import logging
import sys

from sqlalchemy.exc import IntegrityError

logger = logging.getLogger("library.cli")


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _create_admin(args: argparse.Namespace) -> int:
    from auth.models import User
    from auth.store import UserStore
    from auth.tokens import hash_password
    from core.config import get_settings
    from core.db import create_db_engine

    engine = create_db_engine(get_settings().database_url)
    try:
        store = UserStore(engine)
        existing = store.get_by_email(args.email)
        if existing is not None:
            store.set_admin(existing.id, True)
            print(f"  {args.email} is now an admin.")
            return 0

        password = getpass.getpass("Password: ")
        if not password or password != getpass.getpass("Repeat password: "):
            print("  [!] Passwords are empty or do not match.")
            return 1
        if len(password.encode("utf-8")) > 72:
            print("  [!] Password must be at most 72 bytes.")
            return 1

        user = User(
            email=args.email,
            name=args.name or args.email,
            hashed_password=hash_password(password),
            is_admin=True,
        )
        try:
            user_id = store.create_user(user)
        except IntegrityError:
            print(f"  [!] {args.email} was registered concurrently. Run the command again to promote it.")
            return 1
        logger.info("Admin account created (id=%s)", user_id)
        print(f"  Admin {args.email} created.")
        return 0
    finally:
        engine.dispose()


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s %(message)s")

    parser = argparse.ArgumentParser(
        prog="library",
        description="Library catalog and rental backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  python main.py create-admin --email admin@example.com --name Admin
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    admin = sub.add_parser("create-admin", help="Create an admin account or promote an existing one")
    admin.add_argument("--email", required=True, help="Account email")
    admin.add_argument("--name", default=None, help="Display name for a new account (default: the email)")
    admin.set_defaults(func=_create_admin)

    args = parser.parse_args()
    if not getattr(args, "func", None):
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
