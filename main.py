#!/usr/bin/env python3
"""
Quill -- blogging backend with password, bearer-token, and session auth.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload
  python main.py create-user --name "Ada Lovelace" --email ada@example.com
  python main.py list-users
  python main.py shell

Environment variables:
  SECRET_KEY    Required unless DEBUG=true. At least 32 characters.
  DATABASE_URL  SQLAlchemy URL. Defaults to quill.db next to the source tree.
  See core/config.py for the full list.
"""

import argparse
import code
import getpass
import sys

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from blog.store import PostStore
from core.config import get_settings
from core.errors import ValidationError


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def _read_password() -> str:
    """Prompt twice without echo. Returns "" if the two entries differ."""
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Confirm password: ")
    return first if first == second else ""


def _cmd_create_user(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = UserStore(settings.database_url)
    try:
        password = _read_password()
        if not password:
            print("  [!] Passwords did not match.")
            return 1
        try:
            record = PasswordHasher(rounds=settings.bcrypt_rounds).hash(password)
        except ValidationError as e:
            print(f"  [!] {e.message}")
            return 1
        user = User(
            name=args.name,
            email=args.email,
            username=args.username,
            hashed_password=record.hash,
            salt=record.salt,
        )
        try:
            user_id = store.create_user(user)
        except IntegrityError:
            print("  [!] An account with that email or username already exists.")
            return 1
        print(f"  Created user {user_id} <{user.email}>")
        return 0
    finally:
        store.close()


def _cmd_list_users(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = UserStore(settings.database_url)
    try:
        users = store.list_users()
        if not users:
            print("  No users.")
            return 0
        print(f"  {'ID':>5}  {'USERNAME':<20} {'EMAIL':<32} NAME")
        print("  " + "─" * 72)
        for u in users:
            print(f"  {u.id:>5}  {(u.username or '-'):<20} {u.email:<32} {u.name}")
        return 0
    finally:
        store.close()


def _cmd_shell(args: argparse.Namespace) -> int:
    """Interactive console with the stores and auth services bound."""
    settings = get_settings()
    users = UserStore(settings.database_url)
    posts = PostStore(settings.database_url)
    namespace = {
        "settings": settings,
        "users": users,
        "posts": posts,
        "hasher": PasswordHasher(rounds=settings.bcrypt_rounds),
        "tokens": TokenService.from_settings(settings),
    }
    banner = "Quill shell. Bound: " + ", ".join(sorted(namespace))
    try:
        code.interact(banner=banner, local=namespace, exitmsg="")
    finally:
        posts.close()
        users.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quill",
        description="Blogging backend: accounts, authentication, and posts.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  python main.py create-user --name "Ada Lovelace" --email ada@example.com --username ada
  python main.py list-users
  DEBUG=true python main.py shell
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the API server with uvicorn")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT setting)")
    serve.add_argument("--reload", action="store_true", help="Restart on source changes (development only)")
    serve.set_defaults(func=_cmd_serve)

    create = sub.add_parser("create-user", help="Create an account; the password is prompted for")
    create.add_argument("--name", required=True, help="Display name")
    create.add_argument("--email", required=True, help="Login email (unique)")
    create.add_argument("--username", default=None, help="Optional login username (unique)")
    create.set_defaults(func=_cmd_create_user)

    list_users = sub.add_parser("list-users", help="Print every account")
    list_users.set_defaults(func=_cmd_list_users)

    shell = sub.add_parser("shell", help="Interactive console with stores and auth services bound")
    shell.set_defaults(func=_cmd_shell)

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
