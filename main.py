"""Command-line interface for the login API service."""

from __future__ import annotations
import argparse
import logging
import sys
from typing import Sequence

from loginapi.config import Settings, load_settings
from loginapi.database import Database
from loginapi.errors import LoginAPIError, StoreUnavailableError
from loginapi.users import UserStore

logger = logging.getLogger("loginapi.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Login API utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the user database")
    subparsers.add_parser("check-db", help="Exit non-zero when the user database is unreachable")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP login API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Port for the HTTP API (default: 3000)",
    )

    create_parser = subparsers.add_parser("create-user", help="Create a user account")
    create_parser.add_argument("username", help="Unique username (1-20 characters)")
    create_parser.add_argument("--email", default=None, help="Unique email address")
    create_parser.add_argument("--full-name", default=None, help="Full name (defaults to the username)")
    create_parser.add_argument("--admin", action="store_true", help="Grant administrator rights")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "check-db", "create-user"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path, timeout=settings.store_timeout)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _check_database(database: Database) -> bool:
    try:
        database.ping()
    except StoreUnavailableError as exc:
        logger.error("User database is not reachable: %s", exc)
        return False
    return True


def _serve(*, settings: Settings, database: Database, host: str, port: int) -> None:
    from loginapi import create_app
    import uvicorn

    if not settings.allowed_users:
        raise SystemExit("ALLOWED_USERS must list at least one 'user:secret' pair.")

    if not _check_database(database):
        raise SystemExit(1)

    logger.info("Starting login API on http://%s:%s", host, port)
    app = create_app(database=database, settings=settings)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _create_user(settings: Settings, database: Database, args: argparse.Namespace) -> int:
    store = UserStore(database, settings.blocklist)
    fields = {
        "username": args.username,
        "email": args.email,
        "full_name": args.full_name,
        "is_admin": args.admin,
    }
    try:
        user = store.create(fields)
    except LoginAPIError as exc:
        print(f"Failed to create user: {exc.message}", file=sys.stderr)
        return 1

    print(f"Created user #{user.id}: {user.username} <{user.email or 'no email set'}>")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = load_settings()

    try:
        database = _initialise_database(settings)
    except StoreUnavailableError as exc:
        logger.error("Unable to initialise the user database: %s", exc)
        return 1

    if args.command == "serve":
        _serve(settings=settings, database=database, host=args.host, port=args.port)
    elif args.command == "check-db":
        return 0 if _check_database(database) else 1
    elif args.command == "create-user":
        return _create_user(settings, database, args)
    elif args.command == "init-db":
        print("Database initialisation complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
