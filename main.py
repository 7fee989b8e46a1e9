#!/usr/bin/env python3
"""
Blackpot auth service -- command-line entry point.

Usage:
  python main.py seed                       # create demo tenant, location and staff
  python main.py seed --reset               # wipe tenants/locations/users first
  python main.py seed --password s3cret!!   # password for every seeded account
  python main.py serve                      # run the API with uvicorn
  python main.py serve --host 0.0.0.0 --port 8000 --reload

Environment variables (or .env):
  JWT_SECRET     Required. At least 32 characters.
  DATABASE_URL   Required. SQLAlchemy URL, e.g. sqlite:///blackpot.db
"""

import argparse
import logging
import sys

from core.config import ConfigError, get_settings


def _cmd_seed(args: argparse.Namespace) -> int:
    from sqlalchemy.exc import IntegrityError

    from auth.passwords import PasswordHasher
    from auth.seed import seed_staff
    from auth.store import UserStore

    settings = get_settings()
    store = UserStore(settings.database_url)
    try:
        result = seed_staff(
            store,
            PasswordHasher(rounds=settings.bcrypt_rounds),
            password=args.password,
            reset=args.reset,
        )
    except IntegrityError:
        print("  [!] Staff accounts already exist. Re-run with --reset to replace them.")
        return 1
    finally:
        store.close()

    print(f"  Tenant   {result.tenant_id}")
    print(f"  Location {result.location_id}")
    for email in result.user_ids:
        print(f"  {email}")
    print(f"\n  Seeded {len(result.user_ids)} accounts. Password: {args.password}")
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def _build_parser() -> argparse.ArgumentParser:
    from auth.seed import DEFAULT_PASSWORD

    parser = argparse.ArgumentParser(
        prog="blackpot",
        description="Blackpot staff authentication service.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed", help="Create demo tenant, location and staff accounts.")
    seed.add_argument("--reset", action="store_true", help="Delete existing tenants, locations and users first.")
    seed.add_argument(
        "--password",
        default=DEFAULT_PASSWORD,
        help=f"Password for every seeded account (default: {DEFAULT_PASSWORD}).",
    )
    seed.set_defaults(func=_cmd_seed)

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting).")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT setting).")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development).")
    serve.set_defaults(func=_cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ConfigError as exc:
        print(f"  [!] {exc}", file=sys.stderr)
        return 2
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)-5s %(name)s %(message)s")
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
