import argparse
import json
import logging
import sys
from dataclasses import asdict, is_dataclass
from typing import Any

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.app_shell.config import get_settings
from src.app_shell.context import ServiceContext
from src.core.errors import AnalyticsError
from src.rules.loader import load_rules
from src.rules.models import Rules

logger = logging.getLogger("cli")


def _jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def _print_json(value: Any) -> None:
    print(json.dumps(_jsonable(value), indent=2, default=str))


def get_rules() -> Rules:
    settings = get_settings()
    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)
    return load_rules(settings.rules_path)


def handle_migrate(rules: Rules, rollback: bool) -> None:
    settings = get_settings()
    settings.ensure_data_dir()
    db_path = settings.db_path(rules.storage.db_file)
    migrator = SQLiteMigrator(db_path, settings.migrations_dir)
    if rollback:
        filename = migrator.rollback_last()
        print(f"Rolled back {filename}." if filename else "Nothing to roll back.")
        return
    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migrations to {db_path}.")


def handle_query(ctx: ServiceContext, args: argparse.Namespace) -> None:
    if args.command == "summary":
        _print_json(
            {
                "downloads": _jsonable(ctx.downloads.get_summary(args.user)),
                "browsing": _jsonable(ctx.browsing.get_summary(args.user)),
            }
        )
    elif args.command == "trends":
        _print_json(
            {
                "downloads": _jsonable(ctx.downloads.get_trends(args.user)),
                "browsing": _jsonable(ctx.browsing.get_trends(args.user)),
            }
        )
    elif args.command == "top-sites":
        _print_json(ctx.browsing.get_top_sites(args.user))
    elif args.command == "sources":
        top_n = ctx.rules.analytics.source_top_n
        _print_json(ctx.downloads.get_source_stats(args.user, top_n))
    elif args.command == "habits":
        _print_json(
            {
                "downloads": _jsonable(ctx.downloads.get_habits(args.user)),
                "browsing": _jsonable(ctx.browsing.get_habits(args.user)),
            }
        )
    elif args.command == "insights":
        _print_json(ctx.downloads.get_insights(args.user))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Download and browsing analytics CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate = subparsers.add_parser("migrate", help="Apply pending SQLite migrations")
    migrate.add_argument(
        "--rollback", action="store_true", help="Undo the most recent migration instead"
    )

    for name, help_text in (
        ("summary", "Print download and browsing totals"),
        ("trends", "Print today/week/month trends"),
        ("top-sites", "Print the all-time top sites"),
        ("sources", "Print download sources with an Others bucket"),
        ("habits", "Print the most active hour and weekday this week"),
        ("insights", "Print lifetime download insights"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--user", required=True, help="User id")

    args = parser.parse_args(argv)

    rules = get_rules()
    logging.basicConfig(level=getattr(logging, rules.logging.level))

    if args.command == "migrate":
        handle_migrate(rules, args.rollback)
        return

    ctx = ServiceContext.create(rules, get_settings())
    try:
        handle_query(ctx, args)
    except AnalyticsError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
