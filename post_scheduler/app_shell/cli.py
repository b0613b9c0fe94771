import argparse
import json
import logging
import os
import sys
from pathlib import Path

from post_scheduler.adapters.sqlite import SQLiteMigrator
from post_scheduler.adapters.sqlite.migrator import DEFAULT_MIGRATIONS_DIR
from post_scheduler.app_shell.config import resolve_data_dir, validate_rules
from post_scheduler.app_shell.context import ServiceContext
from post_scheduler.core.errors import ConfigurationError
from post_scheduler.rules.loader import load_rules_with_env
from post_scheduler.rules.models import Rules
from post_scheduler.shell.logging import configure_logging

logger = logging.getLogger("cli")

RULES_PATH = "rules.yaml"
DB_NAME = "scheduler.db"


def load_cli_rules(rules_path: Path) -> Rules:
    if not rules_path.exists():
        logger.error("Rules file %s not found.", rules_path)
        sys.exit(1)
    try:
        return load_rules_with_env(rules_path)
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(1)


def db_path(data_dir: Path) -> str:
    data_dir.mkdir(parents=True, exist_ok=True)
    return str(data_dir / DB_NAME)


def handle_migrate(args: argparse.Namespace) -> None:
    migrator = SQLiteMigrator(db_path(args.data_dir), args.migrations_dir)
    applied = migrator.run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_run(ctx: ServiceContext, args: argparse.Namespace) -> None:
    result = ctx.scheduler.execute_scheduled_publishing()
    print(json.dumps(result.to_dict(), indent=2))


def handle_metrics(ctx: ServiceContext, args: argparse.Namespace) -> None:
    metrics = ctx.metrics_repo.get_recent_metrics(args.limit)
    if not metrics:
        print("No scheduler executions recorded.")
        return
    for m in metrics:
        print(
            f"{m.started_at}  {m.execution_id}  "
            f"processed={m.posts_processed} published={m.posts_published} "
            f"errors={m.errors_encountered} duration={m.execution_duration_ms}ms"
        )


def handle_serve(args: argparse.Namespace) -> None:
    import uvicorn

    os.environ.setdefault("SCHED_DATA_DIR", str(args.data_dir))
    uvicorn.run("post_scheduler.api.main:app", host=args.host, port=args.port)


def handle_check_config(rules: Rules) -> int:
    errors = validate_rules(rules)
    if errors:
        for error in errors:
            print(f"ERROR: {error}", file=sys.stderr)
        return 1
    print("Configuration valid.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Post Scheduler CLI")
    parser.add_argument("--rules", type=Path, default=Path(RULES_PATH), help="Rules file path")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Data directory (defaults to SCHED_DATA_DIR or ./data)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    migrate_parser = subparsers.add_parser("migrate", help="Apply pending database migrations")
    migrate_parser.add_argument(
        "--migrations-dir", default=DEFAULT_MIGRATIONS_DIR, help="Directory of .sql files"
    )

    # run
    subparsers.add_parser("run", help="Run one scheduler execution")

    # metrics
    metrics_parser = subparsers.add_parser("metrics", help="Show recent scheduler executions")
    metrics_parser.add_argument("--limit", type=int, default=10, help="Number of executions")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    # check-config
    subparsers.add_parser("check-config", help="Validate rules and environment overrides")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.data_dir is None:
        args.data_dir = resolve_data_dir()

    rules = load_cli_rules(args.rules)
    configure_logging(rules.logging.level, rules.logging.structured)

    if args.command == "check-config":
        return handle_check_config(rules)

    if args.command == "migrate":
        handle_migrate(args)
        return 0

    if args.command == "serve":
        handle_serve(args)
        return 0

    try:
        ctx = ServiceContext.create(db_path(args.data_dir), rules)
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1

    if args.command == "run":
        handle_run(ctx, args)
    elif args.command == "metrics":
        handle_metrics(ctx, args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
