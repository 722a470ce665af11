from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from dotenv import load_dotenv

from gofunc_tables.config import AppConfig, load_config
from gofunc_tables.db.connection import server_version
from gofunc_tables.discovery.repo_scanner import scan_go_files
from gofunc_tables.discovery.treesitter.extract_functions import extract_functions
from gofunc_tables.errors import ParseError
from gofunc_tables.pipeline.batch import RepositoryProcessor
from gofunc_tables.pipeline.report import render_summary, save_results


def run(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="gofunc-tables",
        description="Run exported Go functions and load their output into PostgreSQL"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    # Processing
    run_cmd = sub.add_parser("run", help="Process repositories")
    run_cmd.add_argument("repos", nargs="*", help="Repository paths or clone URLs")
    run_cmd.add_argument("--config", help="Path to YAML/JSON config (default: $CONFIG_FILE)")
    run_cmd.add_argument("--results", help="Results JSON path (default: from config)")
    run_cmd.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                         help="Override configured log level")

    # Discovery only
    disc = sub.add_parser("discover", help="List exported functions without executing them")
    disc.add_argument("repo", help="Path to repository")

    # Database commands
    db = sub.add_parser("db", help="Database commands")
    dbsub = db.add_subparsers(dest="dbcmd", required=True)
    ping = dbsub.add_parser("ping", help="Test database connection")
    ping.add_argument("--config", help="Path to YAML/JSON config")

    # Config commands
    cfg = sub.add_parser("config", help="Configuration commands")
    cfgsub = cfg.add_subparsers(dest="cfgcmd", required=True)
    init = cfgsub.add_parser("init", help="Write a default configuration file")
    init.add_argument("path", help="Output path (.yaml, .yml or .json)")

    args = parser.parse_args(argv)

    try:
        if args.cmd == "run":
            config = load_config(args.config)
            _configure_logging(config, args.log_level)
            repos = args.repos or config.repositories
            if not repos:
                parser.error("no repositories given and none configured")
            asyncio.run(run_batch(config, repos, args.results or config.results_file))
        elif args.cmd == "discover":
            _configure_logging(AppConfig(), None)
            discover(args.repo)
        elif args.cmd == "db":
            if args.dbcmd == "ping":
                config = load_config(args.config)
                _configure_logging(config, None)
                asyncio.run(db_ping(config))
        elif args.cmd == "config":
            if args.cfgcmd == "init":
                AppConfig().save(args.path)
                print(f"✓ Wrote default configuration to {args.path}")
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _configure_logging(config: AppConfig, override: str | None) -> None:
    logging.basicConfig(
        level=getattr(logging, (override or config.logging.level).upper()),
        format=config.logging.format,
        handlers=[logging.StreamHandler(sys.stderr)]
    )


async def run_batch(config: AppConfig, repositories: list[str], results_file: str) -> None:
    """Process repositories, print the summary and save results.

    Args:
        config: Application configuration
        repositories: Repository paths or clone URLs
        results_file: Where to write the JSON results
    """
    processor = RepositoryProcessor(config)
    snapshot = await processor.process_repositories(repositories)
    print(render_summary(snapshot))
    save_results(snapshot, results_file)


def discover(repo_path: str) -> None:
    """Print every exported top-level function in a repository."""
    repo_root = Path(repo_path).resolve()
    count = 0
    for file_path in scan_go_files(repo_root):
        try:
            functions = extract_functions(file_path, repo_root)
        except ParseError as e:
            print(f"Warning: {e}", file=sys.stderr)
            continue

        for fn in functions:
            count += 1
            marker = " [eligible]" if fn.is_eligible else ""
            rel = file_path.relative_to(repo_root).as_posix()
            print(f"{rel}:{fn.line_number} {fn.signature}{marker}")

    print(f"\n{count} exported functions")


async def db_ping(config: AppConfig) -> None:
    """Test database connection.

    Raises:
        DatabaseConnectionError: If the connection fails
    """
    version = await server_version(config.database)
    print("✓ Database connection successful")
    print(f"  Postgres: {version}")
