"""Main entry point for repostat."""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from core.config import Config, load_config
from core.errors import CorruptDatabaseError, RepositoryReadError
from core.logger import setup_logging
from models.package import FetchError, Report
from services.reconciler import reconcile_repository
from utils.formatting import format_config, format_report, format_warning

__version__ = "0.1.0"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="repostat",
        description="Show the state of a package repository: pending, outdated, "
                    "missing and upstream-updated packages."
    )
    parser.add_argument("names", nargs="*", metavar="NAME",
                        help="only check these packages upstream")
    parser.add_argument("-c", "--config", default=None,
                        help="path to configuration file (default: config.toml if present)")
    parser.add_argument("-r", "--repo", default=None,
                        help="path to the repository database, overrides the configuration")
    parser.add_argument("--no-remote", action="store_true",
                        help="do not query the AUR for updates")
    parser.add_argument("--json", action="store_true", help="print the report as JSON")
    parser.add_argument("--columns", action="store_true", help="lay lists out in columns")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--version", action="store_true",
                        help="show version and the effective configuration, then exit")
    return parser.parse_args(argv)


def config_file(args: argparse.Namespace) -> Optional[str]:
    """Return the configuration file to load, if any."""
    if args.config:
        return args.config
    if Path("config.toml").exists():
        return "config.toml"
    return None


def build_config(args: argparse.Namespace) -> Config:
    """Load configuration and apply command line overrides."""
    path = config_file(args)
    config = load_config(path) if path else Config()

    if args.repo:
        config.repository.path = args.repo
    if args.no_remote:
        config.reconcile.check_remote = False
    if args.verbose:
        config.logging.level = "DEBUG"
    return config


class RepoStatus:
    """Command line application."""

    def __init__(self, config: Config):
        """Initialize application."""
        self.config = config

        # Setup logging first, before any other loggers are created
        setup_logging(self.config.logging)
        self.logger = logging.getLogger(__name__)

    def _warn(self, error: FetchError) -> None:
        print(format_warning(error), file=sys.stderr)

    async def run(self, names: Optional[List[str]] = None) -> Report:
        """Reconcile the configured repository, printing warnings as they arrive."""
        self.logger.info(f"Reconciling repository {self.config.repository.path}")
        report = await reconcile_repository(self.config, names=names or None, on_error=self._warn)

        for issue in report.scan_issues:
            print(format_warning(issue), file=sys.stderr)
        return report


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = build_config(args)

    if args.version:
        print(f"repostat {__version__}")
        print(format_config(config, loaded=config_file(args) is not None))
        return 0

    if not config.repository.path:
        print("error: no repository configured, use --repo or set repository.path", file=sys.stderr)
        return 1

    app = RepoStatus(config)
    try:
        report = asyncio.run(app.run(args.names))
    except (RepositoryReadError, CorruptDatabaseError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130

    if args.json:
        print(report.to_json())
    else:
        print(format_report(report, columns=args.columns))
    return 0


if __name__ == '__main__':
    sys.exit(main())
