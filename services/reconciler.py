"""Repository reconciliation service."""
import logging
from typing import Iterable, Optional

from core.config import Config, ReconcileConfig
from models.package import Report
from services import filters
from services.aur import AURClient, RemoteLookup
from services.fetcher import ErrorCallback, RemoteFetcher
from services.repo_db import DatabaseReader
from services.scanner import PackageScanner

logger = logging.getLogger(__name__)


class Reconciler:
    """Combines directory, database and remote state into one report."""

    def __init__(
        self,
        config: ReconcileConfig,
        scanner: Optional[PackageScanner] = None,
        reader: Optional[DatabaseReader] = None,
        lookup: Optional[RemoteLookup] = None
    ):
        """
        Initialize reconciler.

        Args:
            config: Reconciliation configuration
            scanner: Repository directory scanner
            reader: Repository database reader
            lookup: Remote version lookup; remote checks are skipped without one
        """
        self.config = config
        self.scanner = scanner or PackageScanner()
        self.reader = reader or DatabaseReader()
        self.lookup = lookup

    async def reconcile(
        self,
        local_path: str,
        db_path: str,
        names: Optional[Iterable[str]] = None,
        on_error: Optional[ErrorCallback] = None
    ) -> Report:
        """
        Reconcile a repository.

        Args:
            local_path: Directory holding the package files
            db_path: Path to the repository database
            names: Names to check upstream, defaults to all current local names
            on_error: Called for each remote lookup failure as it is drained

        Returns:
            Report

        Raises:
            RepositoryReadError: If the directory cannot be listed
            CorruptDatabaseError: If the database is unreadable or corrupt
        """
        ignore = set(self.config.ignore)

        scan = self.scanner.scan(local_path)
        db = self.reader.read(db_path, package_dir=local_path)

        report = Report(
            current=list(scan.current),
            outdated=list(scan.outdated),
            missing=filters.missing(db.entries),
            scan_issues=list(scan.issues),
        )

        local = filters.without_ignored(scan.current, ignore)
        report.pending = filters.pending(local, db.entries)

        if self.lookup is not None and self.config.check_remote:
            if names is None:
                names = [pkg.name for pkg in local]
            wanted = [name for name in names if name not in ignore]

            fetcher = RemoteFetcher(
                self.lookup,
                parallelism=self.config.parallelism,
                timeout=self.config.request_timeout,
            )
            fetched = await fetcher.fetch(wanted, on_error=on_error)

            report.fetch_errors = fetched.errors
            report.not_found = fetched.not_found
            report.remote_versions = {
                name: record.version
                for name, record in fetched.records.items()
                if record.found
            }
            report.updates_available = filters.updates_available(local, fetched.records)

        logger.debug(
            f"Reconciled {local_path}: {len(report.pending)} pending, "
            f"{len(report.missing)} missing, {len(report.updates_available)} updates"
        )
        return report


async def reconcile_repository(
    config: Config,
    names: Optional[Iterable[str]] = None,
    on_error: Optional[ErrorCallback] = None
) -> Report:
    """
    Reconcile the repository described by config with default collaborators.

    Args:
        config: Full configuration
        names: Names to check upstream, defaults to all current local names
        on_error: Called for each remote lookup failure

    Returns:
        Report
    """
    repo = config.repository
    if not config.reconcile.check_remote:
        reconciler = Reconciler(config.reconcile)
        return await reconciler.reconcile(str(repo.package_dir), str(repo.database_path), names)

    async with AURClient(config.aur) as aur:
        reconciler = Reconciler(config.reconcile, lookup=aur.lookup)
        return await reconciler.reconcile(
            str(repo.package_dir),
            str(repo.database_path),
            names,
            on_error=on_error,
        )
