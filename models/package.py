"""Package data models."""
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from models.version import Version


@dataclass(frozen=True)
class Package:
    """A package file or database record."""

    name: str
    version: Version
    filename: str
    architecture: str

    @property
    def basename(self) -> str:
        """File name without its directory."""
        return os.path.basename(self.filename)

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


class PackageGroup:
    """
    All packages sharing one name, drawn from a single source.

    The current member is the one with the maximum version. Members with an
    identical version are a data anomaly: the one with the lexicographically
    smallest filename becomes current and the others are exposed as ``ties``.
    Every non-current member is outdated.
    """

    def __init__(self, name: str, members: List[Package]):
        if not members:
            raise ValueError(f"Package group {name!r} has no members")
        for pkg in members:
            if pkg.name != name:
                raise ValueError(f"Package {pkg.name!r} does not belong to group {name!r}")

        self.name = name
        self.members: Tuple[Package, ...] = tuple(members)

        newest = max(pkg.version for pkg in self.members)
        candidates = sorted(
            (pkg for pkg in self.members if pkg.version == newest),
            key=lambda pkg: pkg.filename,
        )
        self.current: Package = candidates[0]
        self.ties: Tuple[Package, ...] = tuple(candidates[1:])
        current_index = next(i for i, pkg in enumerate(self.members) if pkg is self.current)
        self.outdated: Tuple[Package, ...] = (
            self.members[:current_index] + self.members[current_index + 1:]
        )

    @property
    def has_tie(self) -> bool:
        return bool(self.ties)

    def __len__(self) -> int:
        return len(self.members)

    def __repr__(self) -> str:
        return f"PackageGroup({self.name!r}, current={self.current.version}, members={len(self.members)})"


@dataclass(frozen=True)
class DatabaseEntry:
    """A database record plus whether its backing file exists on disk."""

    package: Package
    file_exists: bool

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def missing(self) -> bool:
        return not self.file_exists


@dataclass(frozen=True)
class RemoteRecord:
    """Upstream metadata for one package name; version is None if not found."""

    name: str
    version: Optional[Version] = None

    @property
    def found(self) -> bool:
        return self.version is not None


@dataclass(frozen=True)
class FetchError:
    """A remote lookup that failed for one name."""

    name: str
    cause: BaseException

    def __str__(self) -> str:
        reason = str(self.cause) or type(self.cause).__name__
        return f"{self.name}: {reason}"


@dataclass(frozen=True)
class ScanIssue:
    """A problem with a single file found while scanning the repository."""

    filename: str
    cause: Exception

    def __str__(self) -> str:
        return f"{os.path.basename(self.filename)}: {self.cause}"


def _package_dict(pkg: Package) -> Dict[str, Any]:
    return {
        "name": pkg.name,
        "version": str(pkg.version),
        "filename": pkg.filename,
        "architecture": pkg.architecture,
    }


@dataclass
class Report:
    """Result of one reconciliation run."""

    current: List[Package] = field(default_factory=list)
    outdated: List[Package] = field(default_factory=list)
    pending: List[Package] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    updates_available: List[Package] = field(default_factory=list)
    fetch_errors: List[FetchError] = field(default_factory=list)

    # Informational: names the remote service does not know
    not_found: List[str] = field(default_factory=list)
    scan_issues: List[ScanIssue] = field(default_factory=list)
    remote_versions: Dict[str, Version] = field(default_factory=dict)

    @property
    def has_problems(self) -> bool:
        """Whether any recoverable error was collected."""
        return bool(self.fetch_errors or self.scan_issues)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "current": [_package_dict(p) for p in self.current],
            "outdated": [_package_dict(p) for p in self.outdated],
            "pending": [_package_dict(p) for p in self.pending],
            "missing": list(self.missing),
            "updates_available": [
                {
                    **_package_dict(p),
                    "remote_version": str(self.remote_versions[p.name])
                    if p.name in self.remote_versions else None,
                }
                for p in self.updates_available
            ],
            "fetch_errors": [
                {"name": e.name, "error": type(e.cause).__name__, "message": str(e.cause)}
                for e in self.fetch_errors
            ],
            "not_found": list(self.not_found),
            "scan_issues": [
                {"filename": i.filename, "error": type(i.cause).__name__, "message": str(i.cause)}
                for i in self.scan_issues
            ],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)
