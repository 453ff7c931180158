"""Repository directory scanner."""
import logging
import os
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from core.errors import DuplicateVersionWarning, InvalidPackageFilename, RepositoryReadError
from models.package import Package, PackageGroup, ScanIssue
from models.version import Version

logger = logging.getLogger(__name__)

PACKAGE_FILENAME_RE = re.compile(
    r"^(?P<name>[^/]+)"
    r"-(?:(?P<epoch>\d+):)?(?P<pkgver>[^-:/]+)"
    r"-(?P<pkgrel>[^-/]+)"
    r"-(?P<arch>[^-/.]+)"
    r"\.pkg\.tar(?:\.(?:gz|bz2|xz|zst|lz4|lrz|lzo|lz|Z))?$"
)


class FileLister(Protocol):
    """Lists candidate package files in a directory."""

    def __call__(self, path: str) -> Sequence[str]:
        ...


class DirectoryLister:
    """
    List package archives in a directory.

    Only regular files whose name contains ``.pkg.tar`` are returned;
    detached ``.sig`` signatures are skipped.

    Raises:
        OSError: If the directory cannot be listed
    """

    def __call__(self, path: str) -> List[str]:
        files = []
        with os.scandir(path) as it:
            for entry in it:
                if ".pkg.tar" not in entry.name or entry.name.endswith(".sig"):
                    continue
                if entry.is_file():
                    files.append(entry.path)
        return files


def parse_package_filename(path: str) -> Package:
    """
    Parse a package filename into a Package.

    Expected format: name-[epoch:]pkgver-pkgrel-arch.pkg.tar[.ext]

    Args:
        path: Path to the package file

    Returns:
        Package described by the filename

    Raises:
        InvalidPackageFilename: If the filename does not match the grammar
    """
    match = PACKAGE_FILENAME_RE.match(os.path.basename(path))
    if not match:
        raise InvalidPackageFilename(f"not a valid package filename: {os.path.basename(path)}")

    epoch = match.group("epoch")
    version = Version(
        epoch=int(epoch) if epoch else 0,
        pkgver=match.group("pkgver"),
        pkgrel=match.group("pkgrel"),
    )
    return Package(
        name=match.group("name"),
        version=version,
        filename=path,
        architecture=match.group("arch"),
    )


def group_packages(packages: Iterable[Package]) -> Dict[str, PackageGroup]:
    """Group packages by name."""
    by_name: Dict[str, List[Package]] = defaultdict(list)
    for pkg in packages:
        by_name[pkg.name].append(pkg)
    return {name: PackageGroup(name, members) for name, members in by_name.items()}


def split_groups(groups: Dict[str, PackageGroup]) -> Tuple[List[Package], List[Package]]:
    """
    Split groups into the current package per name and everything older.

    Groups are visited in name order so the result is deterministic.

    Returns:
        Tuple of (current, outdated)
    """
    current = []
    outdated = []
    for name in sorted(groups):
        current.append(groups[name].current)
        outdated.extend(groups[name].outdated)
    return current, outdated


def split_outdated(packages: Iterable[Package]) -> Tuple[List[Package], List[Package]]:
    """
    Split packages into the newest per name and everything older.

    Returns:
        Tuple of (current, outdated)
    """
    return split_groups(group_packages(packages))


@dataclass
class ScanResult:
    """Packages found in a repository directory."""

    current: List[Package] = field(default_factory=list)
    outdated: List[Package] = field(default_factory=list)
    groups: Dict[str, PackageGroup] = field(default_factory=dict)
    issues: List[ScanIssue] = field(default_factory=list)


class PackageScanner:
    """Resolves current and outdated packages from a repository directory."""

    def __init__(self, lister: Optional[FileLister] = None):
        self.lister = lister or DirectoryLister()

    def scan(self, path: str) -> ScanResult:
        """
        Scan a repository directory.

        Unparsable filenames and duplicate-version ties are recorded as
        issues; only a directory that cannot be listed is fatal.

        Args:
            path: Repository directory

        Returns:
            ScanResult

        Raises:
            RepositoryReadError: If the directory cannot be listed
        """
        try:
            files = self.lister(str(path))
        except OSError as e:
            raise RepositoryReadError(f"cannot read repository directory {path}: {e}") from e

        result = ScanResult()
        packages = []
        for filename in files:
            try:
                packages.append(parse_package_filename(filename))
            except InvalidPackageFilename as e:
                result.issues.append(ScanIssue(filename=filename, cause=e))

        result.groups = group_packages(packages)
        result.current, result.outdated = split_groups(result.groups)
        for name in sorted(result.groups):
            group = result.groups[name]
            for tied in group.ties:
                result.issues.append(ScanIssue(
                    filename=tied.filename,
                    cause=DuplicateVersionWarning(
                        f"{name} {tied.version} duplicates {group.current.basename}"
                    ),
                ))

        logger.debug(
            f"Scanned {path}: {len(result.current)} current, "
            f"{len(result.outdated)} outdated, {len(result.issues)} issues"
        )
        return result
