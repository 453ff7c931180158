"""Repository database reader."""
import logging
import os
import re
import tarfile
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from core.errors import CorruptDatabaseError
from models.package import DatabaseEntry, Package
from models.version import parse_version

logger = logging.getLogger(__name__)

RawRecord = Mapping[str, List[str]]

_FIELD_RE = re.compile(r"^%([A-Z0-9]+)%$")

ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"


class DatabaseSource(Protocol):
    """Reads raw records out of a repository database."""

    def __call__(self, path: str) -> Sequence[RawRecord]:
        ...


def parse_desc(text: str) -> Dict[str, List[str]]:
    """
    Parse a pacman ``desc`` file.

    The file is a sequence of blocks, each starting with a ``%FIELD%`` header
    line followed by one value per line and terminated by a blank line.

    Args:
        text: Contents of the desc file

    Returns:
        Dict mapping field names to their list of values

    Raises:
        CorruptDatabaseError: If a value appears outside of a field block
    """
    record: Dict[str, List[str]] = {}
    current: Optional[str] = None

    for line in text.splitlines():
        line = line.strip()
        if not line:
            current = None
            continue

        match = _FIELD_RE.match(line)
        if match and current is None:
            current = match.group(1)
            record.setdefault(current, [])
        elif current is None:
            raise CorruptDatabaseError(f"value outside of field block: {line!r}")
        else:
            record[current].append(line)

    return record


class TarDatabaseSource:
    """
    Read records from a pacman repository database archive.

    The archive holds one directory per package with a ``desc`` file inside.
    A database that does not exist yet yields no records.
    """

    def __call__(self, path: str) -> List[Dict[str, List[str]]]:
        if not os.path.exists(path):
            logger.debug(f"Database {path} does not exist, treating as empty")
            return []

        records = []
        try:
            with open(path, "rb") as f:
                if f.read(4) == ZSTD_MAGIC:
                    raise CorruptDatabaseError(
                        f"cannot read database {path}: zstd compressed databases are not supported, "
                        f"recreate it with repo-add using gzip, bzip2 or xz compression"
                    )
            with tarfile.open(path, "r:*") as archive:
                for member in archive:
                    if not member.isfile() or os.path.basename(member.name) != "desc":
                        continue
                    handle = archive.extractfile(member)
                    if handle is None:
                        continue
                    with handle:
                        text = handle.read().decode("utf-8")
                    records.append(parse_desc(text))
        except (tarfile.TarError, OSError, EOFError, UnicodeDecodeError) as e:
            raise CorruptDatabaseError(f"cannot read database {path}: {e}") from e

        logger.debug(f"Read {len(records)} records from {path}")
        return records


def _single(record: RawRecord, key: str) -> str:
    values = record.get(key)
    if not values:
        raise CorruptDatabaseError(f"database record lacks %{key}%: {dict(record)!r}")
    return values[0]


def record_to_package(record: RawRecord, directory: str) -> Package:
    """
    Build a Package from a raw database record.

    The record's FILENAME is resolved against directory.

    Raises:
        CorruptDatabaseError: If required fields are absent or malformed
    """
    name = _single(record, "NAME")
    filename = _single(record, "FILENAME")
    try:
        version = parse_version(_single(record, "VERSION"))
    except ValueError as e:
        raise CorruptDatabaseError(f"invalid version for {name}: {e}") from e

    arch_values = record.get("ARCH") or [""]
    return Package(
        name=name,
        version=version,
        filename=os.path.join(directory, filename),
        architecture=arch_values[0],
    )


@dataclass
class DatabaseReadResult:
    """Packages recorded in the repository database."""

    entries: Dict[str, DatabaseEntry] = field(default_factory=dict)
    missing: List[str] = field(default_factory=list)


class DatabaseReader:
    """Reads the repository database and checks each record's backing file."""

    def __init__(
        self,
        source: Optional[DatabaseSource] = None,
        exists: Callable[[str], bool] = os.path.exists
    ):
        """
        Initialize database reader.

        Args:
            source: Raw record source, defaults to TarDatabaseSource
            exists: Predicate telling whether a package file is on disk
        """
        self.source = source or TarDatabaseSource()
        self.exists = exists

    def read(self, path: str, package_dir: Optional[str] = None) -> DatabaseReadResult:
        """
        Read the database at path.

        Args:
            path: Path to the repository database
            package_dir: Directory the record filenames live in, defaults to
                the database's directory

        Returns:
            DatabaseReadResult with one entry per name and the names whose
            files are missing

        Raises:
            CorruptDatabaseError: If the database or any record is invalid
        """
        path = str(path)
        directory = str(package_dir) if package_dir else os.path.dirname(os.path.abspath(path))
        packages: Dict[str, Package] = {}

        for record in self.source(path):
            pkg = record_to_package(record, directory)
            known = packages.get(pkg.name)
            if known is not None:
                logger.debug(f"Database lists {pkg.name} twice: {known.version} and {pkg.version}")
                if not pkg.version.newer_than(known.version):
                    continue
            packages[pkg.name] = pkg

        result = DatabaseReadResult()
        for name, pkg in packages.items():
            entry = DatabaseEntry(package=pkg, file_exists=self.exists(pkg.filename))
            result.entries[name] = entry
            if entry.missing:
                result.missing.append(name)

        return result
