"""Set comparisons between package collections.

All functions are pure: they never mutate their inputs and the order of
their output is unspecified.
"""
from typing import Collection, Iterable, List, Mapping

from models.package import DatabaseEntry, Package, RemoteRecord


def pending(local: Iterable[Package], db: Mapping[str, DatabaseEntry]) -> List[Package]:
    """
    Packages pending addition to the database.

    A local package is pending if the database has no entry for its name or
    the entry's version is strictly older.
    """
    result = []
    for pkg in local:
        entry = db.get(pkg.name)
        if entry is None or entry.package.version.older_than(pkg.version):
            result.append(pkg)
    return result


def updates_available(local: Iterable[Package], remote: Mapping[str, RemoteRecord]) -> List[Package]:
    """Local packages for which the remote service has a strictly newer version."""
    result = []
    for pkg in local:
        record = remote.get(pkg.name)
        if record is not None and record.found and record.version.newer_than(pkg.version):
            result.append(pkg)
    return result


def missing(db: Mapping[str, DatabaseEntry]) -> List[str]:
    """Names of database entries whose file is absent from disk."""
    return [name for name, entry in db.items() if not entry.file_exists]


def without_ignored(packages: Iterable[Package], ignore: Collection[str]) -> List[Package]:
    """Drop packages whose name is in the ignore list."""
    return [pkg for pkg in packages if pkg.name not in ignore]
