"""
Pytest configuration and fixtures for repostat tests.
"""

import asyncio
import io
import tarfile
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import pytest

from core.errors import NetworkError
from models.package import Package
from models.version import Version, parse_version


def make_package(name: str, version: str, arch: str = "x86_64", directory: str = "/repo") -> Package:
    """Build a Package whose filename follows the repository layout."""
    v = parse_version(version)
    return Package(
        name=name,
        version=v,
        filename=f"{directory}/{name}-{v}-{arch}.pkg.tar.zst",
        architecture=arch,
    )


def desc_text(name: str, version: str, filename: str, arch: str = "x86_64") -> str:
    """Render a pacman desc file."""
    return (
        f"%FILENAME%\n{filename}\n\n"
        f"%NAME%\n{name}\n\n"
        f"%VERSION%\n{version}\n\n"
        f"%DESC%\nTest package {name}\n\n"
        f"%ARCH%\n{arch}\n\n"
    )


def write_database(path: Path, records: Iterable[Tuple[str, str, str]]) -> Path:
    """
    Write a gzip compressed repository database.

    Args:
        path: Database path
        records: (name, version, filename) tuples
    """
    with tarfile.open(path, "w:gz") as archive:
        for name, version, filename in records:
            data = desc_text(name, version, filename).encode("utf-8")

            dir_info = tarfile.TarInfo(f"{name}-{version}")
            dir_info.type = tarfile.DIRTYPE
            archive.addfile(dir_info)

            info = tarfile.TarInfo(f"{name}-{version}/desc")
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return path


class FakeLookup:
    """
    Scriptable remote lookup.

    Outcomes map a name to a version string (found), None (not found),
    an exception instance (raised) or "hang" (never answers in time).
    Tracks the peak number of concurrent calls.
    """

    def __init__(self, outcomes: Dict[str, object], delay: float = 0.01):
        self.outcomes = outcomes
        self.delay = delay
        self.calls = []
        self.outstanding = 0
        self.peak = 0

    async def __call__(self, name: str) -> Optional[Version]:
        self.calls.append(name)
        self.outstanding += 1
        self.peak = max(self.peak, self.outstanding)
        try:
            outcome = self.outcomes.get(name)
            if outcome == "hang":
                await asyncio.sleep(60)
            await asyncio.sleep(self.delay)
            if isinstance(outcome, Exception):
                raise outcome
            if outcome is None:
                return None
            return parse_version(outcome)
        finally:
            self.outstanding -= 1


@pytest.fixture
def repo_dir(tmp_path):
    """Provide an empty repository directory."""
    directory = tmp_path / "repo"
    directory.mkdir()
    return directory


@pytest.fixture
def populated_repo(repo_dir):
    """
    Repository with package files and a database.

    Files: foo 1.0-1 and 1.1-1, baz 2.5-1, qux 1.0-1, new 0.1-1
    Database: foo 1.0-1, baz 2.5-1, qux 1.0-1, bar 2.0-1 (file absent)
    """
    for filename in [
        "foo-1.0-1-x86_64.pkg.tar.zst",
        "foo-1.1-1-x86_64.pkg.tar.zst",
        "baz-2.5-1-any.pkg.tar.zst",
        "qux-1.0-1-x86_64.pkg.tar.zst",
        "new-0.1-1-x86_64.pkg.tar.zst",
    ]:
        (repo_dir / filename).touch()

    write_database(repo_dir / "test.db.tar.gz", [
        ("foo", "1.0-1", "foo-1.0-1-x86_64.pkg.tar.zst"),
        ("baz", "2.5-1", "baz-2.5-1-any.pkg.tar.zst"),
        ("qux", "1.0-1", "qux-1.0-1-x86_64.pkg.tar.zst"),
        ("bar", "2.0-1", "bar-2.0-1-x86_64.pkg.tar.zst"),
    ])
    return repo_dir


@pytest.fixture
def network_error():
    return NetworkError("connection refused")
