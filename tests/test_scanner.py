"""
Tests for the repository directory scanner.
"""

import pytest

from core.errors import DuplicateVersionWarning, InvalidPackageFilename, RepositoryReadError
from services.scanner import DirectoryLister, PackageScanner, parse_package_filename, split_outdated
from conftest import make_package


class TestParsePackageFilename:
    """Tests for parse_package_filename."""

    def test_simple(self):
        pkg = parse_package_filename("/repo/foo-1.0-1-x86_64.pkg.tar.zst")
        assert pkg.name == "foo"
        assert str(pkg.version) == "1.0-1"
        assert pkg.architecture == "x86_64"
        assert pkg.filename == "/repo/foo-1.0-1-x86_64.pkg.tar.zst"

    def test_hyphenated_name(self):
        pkg = parse_package_filename("python-foo-bar-2.3.1-2-any.pkg.tar.xz")
        assert pkg.name == "python-foo-bar"
        assert pkg.version.pkgver == "2.3.1"
        assert pkg.version.pkgrel == "2"
        assert pkg.architecture == "any"

    def test_epoch(self):
        pkg = parse_package_filename("foo-2:1.0-1-x86_64.pkg.tar.gz")
        assert pkg.version.epoch == 2
        assert pkg.version.pkgver == "1.0"

    def test_uncompressed(self):
        assert parse_package_filename("foo-1.0-1-any.pkg.tar").name == "foo"

    @pytest.mark.parametrize("filename", [
        "foo-1.0-1.pkg.tar.zst",
        "foo-1.0-1-x86_64.tar.zst",
        "foo.pkg.tar.zst",
        "foo-1.0-1-x86_64.pkg.tar.zst.sig",
        "README",
    ])
    def test_invalid(self, filename):
        with pytest.raises(InvalidPackageFilename):
            parse_package_filename(filename)


class TestDirectoryLister:
    """Tests for DirectoryLister."""

    def test_lists_package_files_only(self, repo_dir):
        (repo_dir / "foo-1.0-1-x86_64.pkg.tar.zst").touch()
        (repo_dir / "foo-1.0-1-x86_64.pkg.tar.zst.sig").touch()
        (repo_dir / "test.db.tar.gz").touch()
        (repo_dir / "sub.pkg.tar.d").mkdir()

        files = DirectoryLister()(str(repo_dir))
        assert [f.rsplit("/", 1)[-1] for f in files] == ["foo-1.0-1-x86_64.pkg.tar.zst"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(OSError):
            DirectoryLister()(str(tmp_path / "nope"))


class TestPackageScanner:
    """Tests for PackageScanner."""

    def test_current_and_outdated(self, repo_dir):
        (repo_dir / "foo-1.0-1-x86_64.pkg.tar.zst").touch()
        (repo_dir / "foo-1.1-1-x86_64.pkg.tar.zst").touch()
        (repo_dir / "bar-3.0-1-any.pkg.tar.zst").touch()

        result = PackageScanner().scan(str(repo_dir))

        assert {(p.name, str(p.version)) for p in result.current} == {("foo", "1.1-1"), ("bar", "3.0-1")}
        assert [(p.name, str(p.version)) for p in result.outdated] == [("foo", "1.0-1")]
        assert result.issues == []
        assert set(result.groups) == {"foo", "bar"}

    def test_malformed_file_is_reported_not_fatal(self, repo_dir):
        (repo_dir / "foo-1.0-1-x86_64.pkg.tar.zst").touch()
        (repo_dir / "broken.pkg.tar.zst").touch()

        result = PackageScanner().scan(str(repo_dir))

        assert [p.name for p in result.current] == ["foo"]
        assert len(result.issues) == 1
        assert result.issues[0].filename.endswith("broken.pkg.tar.zst")
        assert isinstance(result.issues[0].cause, InvalidPackageFilename)

    def test_duplicate_version_tie(self):
        files = [
            "/repo/foo-1.0-1-x86_64.pkg.tar.zst",
            "/repo/foo-1.0-1-x86_64.pkg.tar.xz",
        ]
        scanner = PackageScanner(lister=lambda path: files)

        for _ in range(3):
            result = scanner.scan("/repo")
            assert [p.filename for p in result.current] == ["/repo/foo-1.0-1-x86_64.pkg.tar.xz"]
            assert [p.filename for p in result.outdated] == ["/repo/foo-1.0-1-x86_64.pkg.tar.zst"]
            assert len(result.issues) == 1
            assert isinstance(result.issues[0].cause, DuplicateVersionWarning)

    def test_exactly_one_current_per_name(self):
        files = [f"/repo/foo-1.{i}-1-any.pkg.tar.zst" for i in range(10)]
        result = PackageScanner(lister=lambda path: list(reversed(files))).scan("/repo")
        assert len(result.current) == 1
        assert str(result.current[0].version) == "1.9-1"
        assert len(result.outdated) == 9

    def test_unreadable_directory_is_fatal(self, tmp_path):
        with pytest.raises(RepositoryReadError):
            PackageScanner().scan(str(tmp_path / "does-not-exist"))

    def test_lister_permission_error(self):
        def lister(path):
            raise PermissionError("denied")

        with pytest.raises(RepositoryReadError):
            PackageScanner(lister=lister).scan("/repo")


def test_split_outdated():
    pkgs = [make_package("foo", "1.0-1"), make_package("foo", "2.0-1"), make_package("bar", "1.0-1")]
    current, outdated = split_outdated(pkgs)
    assert {str(p) for p in current} == {"foo 2.0-1", "bar 1.0-1"}
    assert [str(p) for p in outdated] == ["foo 1.0-1"]


def test_scan_agrees_with_split_outdated():
    files = [
        "/repo/zeta-1.0-1-any.pkg.tar.zst",
        "/repo/foo-1.0-1-x86_64.pkg.tar.zst",
        "/repo/foo-2.0-1-x86_64.pkg.tar.zst",
        "/repo/alpha-0.1-1-any.pkg.tar.zst",
        "/repo/alpha-0.2-1-any.pkg.tar.zst",
    ]
    result = PackageScanner(lister=lambda path: files).scan("/repo")
    current, outdated = split_outdated(parse_package_filename(f) for f in files)

    assert result.current == current
    assert result.outdated == outdated
    assert [p.name for p in result.current] == ["alpha", "foo", "zeta"]
