"""Package version model and ordering."""
import re
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Tuple, Union

_SEGMENT_RE = re.compile(r"\d+|[A-Za-z]+")

Segment = Tuple[int, Union[int, str]]


class Ordering(IntEnum):
    """Result of comparing two versions."""
    LESS = -1
    EQUAL = 0
    GREATER = 1


def _segments(value: str) -> List[Segment]:
    """
    Split a version component into comparable segments.

    Separators are dropped. Digit runs become ``(1, int)`` and letter runs
    ``(0, str)`` so that a numeric segment always sorts above an alphabetic
    one at the same position.

    Examples:
        "1.2.3" -> [(1, 1), (1, 2), (1, 3)]
        "1.2rc1" -> [(1, 1), (1, 2), (0, "rc"), (1, 1)]
    """
    result = []
    for token in _SEGMENT_RE.findall(value):
        if token.isdigit():
            result.append((1, int(token)))
        else:
            result.append((0, token))
    return result


def _compare_component(a: str, b: str) -> int:
    """
    Compare two pkgver or pkgrel strings.

    Returns:
        -1, 0 or 1
    """
    segments_a = _segments(a)
    segments_b = _segments(b)

    for s1, s2 in zip(segments_a, segments_b):
        if s1 != s2:
            return -1 if s1 < s2 else 1

    # All shared segments equal: the one with more segments is newer
    if len(segments_a) != len(segments_b):
        return -1 if len(segments_a) < len(segments_b) else 1
    return 0


@dataclass(frozen=True, eq=False)
class Version:
    """A package version: epoch, upstream version and release."""

    epoch: int
    pkgver: str
    pkgrel: str

    def __post_init__(self) -> None:
        if self.epoch < 0:
            raise ValueError(f"epoch must be non-negative, got {self.epoch}")

    def older_than(self, other: "Version") -> bool:
        return compare_versions(self, other) is Ordering.LESS

    def newer_than(self, other: "Version") -> bool:
        return compare_versions(self, other) is Ordering.GREATER

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return compare_versions(self, other) is Ordering.EQUAL

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.older_than(other)

    def __le__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return not self.newer_than(other)

    def __gt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.newer_than(other)

    def __ge__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return not self.older_than(other)

    def __hash__(self) -> int:
        # Must agree with __eq__, so hash the normalized segments
        return hash((self.epoch, tuple(_segments(self.pkgver)), tuple(_segments(self.pkgrel))))

    def __str__(self) -> str:
        version = f"{self.pkgver}-{self.pkgrel}" if self.pkgrel else self.pkgver
        if self.epoch > 0:
            return f"{self.epoch}:{version}"
        return version


def compare_versions(a: Version, b: Version) -> Ordering:
    """
    Compare two versions.

    Epochs are compared numerically first, then pkgver, then pkgrel.
    Empty components sort below any non-empty one, so an unknown version
    is always the oldest.

    Args:
        a: Left-hand version
        b: Right-hand version

    Returns:
        Ordering of a relative to b
    """
    if a.epoch != b.epoch:
        return Ordering.LESS if a.epoch < b.epoch else Ordering.GREATER

    result = _compare_component(a.pkgver, b.pkgver)
    if result == 0:
        result = _compare_component(a.pkgrel, b.pkgrel)
    return Ordering(result)


def parse_version(value: str) -> Version:
    """
    Parse a full version string such as ``1:2.0.1-3``.

    The epoch prefix is optional and defaults to 0. The release is whatever
    follows the last hyphen; a string without a hyphen has an empty release.

    Raises:
        ValueError: If the epoch is not a non-negative integer
    """
    value = value.strip()
    epoch = 0
    if ":" in value:
        epoch_str, value = value.split(":", 1)
        if not epoch_str.isdigit():
            raise ValueError(f"Invalid epoch in version: {epoch_str!r}")
        epoch = int(epoch_str)

    pkgver, sep, pkgrel = value.rpartition("-")
    if not sep:
        pkgver, pkgrel = value, ""

    return Version(epoch=epoch, pkgver=pkgver, pkgrel=pkgrel)
