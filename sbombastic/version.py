"""Component versions and the mapping from storage versions to Kubernetes versions."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass

_MAX_INT32 = 2**31 - 1

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)(?:\.(\d+))?$")


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A major.minor[.patch] version; a missing patch compares as zero."""

    major: int
    minor: int
    patch: int | None = None

    def _key(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch or 0)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        if self.patch is None:
            return f"{self.major}.{self.minor}"
        return f"{self.major}.{self.minor}.{self.patch}"

    def offset_minor(self, offset: int) -> Version:
        """Return major.minor moved by offset, never below a minor of zero."""
        return Version(self.major, max(self.minor + offset, 0))

    def greater_than(self, other: Version) -> bool:
        return self > other

    def equal_to(self, other: Version | None) -> bool:
        return other is not None and self == other


def parse_version(text: str) -> Version:
    """Parse "1.2", "1.2.3" or the same with a leading "v"."""
    match = _VERSION_RE.match(text.strip())
    if match is None:
        raise ValueError(f"could not parse {text!r} as version")
    major, minor, patch = match.groups()
    return Version(int(major), int(minor), None if patch is None else int(patch))


def major_minor(major: int, minor: int) -> Version:
    return Version(major, minor)


DEFAULT_WARDLE_VERSION = major_minor(1, 2)
DEFAULT_KUBE_BINARY_VERSION = major_minor(1, 31)


def wardle_version_to_kube_version(
    ver: Version, kube_version: Version | None = None
) -> Version | None:
    """Map a storage server emulation version to a Kubernetes one.

    Version 1.2 maps to the Kubernetes binary version, earlier minors map to
    earlier Kubernetes minors, and the result never exceeds the binary version.
    Any major other than 1 has no mapping.
    """
    if ver.major != 1:
        return None
    kube = kube_version if kube_version is not None else DEFAULT_KUBE_BINARY_VERSION
    if ver.minor > _MAX_INT32:
        raise OverflowError("minor version is too large")
    mapped = kube.offset_minor(ver.minor - 2)
    if mapped.greater_than(kube):
        return kube
    return mapped