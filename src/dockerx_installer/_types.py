"""Domain types for dockerx artifact resolution and installation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

# Semantic version without a leading "v": 1.2.3, 1.2.3-rc1, 1.2.3-beta.2
VERSION_PATTERN = re.compile(
    r"^[0-9]+\.[0-9]+\.[0-9]+(?:-[0-9A-Za-z]+(?:\.[0-9A-Za-z]+)*)?$"
)

SHA256_PATTERN = re.compile(r"^[0-9a-f]{64}$")

SUPPORTED_OS: tuple[str, ...] = ("darwin", "linux")
SUPPORTED_ARCH: tuple[str, ...] = ("amd64", "arm64")


def is_valid_version(version: str) -> bool:
    return bool(VERSION_PATTERN.match(version))


def is_valid_sha256(digest: str) -> bool:
    return bool(SHA256_PATTERN.match(digest))


@dataclass(frozen=True)
class PlatformKey:
    """OS family and CPU architecture of the installation host."""

    os: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os}-{self.arch}"


@dataclass(frozen=True)
class ArtifactEntry:
    """Release metadata for one platform/version combination."""

    platform: PlatformKey
    version: str
    url: str
    sha256: str
    size: Optional[int] = None  # Archive byte length, when pinned

    @property
    def asset_name(self) -> str:
        return self.url.rsplit("/", 1)[-1]

    def to_known_version(self) -> str:
        """Serialize to a ``version|os|arch|sha256[|size]`` pin line."""
        parts = [self.version, self.platform.os, self.platform.arch, self.sha256]
        if self.size is not None:
            parts.append(str(self.size))
        return "|".join(parts)


@dataclass(frozen=True)
class InstalledBinary:
    """The dockerx executable placed by a successful install."""

    path: str
    mode: int
    version: str
    platform: PlatformKey
    sha256: str  # Digest of the release archive it came from

    @property
    def is_executable(self) -> bool:
        return bool(self.mode & 0o111)
