"""dockerx release artifact metadata and the pinned artifact table.

Release assets are published on GitHub as::

    https://github.com/<repo>/releases/download/v<version>/dockerx-<os>-<urlarch>-v<version>.tar.gz

where ``<urlarch>`` is ``aarch64`` for arm64 and ``x86_64`` for amd64.

Pins are kept as ``known_versions`` lines::

    1.2.3|linux|arm64|<sha256>|<size>

The size field is optional.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from dockerx_installer._exceptions import (
    ConfigError,
    UnresolvedArtifactError,
    UnsupportedPlatformError,
    VersionFormatError,
)
from dockerx_installer._platform import SUPPORTED_PLATFORMS, platform_key
from dockerx_installer._types import (
    ArtifactEntry,
    PlatformKey,
    is_valid_sha256,
    is_valid_version,
)

logger = logging.getLogger(__name__)

BINARY_NAME = "dockerx"

DEFAULT_GITHUB_REPO = "wpkpda/dockerx"

# Release assets use uname-style architecture names.
URL_ARCH_TOKENS: Mapping[str, str] = {
    "amd64": "x86_64",
    "arm64": "aarch64",
}


def asset_name(os_name: str, arch: str, version: str) -> str:
    """Return the GitHub release asset name for a platform archive.

    Example: asset_name("linux", "arm64", "1.2.3")
             -> "dockerx-linux-aarch64-v1.2.3.tar.gz"
    """
    return f"{BINARY_NAME}-{os_name}-{URL_ARCH_TOKENS[arch]}-v{version}.tar.gz"


def download_url(
    os_name: str, arch: str, version: str, github_repo: str = DEFAULT_GITHUB_REPO
) -> str:
    """Build the GitHub release download URL for a platform archive."""
    return (
        f"https://github.com/{github_repo}/"
        f"releases/download/v{version}/{asset_name(os_name, arch, version)}"
    )


def parse_known_version(
    line: str, github_repo: str = DEFAULT_GITHUB_REPO
) -> ArtifactEntry:
    """Parse one ``version|os|arch|sha256[|size]`` pin line.

    Raises:
        ConfigError: If the line is malformed or names an unsupported platform.
    """
    parts = [p.strip() for p in line.strip().split("|")]
    if len(parts) not in (4, 5):
        raise ConfigError(
            f"Expected 'version|os|arch|sha256[|size]', got {line!r}",
            field="known_versions",
        )

    version, os_name, arch, sha256 = parts[:4]
    if not is_valid_version(version):
        raise VersionFormatError(version)

    try:
        key = platform_key(os_name, arch)
    except UnsupportedPlatformError as exc:
        raise ConfigError(str(exc), field="known_versions") from exc

    sha256 = sha256.lower()
    if not is_valid_sha256(sha256):
        raise ConfigError(
            f"Invalid sha256 digest for {version} {key}: {parts[3]!r}",
            field="known_versions",
        )

    size: Optional[int] = None
    if len(parts) == 5:
        if not parts[4].isdigit():
            raise ConfigError(
                f"Invalid size for {version} {key}: {parts[4]!r}",
                field="known_versions",
            )
        size = int(parts[4])

    return ArtifactEntry(
        platform=key,
        version=version,
        url=download_url(key.os, key.arch, version, github_repo),
        sha256=sha256,
        size=size,
    )


class ArtifactTable:
    """Static mapping (PlatformKey, version) -> ArtifactEntry.

    Built once from pin lines; lookups outside it fail closed.
    """

    def __init__(self, entries: Iterable[ArtifactEntry] = ()):
        self._entries: dict[tuple[PlatformKey, str], ArtifactEntry] = {}
        for entry in entries:
            key = (entry.platform, entry.version)
            if key in self._entries:
                raise ConfigError(
                    f"Duplicate pin for dockerx {entry.version} on {entry.platform}",
                    field="known_versions",
                )
            self._entries[key] = entry

    @classmethod
    def from_known_versions(
        cls, lines: Iterable[str], github_repo: str = DEFAULT_GITHUB_REPO
    ) -> "ArtifactTable":
        return cls(parse_known_version(line, github_repo) for line in lines)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(sorted(
            self._entries.values(),
            key=lambda e: (e.version, e.platform.os, e.platform.arch),
        ))

    def __contains__(self, key: tuple[PlatformKey, str]) -> bool:
        return key in self._entries

    @property
    def versions(self) -> list[str]:
        return sorted({version for _, version in self._entries})

    def lookup(self, platform: PlatformKey, version: str) -> ArtifactEntry:
        """Return the pinned entry for ``platform`` and ``version``.

        Raises:
            UnsupportedPlatformError: If ``platform`` is outside the matrix.
            UnresolvedArtifactError: If the matrix has no pin for it.
        """
        if platform not in SUPPORTED_PLATFORMS:
            raise UnsupportedPlatformError(platform.os, platform.arch)
        try:
            return self._entries[(platform, version)]
        except KeyError:
            raise UnresolvedArtifactError(str(platform), version) from None

    def missing_platforms(self, version: str) -> list[PlatformKey]:
        """Supported platforms with no pin for ``version``."""
        return [p for p in SUPPORTED_PLATFORMS if (p, version) not in self._entries]

    def to_known_versions(self) -> list[str]:
        return [entry.to_known_version() for entry in self]


def parse_checksums(content: str) -> dict[str, str]:
    """Parse ``sha256sum`` output into ``{filename: digest}``.

    Accepts both text (``<hex>  name``) and binary (``<hex> *name``) modes.
    Blank lines and ``#`` comments are skipped.

    Raises:
        ConfigError: If a line is malformed.
    """
    checksums: dict[str, str] = {}
    for line_num, line in enumerate(content.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        parts = stripped.split(None, 1)
        if len(parts) != 2 or not is_valid_sha256(parts[0].lower()):
            raise ConfigError(
                f"Invalid checksums line {line_num}: {line!r}", field="checksums"
            )
        checksums[parts[1].lstrip("*").strip()] = parts[0].lower()
    return checksums


def pin_release(
    version: str, checksums: Mapping[str, str], github_repo: str = DEFAULT_GITHUB_REPO
) -> list[ArtifactEntry]:
    """Build one entry per supported platform from a release checksums file.

    Raises:
        VersionFormatError: If ``version`` is not a semantic version.
        ConfigError: If any platform's asset is missing from ``checksums``.
    """
    if not is_valid_version(version):
        raise VersionFormatError(version)

    entries = []
    missing = []
    for key in SUPPORTED_PLATFORMS:
        name = asset_name(key.os, key.arch, version)
        digest = checksums.get(name)
        if digest is None:
            missing.append(name)
            continue
        entries.append(ArtifactEntry(
            platform=key,
            version=version,
            url=download_url(key.os, key.arch, version, github_repo),
            sha256=digest,
        ))

    if missing:
        raise ConfigError(
            f"Checksums file has no entry for: {', '.join(missing)}",
            field="checksums",
        )

    logger.info("Pinned dockerx %s for %d platforms", version, len(entries))
    return entries
