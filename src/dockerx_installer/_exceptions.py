"""Exception hierarchy for the dockerx installer.

Every error is terminal. ``kind`` and ``exit_code`` let automation branch on
the failure without parsing messages.
"""

from __future__ import annotations


class DockerxInstallerError(Exception):
    """Base for all dockerx installer errors."""

    kind = "error"
    exit_code = 1


class UnsupportedPlatformError(DockerxInstallerError):
    """Host OS/arch is outside the support matrix."""

    kind = "unsupported-platform"
    exit_code = 10

    def __init__(self, os_name: str, arch: str | None = None):
        self.os_name = os_name
        self.arch = arch
        detail = f"{os_name}/{arch}" if arch else os_name
        super().__init__(
            f"Unsupported platform: {detail}. "
            "dockerx is released for darwin and linux on amd64 and arm64 only"
        )


class UnresolvedArtifactError(DockerxInstallerError):
    """No pinned artifact for an otherwise supported platform."""

    kind = "unresolved-artifact"
    exit_code = 11

    def __init__(self, platform: str, version: str):
        self.platform = platform
        self.version = version
        super().__init__(
            f"No known artifact for dockerx {version} on {platform}. "
            "The release's known_versions table is incomplete"
        )


class NetworkError(DockerxInstallerError):
    """Transport-level failure fetching the artifact."""

    kind = "network"
    exit_code = 12

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download {url}: {reason}")


class ChecksumMismatchError(DockerxInstallerError):
    """Downloaded bytes do not match the pinned digest."""

    kind = "checksum-mismatch"
    exit_code = 13

    def __init__(self, url: str, expected: str, actual: str):
        self.url = url
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for {url}: expected {expected}, got {actual}"
        )


class MalformedArtifactError(DockerxInstallerError):
    """Archive structure does not match expectations."""

    kind = "malformed-artifact"
    exit_code = 14

    def __init__(self, reason: str, *, archive: str | None = None):
        self.reason = reason
        self.archive = archive
        prefix = f"{archive}: " if archive else ""
        super().__init__(f"Malformed artifact: {prefix}{reason}")


class InstallIOError(DockerxInstallerError):
    """Filesystem failure writing or renaming the final binary."""

    kind = "install-io"
    exit_code = 15

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to install {path}: {reason}")


class ConfigError(DockerxInstallerError):
    """Installer settings or the known_versions table are invalid."""

    kind = "config"
    exit_code = 16

    def __init__(self, message: str, *, field: str | None = None):
        self.field = field
        prefix = f"[{field}] " if field else ""
        super().__init__(f"{prefix}{message}")


class VersionFormatError(ConfigError):
    """Version string is not a semantic version."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"Invalid dockerx version: {version!r}. "
            "Must match X.Y.Z or X.Y.Z-PRERELEASE (no leading 'v')",
            field="version",
        )
