"""Installer settings: defaults, YAML file, environment.

Precedence, lowest to highest: field defaults, the YAML settings file,
``DOCKERX_*`` environment variables. CLI flags are applied on top by
the caller.

Example settings file::

    version: 1.2.3
    github_repo: wpkpda/dockerx
    install_dir: /usr/local/bin
    known_versions:
      - 1.2.3|darwin|amd64|<sha256>
      - 1.2.3|darwin|arm64|<sha256>
      - 1.2.3|linux|amd64|<sha256>
      - 1.2.3|linux|arm64|<sha256>
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import jsonschema
import yaml

from dockerx_installer._artifacts import DEFAULT_GITHUB_REPO, ArtifactTable
from dockerx_installer._download import DEFAULT_TIMEOUT
from dockerx_installer._exceptions import ConfigError, VersionFormatError
from dockerx_installer._types import is_valid_version

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "0.1.0"
DEFAULT_INSTALL_DIR = "/usr/local/bin"

ENV_PREFIX = "DOCKERX_"

SETTINGS_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "version": {"type": "string", "minLength": 1},
        "github_repo": {"type": "string", "pattern": r"^[\w.-]+/[\w.-]+$"},
        "install_dir": {"type": "string", "minLength": 1},
        "timeout": {"type": "number", "exclusiveMinimum": 0},
        "known_versions": {"type": "array", "items": {"type": "string"}},
    },
}


@dataclass(frozen=True)
class InstallerSettings:
    """Release metadata and install defaults for dockerx."""

    # Release version to install (no leading "v")
    version: str = DEFAULT_VERSION
    # GitHub repository (owner/repo) hosting release assets
    github_repo: str = DEFAULT_GITHUB_REPO
    # Directory receiving the dockerx executable; should be on PATH
    install_dir: str = DEFAULT_INSTALL_DIR
    # Download socket timeout in seconds
    timeout: float = DEFAULT_TIMEOUT
    # Pins: "version|os|arch|sha256[|size]"
    known_versions: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not is_valid_version(self.version):
            raise VersionFormatError(self.version)

    def artifact_table(self) -> ArtifactTable:
        return ArtifactTable.from_known_versions(self.known_versions, self.github_repo)

    def replace(self, **changes: Any) -> "InstallerSettings":
        """Return a copy with non-None ``changes`` applied."""
        return dataclasses.replace(self, **{k: v for k, v in changes.items() if v is not None})


def validate_settings_dict(data: Any) -> list[str]:
    """Validate raw settings data against the JSON schema. Returns errors."""
    validator = jsonschema.Draft7Validator(SETTINGS_SCHEMA)
    errors = []
    for error in validator.iter_errors(data):
        path = ".".join(str(p) for p in error.absolute_path)
        prefix = f"[{path}] " if path else ""
        errors.append(f"Schema: {prefix}{error.message}")
    return errors


def parse_settings(content: str, *, source: str = "<string>") -> dict[str, Any]:
    """Parse and validate YAML settings content into keyword arguments."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigError(f"{source}: invalid YAML: {exc}") from exc

    if data is None:
        return {}

    errors = validate_settings_dict(data)
    if errors:
        raise ConfigError(f"{source}: " + "; ".join(errors))

    if "known_versions" in data:
        data["known_versions"] = tuple(data["known_versions"])
    return data


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for name in ("version", "github_repo", "install_dir"):
        value = env.get(ENV_PREFIX + name.upper())
        if value:
            overrides[name] = value

    timeout = env.get(ENV_PREFIX + "TIMEOUT")
    if timeout:
        try:
            overrides["timeout"] = float(timeout)
        except ValueError:
            raise ConfigError(
                f"Invalid {ENV_PREFIX}TIMEOUT: {timeout!r}", field="timeout"
            ) from None
        if overrides["timeout"] <= 0:
            raise ConfigError(
                f"{ENV_PREFIX}TIMEOUT must be positive, got {timeout!r}", field="timeout"
            )
    return overrides


def load_settings(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> InstallerSettings:
    """Build settings from defaults, an optional YAML file and the environment.

    Raises:
        ConfigError: If the file is unreadable or invalid, or an override is malformed.
    """
    values: dict[str, Any] = {}

    if path is not None:
        try:
            content = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read settings file {path}: {exc.strerror or exc}") from exc
        except UnicodeDecodeError as exc:
            raise ConfigError(f"Settings file {path} is not UTF-8: {exc}") from exc
        values.update(parse_settings(content, source=str(path)))
        logger.debug("Loaded settings from %s", path)

    values.update(_env_overrides(os.environ if env is None else env))
    return InstallerSettings(**values)
