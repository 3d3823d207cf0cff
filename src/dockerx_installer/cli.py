"""``dockerx-installer`` command line entry point.

Errors are logged and mapped to the exit code carried by their class, so
automation can tell an unsupported platform from an integrity failure or
a network failure.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

import yaml

from dockerx_installer._artifacts import (
    ArtifactTable,
    parse_checksums,
    pin_release,
)
from dockerx_installer._config import InstallerSettings, load_settings
from dockerx_installer._exceptions import ConfigError, DockerxInstallerError
from dockerx_installer._formula import generate_formula
from dockerx_installer._platform import SUPPORTED_PLATFORMS, detect, platform_key
from dockerx_installer._types import PlatformKey
from dockerx_installer.installer import install_artifact

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False) -> None:
    root = logging.getLogger()
    if getattr(root, "_dockerx_configured", False):
        root.setLevel(logging.DEBUG if verbose else logging.INFO)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    setattr(root, "_dockerx_configured", True)


def _host(args: argparse.Namespace) -> PlatformKey:
    if args.os or args.arch:
        if not (args.os and args.arch):
            raise ConfigError("--os and --arch must be given together", field="platform")
        return platform_key(args.os, args.arch)
    return detect()


def _cmd_install(args: argparse.Namespace, settings: InstallerSettings, out: TextIO) -> int:
    settings = settings.replace(install_dir=args.target_dir)
    installed = install_artifact(
        settings.version,
        settings.install_dir,
        table=settings.artifact_table(),
        host=_host(args),
        timeout=settings.timeout,
    )
    print(f"Installed dockerx {installed.version} ({installed.platform}) to {installed.path}", file=out)
    return 0


def _cmd_resolve(args: argparse.Namespace, settings: InstallerSettings, out: TextIO) -> int:
    entry = settings.artifact_table().lookup(_host(args), settings.version)
    print(f"url: {entry.url}", file=out)
    print(f"sha256: {entry.sha256}", file=out)
    if entry.size is not None:
        print(f"size: {entry.size}", file=out)
    return 0


def _cmd_platforms(args: argparse.Namespace, settings: InstallerSettings, out: TextIO) -> int:
    table = settings.artifact_table()
    missing = table.missing_platforms(settings.version)
    for key in SUPPORTED_PLATFORMS:
        status = "missing" if key in missing else "pinned"
        print(f"{key}\t{status}", file=out)
    return ConfigError.exit_code if missing else 0


def _cmd_pin(args: argparse.Namespace, settings: InstallerSettings, out: TextIO) -> int:
    try:
        content = Path(args.checksums).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read checksums file {args.checksums}: {exc.strerror or exc}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigError(f"Checksums file {args.checksums} is not UTF-8: {exc}") from exc

    entries = pin_release(settings.version, parse_checksums(content), settings.github_repo)
    document = {
        "version": settings.version,
        "github_repo": settings.github_repo,
        "known_versions": ArtifactTable(entries).to_known_versions(),
    }
    out.write(yaml.dump(document, default_flow_style=False, sort_keys=False))
    return 0


def _cmd_formula(args: argparse.Namespace, settings: InstallerSettings, out: TextIO) -> int:
    out.write(generate_formula(settings.artifact_table(), settings.version, settings.github_repo))
    return 0


def _add_release_options(parser: argparse.ArgumentParser, default) -> None:
    parser.add_argument("--version", dest="release_version", default=default, help="dockerx version to use (X.Y.Z)")
    parser.add_argument("--repo", default=default, help="GitHub repository (owner/repo) hosting releases")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dockerx-installer",
        description="Install the prebuilt dockerx binary for this machine.",
    )
    p.add_argument("--config", default=None, help="Path to settings file (yaml)")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    _add_release_options(p, default=None)

    # Subcommands accept the release options too; SUPPRESS keeps an
    # unset subcommand option from clobbering the top-level value.
    release = argparse.ArgumentParser(add_help=False)
    _add_release_options(release, default=argparse.SUPPRESS)

    sub = p.add_subparsers(dest="command", required=True)

    install = sub.add_parser("install", parents=[release], help="Download, verify and install dockerx")
    install.add_argument("--target-dir", default=None, help="Directory to install dockerx into")

    resolve = sub.add_parser("resolve", parents=[release], help="Print the pinned artifact for a platform")

    for sp in (install, resolve):
        sp.add_argument("--os", default=None, help="Override detected OS (darwin|linux)")
        sp.add_argument("--arch", default=None, help="Override detected arch (amd64|arm64)")

    sub.add_parser("platforms", parents=[release], help="Show the support matrix for the version")

    pin = sub.add_parser("pin", parents=[release], help="Generate known_versions from a release checksums file")
    pin.add_argument("--checksums", required=True, help="sha256sum-style file for the release")

    sub.add_parser("formula", parents=[release], help="Render the Homebrew formula")

    p.set_defaults(handlers={
        "install": _cmd_install,
        "resolve": _cmd_resolve,
        "platforms": _cmd_platforms,
        "pin": _cmd_pin,
        "formula": _cmd_formula,
    })
    return p


def main(argv: Optional[list[str]] = None, out: Optional[TextIO] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    out = out if out is not None else sys.stdout

    try:
        settings = load_settings(args.config).replace(
            version=args.release_version,
            github_repo=args.repo,
        )
        return args.handlers[args.command](args, settings, out)
    except DockerxInstallerError as exc:
        logger.error("%s (%s)", exc, exc.kind)
        return exc.exit_code


if __name__ == "__main__":
    sys.exit(main())
