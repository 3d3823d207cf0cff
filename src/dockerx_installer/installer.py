"""Resolve, download, verify and install the dockerx binary.

Pipeline (each step is a hard gate)::

    detect platform -> look up pin -> download -> verify sha256
        -> locate binary in archive -> atomic write to <target_dir>/dockerx

The download lives in a temporary directory that is removed on every
exit path. The final path only ever holds the previous binary or the
complete new one.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import IO, Optional, Union

import requests

from dockerx_installer._archive import open_binary
from dockerx_installer._artifacts import BINARY_NAME, ArtifactTable
from dockerx_installer._download import DEFAULT_TIMEOUT, fetch_artifact, verify_artifact
from dockerx_installer._exceptions import InstallIOError
from dockerx_installer._platform import detect
from dockerx_installer._types import InstalledBinary, PlatformKey

logger = logging.getLogger(__name__)

BINARY_MODE = 0o755


def atomic_install(source: IO[bytes], dest: Path, mode: int = BINARY_MODE) -> None:
    """Write ``source`` to ``dest`` via a temp file in the same directory.

    The temp file is fsynced and chmodded before ``os.replace``; it is
    removed if anything (including KeyboardInterrupt) interrupts the write.

    Raises:
        InstallIOError: On any filesystem failure.
    """
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=dest.parent)
    except OSError as exc:
        raise InstallIOError(str(dest), exc.strerror or str(exc)) from exc

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            shutil.copyfileobj(source, fh)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, dest)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise InstallIOError(str(dest), exc.strerror or str(exc)) from exc
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def install_artifact(
    version: str,
    target_dir: Union[str, Path],
    *,
    table: ArtifactTable,
    host: Optional[PlatformKey] = None,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> InstalledBinary:
    """Install dockerx ``version`` into ``target_dir`` for the host platform.

    Args:
        version: Release version, without the leading ``v``.
        target_dir: Directory that receives the ``dockerx`` executable.
        table: Pinned artifacts for this release.
        host: Platform override; detected from the running machine if omitted.
        session: ``requests`` session used for the download.
        timeout: Per-socket download timeout in seconds.

    Returns:
        The installed binary.

    Raises:
        UnsupportedPlatformError: Host is outside the support matrix.
        UnresolvedArtifactError: No pin for the host platform and version.
        NetworkError: The download failed.
        ChecksumMismatchError: The archive does not match its pin.
        MalformedArtifactError: The archive has no usable ``dockerx`` entry.
        InstallIOError: Writing the final binary failed.
    """
    platform = host if host is not None else detect()
    entry = table.lookup(platform, version)
    dest = Path(target_dir) / BINARY_NAME

    logger.info("Installing dockerx %s for %s from %s", version, platform, entry.url)

    with tempfile.TemporaryDirectory(prefix="dockerx-download-") as tmp:
        archive = Path(tmp) / entry.asset_name
        fetch_artifact(entry.url, archive, session=session, timeout=timeout)
        digest = verify_artifact(archive, entry)
        with open_binary(archive) as binary:
            atomic_install(binary, dest)

    installed = InstalledBinary(
        path=str(dest),
        mode=BINARY_MODE,
        version=version,
        platform=platform,
        sha256=digest,
    )
    logger.info("Installed dockerx %s to %s", version, dest)
    return installed
