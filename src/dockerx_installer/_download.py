"""Artifact download and SHA-256 verification.

One HTTPS GET per install, streamed to disk. No retries: a transport
failure surfaces immediately as NetworkError.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from pathlib import Path
from typing import Optional

import requests

from dockerx_installer._exceptions import (
    ChecksumMismatchError,
    InstallIOError,
    NetworkError,
)
from dockerx_installer._types import ArtifactEntry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
_CHUNK_SIZE = 1024 * 1024


def fetch_artifact(
    url: str,
    dest: Path,
    *,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> int:
    """Download ``url`` to ``dest`` and return the number of bytes written.

    Raises:
        NetworkError: On connection errors, timeouts or non-2xx responses.
    """
    http = session if session is not None else requests.Session()
    written = 0
    try:
        with http.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(dest, "wb") as fh:
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    if chunk:
                        fh.write(chunk)
                        written += len(chunk)
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else "?"
        raise NetworkError(url, f"HTTP {status}") from exc
    except requests.RequestException as exc:
        raise NetworkError(url, str(exc) or type(exc).__name__) from exc
    except OSError as exc:
        raise InstallIOError(str(dest), exc.strerror or str(exc)) from exc
    finally:
        if session is None:
            http.close()

    logger.info("Downloaded %s (%d bytes)", url, written)
    return written


def sha256_file(path: Path) -> str:
    """Return the lowercase hex SHA-256 digest of a file."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def verify_artifact(path: Path, entry: ArtifactEntry) -> str:
    """Check a downloaded archive against its pinned digest (and size, if pinned).

    Returns the computed digest.

    Raises:
        ChecksumMismatchError: If the digest or pinned size differ.
    """
    if entry.size is not None:
        actual_size = path.stat().st_size
        if actual_size != entry.size:
            raise ChecksumMismatchError(
                entry.url, f"{entry.size} bytes", f"{actual_size} bytes"
            )

    actual = sha256_file(path)
    if not hmac.compare_digest(actual, entry.sha256.lower()):
        raise ChecksumMismatchError(entry.url, entry.sha256, actual)

    logger.info("Verified sha256 %s for %s", actual, entry.asset_name)
    return actual
