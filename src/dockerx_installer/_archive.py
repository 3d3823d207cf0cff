"""Locate the dockerx binary inside a release ``.tar.gz``.

Release archives hold a single top-level ``dockerx`` file. Nothing is
extracted to disk here; callers stream the member where they need it.
"""

from __future__ import annotations

import gzip
import logging
import tarfile
import zlib
from contextlib import contextmanager
from pathlib import Path, PurePosixPath
from typing import IO, Iterator

from dockerx_installer._artifacts import BINARY_NAME
from dockerx_installer._exceptions import MalformedArtifactError

logger = logging.getLogger(__name__)

_READ_ERRORS = (tarfile.TarError, EOFError, zlib.error, gzip.BadGzipFile)


def _is_unsafe(name: str) -> bool:
    path = PurePosixPath(name)
    return path.is_absolute() or ".." in path.parts or name.startswith("\\")


def _member_parts(name: str) -> tuple[str, ...]:
    return tuple(p for p in PurePosixPath(name).parts if p != ".")


def find_binary_member(tar: tarfile.TarFile, name: str = BINARY_NAME) -> tarfile.TarInfo:
    """Return the single regular-file member called ``name``.

    Raises:
        MalformedArtifactError: On traversal segments, a missing or
            duplicated entry, or an entry that is not a regular file.
    """
    found: list[tarfile.TarInfo] = []
    for member in tar.getmembers():
        if _is_unsafe(member.name):
            raise MalformedArtifactError(f"unsafe path in archive: {member.name!r}")
        if (member.issym() or member.islnk()) and _is_unsafe(member.linkname):
            raise MalformedArtifactError(
                f"unsafe link target in archive: {member.name!r} -> {member.linkname!r}"
            )
        if _member_parts(member.name) == (name,):
            found.append(member)

    if not found:
        raise MalformedArtifactError(f"archive has no {name!r} entry")
    if len(found) > 1:
        raise MalformedArtifactError(f"archive has {len(found)} {name!r} entries")

    member = found[0]
    if not member.isfile():
        raise MalformedArtifactError(f"{member.name!r} is not a regular file")
    return member


@contextmanager
def open_binary(archive: Path, name: str = BINARY_NAME) -> Iterator[IO[bytes]]:
    """Open the ``name`` entry of a gzipped tarball for reading.

    Read errors raised while the caller consumes the stream are reported
    as MalformedArtifactError too.
    """
    try:
        with tarfile.open(archive, "r:gz") as tar:
            member = find_binary_member(tar, name)
            fileobj = tar.extractfile(member)
            if fileobj is None:
                raise MalformedArtifactError(f"cannot read {member.name!r}")
            logger.debug("Found %s (%d bytes) in %s", member.name, member.size, archive.name)
            with fileobj:
                yield fileobj
    except _READ_ERRORS as exc:
        raise MalformedArtifactError(str(exc) or type(exc).__name__, archive=archive.name) from exc
