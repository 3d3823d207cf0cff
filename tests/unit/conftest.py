"""Shared fixtures: in-memory release archives and a fake requests session."""

from __future__ import annotations

import hashlib
import io
import tarfile
from dataclasses import dataclass, field
from typing import Optional, Union

import pytest
import requests

from dockerx_installer._artifacts import ArtifactTable
from dockerx_installer._platform import SUPPORTED_PLATFORMS

VERSION = "1.2.3"
BINARY_CONTENT = b"#!/bin/sh\necho dockerx 1.2.3\n"


def make_tarball(members: dict[str, Union[bytes, str]]) -> bytes:
    """Build a .tar.gz; bytes values become files, str values become symlinks."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, content in members.items():
            info = tarfile.TarInfo(name)
            if isinstance(content, str):
                info.type = tarfile.SYMTYPE
                info.linkname = content
                tar.addfile(info)
            else:
                info.size = len(content)
                info.mode = 0o755
                tar.addfile(info, io.BytesIO(content))
    return buf.getvalue()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def table_for(archive: bytes, version: str = VERSION, *, with_size: bool = False) -> ArtifactTable:
    digest = sha256_hex(archive)
    suffix = f"|{len(archive)}" if with_size else ""
    return ArtifactTable.from_known_versions(
        f"{version}|{key.os}|{key.arch}|{digest}{suffix}" for key in SUPPORTED_PLATFORMS
    )


class FakeResponse:
    def __init__(self, url: str, body: bytes, status_code: int = 200):
        self.url = url
        self.body = body
        self.status_code = status_code

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error for url: {self.url}", response=self)

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i:i + chunk_size]


@dataclass
class FakeSession:
    """Stands in for requests.Session; records every GET."""

    bodies: dict[str, bytes] = field(default_factory=dict)
    default_body: Optional[bytes] = None
    status_code: int = 200
    error: Optional[Exception] = None
    calls: list[tuple[str, dict]] = field(default_factory=list)

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        body = self.bodies.get(url, self.default_body)
        if body is None:
            return FakeResponse(url, b"not found", status_code=404)
        return FakeResponse(url, body, status_code=self.status_code)

    def close(self):
        pass


class ExplodingSession:
    """Fails the test if any network call is attempted."""

    def get(self, url, **kwargs):
        raise AssertionError(f"unexpected network call to {url}")


@pytest.fixture
def archive() -> bytes:
    return make_tarball({"dockerx": BINARY_CONTENT})


@pytest.fixture
def table(archive) -> ArtifactTable:
    return table_for(archive)


@pytest.fixture
def session(archive) -> FakeSession:
    return FakeSession(default_body=archive)
