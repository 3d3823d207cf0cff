"""Host platform detection (no network, no side effects).

Classifies the running machine into one of the four supported
``PlatformKey`` values. Any ARM-family CPU counts as ``arm64`` and
everything else as ``amd64``; only the OS can be unsupported.
"""

from __future__ import annotations

import logging
import platform
from typing import Optional

from dockerx_installer._exceptions import UnsupportedPlatformError
from dockerx_installer._types import SUPPORTED_ARCH, SUPPORTED_OS, PlatformKey

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS: tuple[PlatformKey, ...] = tuple(
    PlatformKey(os_name, arch) for os_name in SUPPORTED_OS for arch in SUPPORTED_ARCH
)

_ARM_PREFIXES = ("arm", "aarch")


def normalize_os(system: str) -> str:
    """Map ``platform.system()`` output to ``darwin`` or ``linux``."""
    os_name = system.strip().lower()
    if os_name not in SUPPORTED_OS:
        raise UnsupportedPlatformError(system or "<unknown>")
    return os_name


def normalize_arch(machine: str) -> str:
    """Map ``platform.machine()`` output to ``arm64`` or ``amd64``.

    Example: normalize_arch("aarch64") -> "arm64"
             normalize_arch("x86_64")  -> "amd64"
    """
    m = machine.strip().lower()
    if m.startswith(_ARM_PREFIXES):
        return "arm64"
    return "amd64"


def platform_key(os_name: str, arch: str) -> PlatformKey:
    """Build a key from explicit tokens, rejecting anything outside the matrix."""
    key = PlatformKey(os_name.strip().lower(), arch.strip().lower())
    if key not in SUPPORTED_PLATFORMS:
        raise UnsupportedPlatformError(key.os, key.arch)
    return key


def detect(system: Optional[str] = None, machine: Optional[str] = None) -> PlatformKey:
    """Return the PlatformKey of the running host.

    ``system`` and ``machine`` default to ``platform.system()`` and
    ``platform.machine()``.

    Raises:
        UnsupportedPlatformError: If the OS is neither darwin nor linux.
    """
    if system is None:
        system = platform.system()
    if machine is None:
        machine = platform.machine()

    key = PlatformKey(normalize_os(system), normalize_arch(machine))
    logger.debug("Detected platform %s (system=%r, machine=%r)", key, system, machine)
    return key
