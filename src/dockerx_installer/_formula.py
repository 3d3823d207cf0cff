"""Homebrew formula generation (packaging/homebrew/dockerx.rb).

Renders the per-OS/per-arch ``url``/``sha256`` stanzas from the same
pinned artifact table the installer resolves against, so the formula
and the installer can never disagree about a release.
"""

from __future__ import annotations

from dockerx_installer._artifacts import ArtifactTable
from dockerx_installer._platform import SUPPORTED_PLATFORMS

FORMULA_DESCRIPTION = "Hardened Docker dev environment launcher"
FORMULA_LICENSE = "MIT"

_FORMULA_TEMPLATE = """class Dockerx < Formula
  desc "{description}"
  homepage "https://github.com/{github_repo}"
  version "{version}"
  license "{license}"

  on_macos do
    if Hardware::CPU.arm?
      url "{darwin_arm64_url}"
      sha256 "{darwin_arm64_sha}"
    else
      url "{darwin_amd64_url}"
      sha256 "{darwin_amd64_sha}"
    end
  end

  on_linux do
    if Hardware::CPU.arm?
      url "{linux_arm64_url}"
      sha256 "{linux_arm64_sha}"
    else
      url "{linux_amd64_url}"
      sha256 "{linux_amd64_sha}"
    end
  end

  def install
    bin.install "dockerx"
  end
end
"""


def generate_formula(
    table: ArtifactTable,
    version: str,
    github_repo: str,
    *,
    description: str = FORMULA_DESCRIPTION,
    license: str = FORMULA_LICENSE,
) -> str:
    """Generate the Homebrew formula for ``version``.

    Args:
        table: Pinned artifacts; must cover all four platforms for ``version``.
        version: Release version, without the leading ``v``.
        github_repo: owner/repo for the homepage.
        description: Formula ``desc``.
        license: SPDX license identifier.

    Returns:
        Complete formula content as a string.

    Raises:
        UnresolvedArtifactError: If any platform lacks a pin for ``version``.
    """
    stanzas: dict[str, str] = {}
    for key in SUPPORTED_PLATFORMS:
        entry = table.lookup(key, version)
        stanzas[f"{key.os}_{key.arch}_url"] = entry.url
        stanzas[f"{key.os}_{key.arch}_sha"] = entry.sha256

    return _FORMULA_TEMPLATE.format(
        description=description,
        github_repo=github_repo,
        version=version,
        license=license,
        **stanzas,
    )
