"""Tests for Homebrew formula generation."""

from __future__ import annotations

import pytest

from dockerx_installer._artifacts import ArtifactTable
from dockerx_installer._exceptions import UnresolvedArtifactError
from dockerx_installer._formula import generate_formula
from dockerx_installer._platform import SUPPORTED_PLATFORMS

SHAS = {str(k): f"{i:064x}" for i, k in enumerate(SUPPORTED_PLATFORMS, start=1)}


def _table(repo="acme/dockerx"):
    return ArtifactTable.from_known_versions(
        (f"1.2.3|{k.os}|{k.arch}|{SHAS[str(k)]}" for k in SUPPORTED_PLATFORMS),
        repo,
    )


class TestGenerateFormula:
    def test_header(self):
        formula = generate_formula(_table(), "1.2.3", "acme/dockerx")
        assert formula.startswith("class Dockerx < Formula\n")
        assert 'desc "Hardened Docker dev environment launcher"' in formula
        assert 'homepage "https://github.com/acme/dockerx"' in formula
        assert 'version "1.2.3"' in formula
        assert 'license "MIT"' in formula

    def test_all_platform_stanzas(self):
        formula = generate_formula(_table(), "1.2.3", "acme/dockerx")
        base = "https://github.com/acme/dockerx/releases/download/v1.2.3"
        for asset in (
            "dockerx-darwin-aarch64-v1.2.3.tar.gz",
            "dockerx-darwin-x86_64-v1.2.3.tar.gz",
            "dockerx-linux-aarch64-v1.2.3.tar.gz",
            "dockerx-linux-x86_64-v1.2.3.tar.gz",
        ):
            assert f'url "{base}/{asset}"' in formula
        for sha in SHAS.values():
            assert f'sha256 "{sha}"' in formula

    def test_arm_branch_gets_arm_digest(self):
        formula = generate_formula(_table(), "1.2.3", "acme/dockerx")
        linux_block = formula.split("on_linux do")[1]
        arm_part, intel_part = linux_block.split("else")[:2]
        assert SHAS["linux-arm64"] in arm_part
        assert SHAS["linux-amd64"] in intel_part

    def test_installs_binary(self):
        formula = generate_formula(_table(), "1.2.3", "acme/dockerx")
        assert 'bin.install "dockerx"' in formula
        assert formula.endswith("end\n")

    def test_no_placeholders_left(self):
        formula = generate_formula(_table(), "1.2.3", "acme/dockerx")
        assert "__" not in formula
        assert "{" not in formula

    def test_incomplete_table(self):
        table = ArtifactTable.from_known_versions(
            [f"1.2.3|linux|amd64|{SHAS['linux-amd64']}"], "acme/dockerx"
        )
        with pytest.raises(UnresolvedArtifactError):
            generate_formula(table, "1.2.3", "acme/dockerx")

    def test_custom_description(self):
        formula = generate_formula(_table(), "1.2.3", "acme/dockerx", description="dev shells")
        assert 'desc "dev shells"' in formula

    @pytest.mark.parametrize("missing", SUPPORTED_PLATFORMS, ids=str)
    def test_every_supported_platform_required(self, missing):
        table = ArtifactTable.from_known_versions(
            (f"1.2.3|{k.os}|{k.arch}|{SHAS[str(k)]}" for k in SUPPORTED_PLATFORMS if k != missing),
            "acme/dockerx",
        )
        with pytest.raises(UnresolvedArtifactError) as exc_info:
            generate_formula(table, "1.2.3", "acme/dockerx")
        assert exc_info.value.platform == str(missing)
