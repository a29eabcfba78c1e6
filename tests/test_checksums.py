"""
Tests for manifest parsing and checksum verification.
"""

import shutil
from pathlib import Path

import pytest

from alpine_brew.adapters.mock import MockAdapter
from alpine_brew.adapters.registry import AdapterRegistry
from alpine_brew.adapters.shell.checksum import ChecksumAdapter
from alpine_brew.core.errors import ChecksumError
from alpine_brew.core.models.action import Receipt
from alpine_brew.core.services.checksums import missing_files, parse_manifest, verify_release
from tests.helpers import HOST_ARCH

DIGEST = "a" * 128

needs_sha512sum = pytest.mark.skipif(shutil.which("sha512sum") is None, reason="sha512sum not installed")


class TestParseManifest:
    def test_parses_text_and_binary_entries(self, tmp_path: Path):
        manifest = tmp_path / "checksums.sha512"
        manifest.write_text(f"{DIGEST}  x86_64/Dockerfile\n\n{DIGEST.upper()} *aarch64/rootfs.tar.gz\n")
        entries = parse_manifest(manifest)
        assert [e.path for e in entries] == ["x86_64/Dockerfile", "aarch64/rootfs.tar.gz"]
        assert entries[1].digest == DIGEST

    def test_missing_manifest(self, tmp_path: Path):
        with pytest.raises(ChecksumError, match="not found"):
            parse_manifest(tmp_path / "checksums.sha512")

    def test_empty_manifest(self, tmp_path: Path):
        manifest = tmp_path / "checksums.sha512"
        manifest.write_text("\n")
        with pytest.raises(ChecksumError, match="lists no files"):
            parse_manifest(manifest)

    def test_malformed_line(self, tmp_path: Path):
        manifest = tmp_path / "checksums.sha512"
        manifest.write_text("deadbeef  x86_64/Dockerfile\n")
        with pytest.raises(ChecksumError, match="Malformed line 1"):
            parse_manifest(manifest)

    @pytest.mark.parametrize("path", ["/etc/passwd", "../outside", "x86_64/../../outside"])
    def test_escaping_paths(self, tmp_path: Path, path: str):
        manifest = tmp_path / "checksums.sha512"
        manifest.write_text(f"{DIGEST}  {path}\n")
        with pytest.raises(ChecksumError, match="escapes"):
            parse_manifest(manifest)

    def test_missing_files(self, scratch: Path):
        entries = parse_manifest(scratch / "checksums.sha512")
        assert missing_files(scratch, entries) == []
        (scratch / HOST_ARCH / "Dockerfile").unlink()
        assert missing_files(scratch, entries) == [f"{HOST_ARCH}/Dockerfile"]


class TestVerifyReleaseWithMock:
    def test_success(self, scratch: Path):
        mock = MockAdapter(adapter_name="checksum")
        entries = verify_release(AdapterRegistry([mock]), scratch)
        assert len(entries) == 2
        ctx = mock.call_log[0]
        assert ctx.cwd == scratch
        assert ctx.params["manifest"] == "checksums.sha512"

    def test_missing_listed_file_fails_before_tool(self, scratch: Path):
        mock = MockAdapter(adapter_name="checksum")
        (scratch / HOST_ARCH / "Dockerfile").unlink()
        with pytest.raises(ChecksumError) as exc:
            verify_release(AdapterRegistry([mock]), scratch)
        assert exc.value.failed == [f"{HOST_ARCH}/Dockerfile"]
        assert mock.call_count == 0

    def test_tool_failure_names_files(self, scratch: Path):
        mock = MockAdapter(adapter_name="checksum")
        mock.set_response(
            "verify-checksums",
            Receipt.failure(
                adapter="checksum",
                action_id="verify-checksums",
                error="WARNING: 1 computed checksum did NOT match",
                metadata={"files": {"x86_64/Dockerfile": "OK", "x86_64/rootfs.tar.gz": "FAILED"}},
            ),
        )
        with pytest.raises(ChecksumError) as exc:
            verify_release(AdapterRegistry([mock]), scratch)
        assert exc.value.failed == ["x86_64/rootfs.tar.gz"]
        assert "FAILED: x86_64/rootfs.tar.gz" in exc.value.hints


@needs_sha512sum
class TestVerifyReleaseWithSha512sum:
    def test_accepts_intact_release(self, scratch: Path):
        entries = verify_release(AdapterRegistry([ChecksumAdapter()]), scratch)
        assert {e.path for e in entries} == {
            f"{HOST_ARCH}/Dockerfile",
            f"{HOST_ARCH}/alpine-minirootfs-3.19.9-{HOST_ARCH}.tar.gz",
        }

    def test_single_byte_change_is_rejected(self, scratch: Path):
        tarball = scratch / HOST_ARCH / f"alpine-minirootfs-3.19.9-{HOST_ARCH}.tar.gz"
        data = bytearray(tarball.read_bytes())
        data[0] ^= 0x01
        tarball.write_bytes(bytes(data))

        with pytest.raises(ChecksumError) as exc:
            verify_release(AdapterRegistry([ChecksumAdapter()]), scratch)
        assert exc.value.failed == [f"{HOST_ARCH}/alpine-minirootfs-3.19.9-{HOST_ARCH}.tar.gz"]
