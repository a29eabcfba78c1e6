"""
Tests for organizing a prepared release into the repository.
"""

import shutil
from pathlib import Path

import pytest

from alpine_brew.core.errors import OrganizeError, TargetExistsError, UserCancelledError
from alpine_brew.core.services.organizer import (
    OrganizeResult,
    check_source,
    git_commands,
    organize_release,
    read_version,
    render_tree,
    target_name,
)
from tests.helpers import HOST_ARCH, write_release


class TestTargetName:
    def test_truncates_to_major_minor(self):
        assert target_name("v3.19", "3.19.9") == "3.19"

    def test_rolling_channel_literal(self):
        assert target_name("edge", "3.21.0_alpha20241010") == "edge"

    def test_custom_rolling_channel(self):
        assert target_name("next", "4.0.0", rolling_channel="next") == "next"

    def test_unparseable_version_used_verbatim(self):
        assert target_name("v3.19", "snapshot") == "snapshot"


class TestReadVersion:
    def test_reads_and_strips(self, scratch: Path):
        assert read_version(scratch) == "3.19.9"

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(OrganizeError, match="Directory does not exist"):
            read_version(tmp_path / "gone")

    def test_empty_directory(self, tmp_path: Path):
        with pytest.raises(OrganizeError, match="Directory is empty"):
            read_version(tmp_path)

    def test_missing_version_lists_contents(self, scratch: Path):
        (scratch / "VERSION").unlink()
        with pytest.raises(OrganizeError) as exc:
            read_version(scratch)
        assert "VERSION file not found" in str(exc.value)
        assert any("checksums.sha512" in h for h in exc.value.hints)

    def test_blank_version(self, scratch: Path):
        (scratch / "VERSION").write_text("\n")
        with pytest.raises(OrganizeError, match="empty"):
            read_version(scratch)


class TestOrganizeRelease:
    def test_copies_version_and_architectures(self, tmp_path: Path):
        src = write_release(tmp_path / "src", arches=("x86_64", "aarch64"))
        out = tmp_path / "repo"
        out.mkdir()

        result = organize_release("v3.19", src, out)

        assert result.target_dir == out / "3.19"
        assert result.version == "3.19.9"
        assert result.architectures == ["aarch64", "x86_64"]
        assert (out / "3.19" / "VERSION").read_text() == "3.19.9\n"
        assert (out / "3.19" / "x86_64" / "Dockerfile").is_file()
        assert (out / "3.19" / "aarch64" / "alpine-minirootfs-3.19.9-aarch64.tar.gz").is_file()
        assert not (out / "3.19" / "checksums.sha512").exists()

    def test_edge_uses_literal_name(self, tmp_path: Path):
        src = write_release(tmp_path / "src", version="3.21.0_alpha20241010")
        result = organize_release("edge", src, tmp_path)
        assert result.target_dir == tmp_path / "edge"
        assert (tmp_path / "edge" / HOST_ARCH / "Dockerfile").is_file()

    def test_skips_dirs_without_dockerfile(self, tmp_path: Path, caplog):
        src = write_release(tmp_path / "src", extra_dirs=("docs",))
        with caplog.at_level("INFO"):
            result = organize_release("v3.19", src, tmp_path)
        assert result.skipped == ["docs"]
        assert not (tmp_path / "3.19" / "docs").exists()
        assert "Skipping docs (no Dockerfile found)" in caplog.text

    def test_existing_target_non_interactive(self, tmp_path: Path):
        src = write_release(tmp_path / "src")
        organize_release("v3.19", src, tmp_path)
        with pytest.raises(TargetExistsError, match="Remove it first or run interactively"):
            organize_release("v3.19", src, tmp_path)

    def test_existing_target_declined(self, tmp_path: Path):
        src = write_release(tmp_path / "src")
        (tmp_path / "3.19").mkdir()
        (tmp_path / "3.19" / "keep-me").write_text("x")

        asked = []
        with pytest.raises(UserCancelledError):
            organize_release("v3.19", src, tmp_path, confirm_overwrite=lambda p: asked.append(p) or False)
        assert asked == [tmp_path / "3.19"]
        assert (tmp_path / "3.19" / "keep-me").exists()

    def test_existing_target_replaced(self, tmp_path: Path):
        src = write_release(tmp_path / "src")
        (tmp_path / "3.19").mkdir()
        (tmp_path / "3.19" / "stale").write_text("x")

        organize_release("v3.19", src, tmp_path, confirm_overwrite=lambda p: True)
        assert not (tmp_path / "3.19" / "stale").exists()
        assert (tmp_path / "3.19" / "VERSION").is_file()

    def test_copy_failure_aborts_remaining_architectures(self, tmp_path: Path, monkeypatch):
        src = write_release(tmp_path / "src", arches=("aarch64", "x86_64"))
        copied = []

        def _failing_copytree(source, destination, *args, **kwargs):
            copied.append(Path(source).name)
            raise OSError("No space left on device")

        monkeypatch.setattr(shutil, "copytree", _failing_copytree)
        with pytest.raises(OrganizeError, match="Failed to copy files for aarch64"):
            organize_release("v3.19", src, tmp_path)
        assert copied == ["aarch64"]
        assert not (tmp_path / "3.19" / "x86_64").exists()

    def test_replace_failure_is_reported(self, tmp_path: Path, monkeypatch):
        src = write_release(tmp_path / "src")
        (tmp_path / "3.19").mkdir()

        def _failing_rmtree(path, *args, **kwargs):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr(shutil, "rmtree", _failing_rmtree)
        with pytest.raises(OrganizeError, match="Failed to remove existing"):
            organize_release("v3.19", src, tmp_path, confirm_overwrite=lambda p: True)

    def test_create_failure_is_reported(self, tmp_path: Path):
        src = write_release(tmp_path / "src")
        output_root = tmp_path / "repo"
        output_root.write_text("not a directory\n")
        with pytest.raises(OrganizeError, match="Failed to create version directory"):
            organize_release("v3.19", src, output_root)

    def test_existing_plain_file_target_replaced(self, tmp_path: Path):
        src = write_release(tmp_path / "src")
        (tmp_path / "edge").write_text("stray file\n")
        result = organize_release("edge", src, tmp_path, confirm_overwrite=lambda p: True)
        assert (result.target_dir / "VERSION").is_file()

    def test_refuses_target_as_source(self, tmp_path: Path):
        src = write_release(tmp_path / "src")
        first = organize_release("v3.19", src, tmp_path)
        with pytest.raises(OrganizeError, match="overlaps"):
            organize_release("v3.19", first.target_dir, tmp_path, confirm_overwrite=lambda p: True)
        assert (first.target_dir / "VERSION").is_file()


class TestCheckSource:
    def test_separate_directories_accepted(self, tmp_path: Path):
        check_source(tmp_path / "scratch", tmp_path / "repo" / "3.19", tmp_path / "repo")

    def test_sibling_inside_output_root_accepted(self, tmp_path: Path):
        check_source(tmp_path / "repo" / "prepared", tmp_path / "repo" / "3.19", tmp_path / "repo")

    @pytest.mark.parametrize("source", ["repo/3.19", "repo/3.19/x86_64", "repo"])
    def test_overlap_refused(self, tmp_path: Path, source: str):
        with pytest.raises(OrganizeError):
            check_source(tmp_path / source, tmp_path / "repo" / "3.19", tmp_path / "repo")

    def test_parent_of_target_refused(self, tmp_path: Path):
        with pytest.raises(OrganizeError, match="overlaps"):
            check_source(tmp_path, tmp_path / "repo" / "3.19", tmp_path / "repo")


class TestReporting:
    def test_git_commands(self, tmp_path: Path):
        result = OrganizeResult(target_dir=tmp_path / "3.19", version="3.19.9")
        assert git_commands(result) == [
            "git add 3.19",
            "git commit -m 'feat: add Alpine 3.19 Dockerfiles'",
        ]

    def test_render_tree(self, tmp_path: Path):
        src = write_release(tmp_path / "src", arches=("x86_64",))
        result = organize_release("v3.19", src, tmp_path / "out")
        lines = render_tree(result.target_dir)
        assert lines[0] == str(result.target_dir)
        assert "├── VERSION" in lines
        assert "└── x86_64" in lines
        assert "    ├── Dockerfile" in lines

    def test_to_dict(self, tmp_path: Path):
        result = OrganizeResult(target_dir=tmp_path / "edge", version="3.21.0", architectures=["x86_64"])
        assert result.to_dict()["architectures"] == ["x86_64"]
        assert result.name == "edge"
