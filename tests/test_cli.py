"""Tests for the projector CLI."""

import os
import stat
from pathlib import Path

import pytest
from click.testing import CliRunner

from projector.cli import cli
from projector.consts import DATA_DIR_NAME


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Source directory with a top-level and a nested file."""
    source = tmp_path / "source"
    (source / "conf").mkdir(parents=True)
    (source / "hostname").write_bytes(b"web-0\n")
    (source / "conf" / "app.yaml").write_bytes(b"debug: false\n")
    os.chmod(source / "hostname", 0o644)
    os.chmod(source / "conf" / "app.yaml", 0o600)
    return source


class TestWriteCommand:
    """Tests for 'projector-cli write'."""

    def test_projects_source_directory(
        self, runner: CliRunner, target_dir: Path, source_dir: Path
    ) -> None:
        """Files below SOURCE become visible in TARGET with their modes."""
        result = runner.invoke(cli, ["write", str(target_dir), str(source_dir)])

        assert result.exit_code == 0, result.output
        assert "Projected 2 file(s)" in result.output
        assert (target_dir / "hostname").read_bytes() == b"web-0\n"
        assert (target_dir / "conf" / "app.yaml").read_bytes() == b"debug: false\n"
        assert stat.S_IMODE(os.stat(target_dir / "conf" / "app.yaml").st_mode) == 0o600
        assert os.path.islink(target_dir / DATA_DIR_NAME)

    def test_mode_option_overrides(
        self, runner: CliRunner, target_dir: Path, source_dir: Path
    ) -> None:
        """--mode applies one mode to every file."""
        result = runner.invoke(
            cli, ["write", str(target_dir), str(source_dir), "--mode", "0444"]
        )

        assert result.exit_code == 0, result.output
        assert stat.S_IMODE(os.stat(target_dir / "hostname").st_mode) == 0o444

    def test_invalid_mode_rejected(
        self, runner: CliRunner, target_dir: Path, source_dir: Path
    ) -> None:
        """A non-octal mode is a usage error."""
        result = runner.invoke(cli, ["write", str(target_dir), str(source_dir), "--mode", "rw"])

        assert result.exit_code == 2
        assert "not an octal mode" in result.output

    def test_second_run_is_up_to_date(
        self, runner: CliRunner, target_dir: Path, source_dir: Path
    ) -> None:
        """Re-projecting unchanged files reports that nothing changed."""
        runner.invoke(cli, ["write", str(target_dir), str(source_dir)])

        result = runner.invoke(cli, ["write", str(target_dir), str(source_dir)])

        assert result.exit_code == 0, result.output
        assert "already up to date" in result.output

    def test_removed_files_are_listed(
        self, runner: CliRunner, target_dir: Path, source_dir: Path
    ) -> None:
        """Files dropped from SOURCE are reported and disappear from TARGET."""
        runner.invoke(cli, ["write", str(target_dir), str(source_dir)])
        (source_dir / "hostname").unlink()

        result = runner.invoke(cli, ["write", str(target_dir), str(source_dir)])

        assert result.exit_code == 0, result.output
        assert "removed hostname" in result.output
        assert not os.path.lexists(target_dir / "hostname")

    def test_missing_target_fails(
        self, runner: CliRunner, tmp_path: Path, source_dir: Path
    ) -> None:
        """A missing target directory exits with status 1."""
        result = runner.invoke(cli, ["write", str(tmp_path / "missing"), str(source_dir)])

        assert result.exit_code == 1
        assert "was not found" in result.output


class TestStatusCommand:
    """Tests for 'projector-cli status'."""

    def test_reports_nothing_projected(self, runner: CliRunner, target_dir: Path) -> None:
        """A fresh target reports that nothing is projected."""
        result = runner.invoke(cli, ["status", str(target_dir)])

        assert result.exit_code == 0, result.output
        assert "Nothing projected" in result.output

    def test_lists_projected_files(
        self, runner: CliRunner, target_dir: Path, source_dir: Path
    ) -> None:
        """The active snapshot and every file with its mode are listed."""
        runner.invoke(cli, ["write", str(target_dir), str(source_dir)])

        result = runner.invoke(cli, ["status", str(target_dir)])

        assert result.exit_code == 0, result.output
        assert f"Active snapshot: {os.readlink(target_dir / DATA_DIR_NAME)}" in result.output
        assert "Files: 2" in result.output
        assert "0600" in result.output
        assert "conf/app.yaml" in result.output


class TestCheckCommand:
    """Tests for 'projector-cli check'."""

    def test_prints_normalized_paths(self, runner: CliRunner) -> None:
        """Valid paths are echoed in normalized form."""
        result = runner.invoke(cli, ["check", "a//b", "./c"])

        assert result.exit_code == 0, result.output
        assert "a//b -> a/b" in result.output
        assert "./c -> c" in result.output

    def test_invalid_path_fails(self, runner: CliRunner) -> None:
        """Any invalid path makes the command fail."""
        result = runner.invoke(cli, ["check", "ok", "..secret"])

        assert result.exit_code == 1
        assert "must not start with '..'" in result.output
