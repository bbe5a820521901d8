"""Unit tests for the config commands."""

from pathlib import Path

from mirrorfs.cli.main import app
from mirrorfs.core.config import load_settings
from mirrorfs.core.paths import get_settings_path
from typer.testing import CliRunner

runner = CliRunner()


class TestConfigShow:
    """Tests for `mirrorfs config show`."""

    def test_defaults(self) -> None:
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "root_name" in result.output
        assert "No settings file yet" in result.output

    def test_existing_file(self) -> None:
        runner.invoke(app, ["config", "init", "--root-name", "home"])

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "home" in result.output
        assert "No settings file yet" not in result.output

    def test_broken_file(self) -> None:
        path = get_settings_path()
        path.parent.mkdir(parents=True)
        path.write_text("root_name = ")

        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 1
        assert "Failed to load settings" in result.output


class TestConfigInit:
    """Tests for `mirrorfs config init`."""

    def test_writes_settings(self, tmp_path: Path) -> None:
        storage = tmp_path / "mirror"

        result = runner.invoke(
            app, ["config", "init", "--storage-root", str(storage), "--no-history"]
        )

        assert result.exit_code == 0
        assert "Settings written" in result.output
        settings = load_settings()
        assert settings.storage_root == storage
        assert settings.history_enabled is False

    def test_refuses_to_overwrite(self) -> None:
        runner.invoke(app, ["config", "init"])

        result = runner.invoke(app, ["config", "init", "--root-name", "other"])

        assert result.exit_code == 1
        assert "already exists" in result.output
        assert load_settings().root_name == "root"

    def test_force_overwrites(self) -> None:
        runner.invoke(app, ["config", "init"])

        result = runner.invoke(app, ["config", "init", "--root-name", "other", "--force"])

        assert result.exit_code == 0
        assert load_settings().root_name == "other"

    def test_invalid_root_name(self) -> None:
        result = runner.invoke(app, ["config", "init", "--root-name", "a/b"])

        assert result.exit_code == 1
        assert "Invalid settings" in result.output
        assert not get_settings_path().exists()

    def test_workspace_uses_configured_storage(self, tmp_path: Path) -> None:
        storage = tmp_path / "mirror"
        runner.invoke(
            app, ["config", "init", "--storage-root", str(storage), "--root-name", "home"]
        )

        result = runner.invoke(app, ["fs", "mkdir", "docs"])

        assert result.exit_code == 0
        assert (storage / "home" / "docs").is_dir()


class TestMainApp:
    """Tests for global options."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "mirrorfs version 0.1.0" in result.output

    def test_verbose_enables_debug_logging(self) -> None:
        result = runner.invoke(app, ["-v", "fs", "mkdir", "docs"])
        assert result.exit_code == 0
        assert "DEBUG" in result.output
