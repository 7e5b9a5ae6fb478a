"""Tests for logging settings parsing."""

from pathlib import Path

from tasktracker.logging_settings import parse_logging_settings


def test_parse_logging_settings_with_retention(tmp_path: Path) -> None:
    """Test parsing logging settings with retention_hours."""
    config_file = tmp_path / "logging.conf"
    config_file.write_text(
        """
# Test config
terminal = debug
file = warning
retention_hours = 72
"""
    )

    settings = parse_logging_settings(config_file)

    assert settings.terminal_level == 10  # DEBUG
    assert settings.file_level == 30  # WARNING
    assert settings.retention_hours == 72


def test_parse_logging_settings_defaults(tmp_path: Path) -> None:
    """Test default values when config file doesn't exist."""
    settings = parse_logging_settings(tmp_path / "nonexistent.conf")

    assert settings.terminal_level == 20  # Default INFO
    assert settings.file_level == 20  # Default INFO
    assert settings.retention_hours == 48  # Default retention


def test_parse_logging_settings_invalid_and_negative_retention(tmp_path: Path) -> None:
    """Invalid retention falls back to the default; negative clamps to 0."""
    config_file = tmp_path / "logging.conf"

    config_file.write_text("retention_hours = invalid\n")
    assert parse_logging_settings(config_file).retention_hours == 48

    config_file.write_text("retention_hours = -10\n")
    assert parse_logging_settings(config_file).retention_hours == 0


def test_parse_logging_settings_off_level(tmp_path: Path) -> None:
    """Test parsing with 'off' level."""
    config_file = tmp_path / "logging.conf"
    config_file.write_text(
        """
terminal = off
file = off
unknown = debug
"""
    )

    settings = parse_logging_settings(config_file)

    assert settings.terminal_level is None
    assert settings.file_level is None


def test_parse_logging_settings_inline_comments_and_aliases(tmp_path: Path) -> None:
    """Trailing comments are stripped; error and none are understood."""
    config_file = tmp_path / "logging.conf"
    config_file.write_text(
        """
terminal = error   # only problems on the console
FILE = none
retention_hours = 12 # half a day
"""
    )

    settings = parse_logging_settings(config_file)

    assert settings.terminal_level == 40  # ERROR
    assert settings.file_level is None
    assert settings.retention_hours == 12


def test_parse_logging_settings_unknown_level_keeps_default(tmp_path: Path) -> None:
    config_file = tmp_path / "logging.conf"
    config_file.write_text("terminal = loud\nfile = debug\n")

    settings = parse_logging_settings(config_file)

    assert settings.terminal_level == 20
    assert settings.file_level == 10
