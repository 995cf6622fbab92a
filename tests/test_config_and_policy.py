from __future__ import annotations

from datetime import timedelta

import pytest

from mc_rcon.config import Settings, validate_settings
from mc_rcon.policy import is_blocked_command, is_valid_username


def test_settings_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("MC_RCON_RCON_HOST", "mc.internal")
    monkeypatch.setenv("MC_RCON_RCON_PORT", "25580")
    monkeypatch.setenv("MC_RCON_WHITELIST_COOLDOWN_MINUTES", "30")

    settings = Settings(_env_file=None)

    assert settings.rcon_host == "mc.internal"
    assert settings.rcon_port == 25580
    assert settings.whitelist_cooldown == timedelta(minutes=30)
    assert settings.refresh_interval_seconds == 300


def test_validate_settings_flags_missing_password_and_bad_port() -> None:
    result = validate_settings(Settings(_env_file=None, rcon_password="", rcon_port=70000))

    assert not result.valid
    assert "RCON password is required" in result.errors
    assert any("port" in error for error in result.errors)


def test_validate_settings_warns_on_weak_values() -> None:
    result = validate_settings(Settings(_env_file=None, rcon_password="short", whitelist_cooldown_minutes=1))

    assert result.valid
    assert len(result.warnings) == 2
    assert result.error_summary() == "No errors"


@pytest.mark.parametrize(
    ("username", "valid"),
    [("Steve", True), ("a_b_9", True), ("", False), ("with space", False), ("x" * 17, False), (None, False)],
)
def test_username_validation(username, valid: bool) -> None:
    assert is_valid_username(username) is valid


def test_username_validation_honours_configured_length() -> None:
    assert is_valid_username("Notch", max_length=4) is False


@pytest.mark.parametrize(
    ("command", "blocked"),
    [
        ("stop", True),
        ("/OP Steve", True),
        ("whitelist   add Steve", True),
        ("ban-ip 1.2.3.4", True),
        ("say stop the server", False),
        ("opme", False),
        ("whitelist list", False),
        ("list", False),
    ],
)
def test_blocked_commands(command: str, blocked: bool) -> None:
    assert is_blocked_command(command) is blocked
