from __future__ import annotations

import importlib

import pytest


def test_console_entrypoint_exposes_app() -> None:
    pytest.importorskip("typer")

    module = importlib.import_module("mc_rcon.main")

    assert hasattr(module, "app")
    assert module.app is not None


def test_check_config_exits_nonzero_without_password(monkeypatch) -> None:
    pytest.importorskip("typer")
    from typer.testing import CliRunner

    module = importlib.import_module("mc_rcon.main")
    monkeypatch.setattr(module.settings, "rcon_password", "")

    result = CliRunner().invoke(module.app, ["check-config"])

    assert result.exit_code == 1
    assert "RCON password is required" in result.output


def test_timed_out_operation_exits_with_error(monkeypatch) -> None:
    pytest.importorskip("typer")
    import time

    from typer.testing import CliRunner

    module = importlib.import_module("mc_rcon.main")

    class SlowService:
        def snapshot(self):
            time.sleep(0.5)

    monkeypatch.setattr(module, "configure_logging", lambda level: None)
    monkeypatch.setattr(module, "_build_service", SlowService)
    monkeypatch.setattr(module.settings, "rcon_timeout_seconds", 0.02)

    result = CliRunner().invoke(module.app, ["status"])

    assert result.exit_code == 1
    assert "TimeoutError" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)
