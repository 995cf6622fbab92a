"""CLI entrypoint for the RCON bridge."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer
from rich import print

from mc_rcon.cli import CliCommandHandler, CooldownActive, RequestRefused
from mc_rcon.command_runtime import CommandRuntime
from mc_rcon.config import settings, validate_settings
from mc_rcon.errors import RconError
from mc_rcon.models import DeliveryOutcome, ServerSnapshot
from mc_rcon.scheduling import CooldownGate, RefreshScheduler
from mc_rcon.service import RconCommandService
from mc_rcon.telemetry.logging import configure_logging

app = typer.Typer(help="Minecraft RCON bridge")

T = TypeVar("T")


def _build_service() -> RconCommandService:
    return RconCommandService.from_settings(settings)


def _build_handler(service: RconCommandService, runtime: CommandRuntime) -> CliCommandHandler:
    return CliCommandHandler(
        service,
        runtime,
        CooldownGate(),
        cooldown_window=settings.whitelist_cooldown,
        max_username_length=settings.max_username_length,
    )


def _format_snapshot(snapshot: ServerSnapshot) -> dict[str, Any]:
    return {
        "online": f"{snapshot.online_players}/{snapshot.max_players}",
        "players": list(snapshot.players) or "None",
        "tps": round(snapshot.ticks_per_second, 2),
        "load": snapshot.load_description,
        "version": snapshot.version,
    }


def _run(action: Callable[[CliCommandHandler], Awaitable[T]]) -> T:
    configure_logging(settings.log_level)

    async def _main() -> T:
        runtime = CommandRuntime(
            workers=settings.runtime_workers,
            operation_timeout_seconds=settings.rcon_timeout_seconds * 4,
        )
        await runtime.start()
        try:
            return await action(_build_handler(_build_service(), runtime))
        finally:
            await runtime.stop()

    try:
        return asyncio.run(_main())
    except RequestRefused as exc:
        print({"refused": str(exc)})
        raise typer.Exit(code=1)
    except (RconError, TimeoutError) as exc:
        print({"error": f"{type(exc).__name__}: {exc}"})
        raise typer.Exit(code=1)


@app.command("check-config")
def check_config() -> None:
    """Validate the environment-driven configuration."""
    result = validate_settings(settings)
    print(
        {
            "rcon": f"{settings.rcon_host}:{settings.rcon_port}",
            "valid": result.valid,
            "errors": result.errors,
            "warnings": result.warnings,
        }
    )
    if not result.valid:
        raise typer.Exit(code=1)


@app.command("test-connection")
def test_connection() -> None:
    ok = _run(lambda handler: handler.test_connection())
    print({"connected": ok})
    if not ok:
        raise typer.Exit(code=1)


@app.command("whitelist-list")
def whitelist_list() -> None:
    info = _run(lambda handler: handler.whitelist())
    print({"count": info.count, "players": list(info.players) or "None"})


@app.command("whitelist-check")
def whitelist_check(username: str) -> None:
    print({"username": username, "whitelisted": _run(lambda handler: handler.is_whitelisted(username))})


@app.command("whitelist-add")
def whitelist_add(
    username: str,
    requester: str = typer.Option(None, help="Requester identity; enables the per-requester cooldown"),
) -> None:
    if requester:
        result = _run(lambda handler: handler.request_whitelist(requester, username))
    else:
        result = _run(lambda handler: handler.add(username))

    if isinstance(result, CooldownActive):
        minutes = int(result.remaining.total_seconds() // 60) + 1
        print({"cooldown": f"try again in about {minutes} minute(s)"})
        raise typer.Exit(code=1)

    print({"ok": result.ok, "detail": getattr(result, "message", None) or getattr(result, "reason", None)})
    if not result.ok:
        raise typer.Exit(code=1)


@app.command("whitelist-remove")
def whitelist_remove(username: str) -> None:
    result = _run(lambda handler: handler.remove(username))
    print({"ok": result.ok, "detail": getattr(result, "message", None) or getattr(result, "reason", None)})
    if not result.ok:
        raise typer.Exit(code=1)


@app.command("console")
def console(command: str) -> None:
    """Run a console command (destructive commands are refused)."""
    response = _run(lambda handler: handler.console(command))
    print({"command": command, "response": response or "(no output)"})


@app.command("status")
def status() -> None:
    snapshot = _run(lambda handler: handler.status())
    print(_format_snapshot(snapshot))


class _ConsoleSink:
    def __init__(self, ticks: int) -> None:
        self.remaining = ticks

    async def deliver(self, snapshot: ServerSnapshot) -> DeliveryOutcome:
        print(_format_snapshot(snapshot))
        self.remaining -= 1
        return DeliveryOutcome.TARGET_GONE if self.remaining <= 0 else DeliveryOutcome.DELIVERED


@app.command("watch")
def watch(
    ticks: int = typer.Option(3, help="Number of refreshes before exiting"),
    interval: float = typer.Option(None, help="Seconds between refreshes (defaults to the configured interval)"),
) -> None:
    """Print a status snapshot on a fixed interval."""
    configure_logging(settings.log_level)
    service = _build_service()
    scheduler = RefreshScheduler(
        service.snapshot,
        interval_seconds=interval or settings.refresh_interval_seconds,
        timeout_seconds=settings.rcon_timeout_seconds * 4,
    )

    async def _main() -> None:
        scheduler.register_subscription("console", _ConsoleSink(ticks))
        await scheduler.start()
        try:
            while "console" in scheduler.registry:
                await asyncio.sleep(0.2)
        finally:
            await scheduler.stop()

    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        raise typer.Exit(code=0)


if __name__ == "__main__":
    app()
