"""Caller-facing facade applying policy and cooldowns before dispatching to the runtime."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from mc_rcon.command_runtime import CommandRuntime
from mc_rcon.models import (
    RejectedFor,
    ServerSnapshot,
    WhitelistFailure,
    WhitelistInfo,
    WhitelistResult,
)
from mc_rcon.policy import is_blocked_command, is_valid_username
from mc_rcon.scheduling.admission import CooldownGate
from mc_rcon.service import RconCommandService


class RequestRefused(Exception):
    """Raised when policy refuses a request before any RCON traffic happens."""


@dataclass(frozen=True, slots=True)
class CooldownActive:
    remaining: timedelta

    @property
    def ok(self) -> bool:
        return False


class CliCommandHandler:
    """Sync-looking entry points over the async runtime for interactive callers."""

    def __init__(
        self,
        service: RconCommandService,
        runtime: CommandRuntime,
        gate: CooldownGate | None = None,
        *,
        cooldown_window: timedelta = timedelta(hours=1),
        max_username_length: int = 16,
    ) -> None:
        self._service = service
        self._runtime = runtime
        self._gate = gate if gate is not None else CooldownGate()
        self._cooldown_window = cooldown_window
        self._max_username_length = max_username_length

    async def request_whitelist(self, requester: str, username: str) -> WhitelistResult | CooldownActive:
        """Self-service whitelist request, limited to one success per cooldown window."""
        self._require_username(username)

        admission = self._gate.try_admit(requester, self._cooldown_window)
        if isinstance(admission, RejectedFor):
            return CooldownActive(remaining=admission.remaining)

        try:
            if await self._runtime.run("whitelist_check", self._service.is_whitelisted, username):
                result: WhitelistResult = WhitelistFailure(f"Player {username} is already whitelisted")
            else:
                result = await self._runtime.run("whitelist_add", self._service.add_to_whitelist, username)
        except BaseException:
            self._gate.reset(requester)
            raise

        if not result.ok:
            self._gate.reset(requester)
        return result

    async def add(self, username: str) -> WhitelistResult:
        self._require_username(username)
        return await self._runtime.run("whitelist_add", self._service.add_to_whitelist, username)

    async def remove(self, username: str) -> WhitelistResult:
        self._require_username(username)
        return await self._runtime.run("whitelist_remove", self._service.remove_from_whitelist, username)

    async def is_whitelisted(self, username: str) -> bool:
        self._require_username(username)
        return await self._runtime.run("whitelist_check", self._service.is_whitelisted, username)

    async def whitelist(self) -> WhitelistInfo:
        return await self._runtime.run("whitelist_list", self._service.list_whitelist)

    async def console(self, command: str) -> str:
        if not command.strip():
            raise RequestRefused("Console command must not be empty")
        if is_blocked_command(command):
            raise RequestRefused("That command is not allowed for security reasons")
        return await self._runtime.run("console", self._service.run_raw_command, command.strip())

    async def status(self) -> ServerSnapshot:
        return await self._runtime.run("snapshot", self._service.snapshot)

    async def test_connection(self) -> bool:
        return await self._runtime.run("test_connectivity", self._service.test_connectivity)

    def _require_username(self, username: str) -> None:
        if not is_valid_username(username, self._max_username_length):
            raise RequestRefused(
                f"Invalid Minecraft username {username!r}: use 1-{self._max_username_length} "
                "letters, digits or underscores"
            )
