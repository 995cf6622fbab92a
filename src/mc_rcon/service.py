"""Whitelist, console and status operations over short-lived RCON connections."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from mc_rcon.adapters.game_command import RconConnection
from mc_rcon.adapters.rcon_client import RconClient
from mc_rcon.errors import RconError
from mc_rcon.models import ServerSnapshot, WhitelistInfo, WhitelistResult
from mc_rcon.response_parsing import (
    classify_whitelist_add,
    classify_whitelist_remove,
    parse_player_list,
    parse_tps,
    parse_version,
    parse_whitelist,
)

if TYPE_CHECKING:
    from mc_rcon.config import Settings

LIST_COMMAND = "list"
TPS_COMMAND = "tps"
VERSION_COMMAND = "version"


class RconCommandService:
    """Runs each operation on its own connection and parses the reply.

    Connection and protocol errors (:class:`~mc_rcon.errors.RconError`) always
    propagate; unrecognised response text degrades to defaults.
    """

    def __init__(
        self,
        host: str,
        port: int,
        password: str,
        *,
        timeout: float = 10.0,
        drain_timeout: float = 1.0,
        client_factory: Callable[[], RconConnection] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self._password = password
        self.timeout = timeout
        self.drain_timeout = drain_timeout
        self._client_factory = client_factory or self._default_client
        self._logger = logger or logging.getLogger("mc_rcon.service")

    @classmethod
    def from_settings(cls, settings: "Settings", **kwargs) -> "RconCommandService":
        return cls(
            settings.rcon_host,
            settings.rcon_port,
            settings.rcon_password,
            timeout=settings.rcon_timeout_seconds,
            drain_timeout=settings.rcon_drain_timeout_seconds,
            **kwargs,
        )

    def test_connectivity(self) -> bool:
        try:
            with self._session() as client:
                client.execute(LIST_COMMAND)
        except RconError:
            self._logger.warning("rcon_connectivity_failed", extra={"host": self.host, "port": self.port})
            return False

        self._logger.info("rcon_connectivity_ok", extra={"host": self.host, "port": self.port})
        return True

    def list_whitelist(self) -> WhitelistInfo:
        return parse_whitelist(self._run("whitelist list"))

    def is_whitelisted(self, username: str) -> bool:
        wanted = username.casefold()
        return any(player.casefold() == wanted for player in self.list_whitelist().players)

    def add_to_whitelist(self, username: str) -> WhitelistResult:
        result = classify_whitelist_add(self._run(f"whitelist add {username}"), username)
        self._logger.info("whitelist_add", extra={"username": username, "ok": result.ok})
        return result

    def remove_from_whitelist(self, username: str) -> WhitelistResult:
        result = classify_whitelist_remove(self._run(f"whitelist remove {username}"), username)
        self._logger.info("whitelist_remove", extra={"username": username, "ok": result.ok})
        return result

    def run_raw_command(self, command: str) -> str:
        response = self._run(command)
        self._logger.debug("rcon_raw_command", extra={"command": command, "response": response})
        return response

    def snapshot(self) -> ServerSnapshot:
        # One connection, strictly sequential: the protocol allows a single
        # outstanding request.
        with self._session() as client:
            list_response = client.execute(LIST_COMMAND)
            tps_response = client.execute(TPS_COMMAND)
            version_response = client.execute(VERSION_COMMAND)

        players = parse_player_list(list_response)
        return ServerSnapshot(
            online_players=players.online_players,
            max_players=players.max_players,
            players=players.players,
            ticks_per_second=parse_tps(tps_response),
            version=parse_version(version_response),
            taken_at=datetime.now(timezone.utc),
        )

    def _run(self, command: str) -> str:
        with self._session() as client:
            return client.execute(command)

    @contextlib.contextmanager
    def _session(self) -> Iterator[RconConnection]:
        client = self._client_factory()
        try:
            client.connect()
            client.authenticate(self._password)
            yield client
        except RconError as exc:
            self._logger.warning(
                "rcon_operation_failed",
                extra={"host": self.host, "port": self.port, "error": f"{type(exc).__name__}: {exc}"},
            )
            raise
        finally:
            client.close()

    def _default_client(self) -> RconClient:
        return RconClient(self.host, self.port, timeout=self.timeout, drain_timeout=self.drain_timeout)
