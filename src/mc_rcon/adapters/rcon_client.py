"""Blocking RCON client owning a single stream-socket connection.

A client is built for one logical operation: connect, authenticate, execute
one command at a time, close. It is never shared between threads.
"""

from __future__ import annotations

import contextlib
import logging
import random
import socket
from collections.abc import Callable, Iterator
from enum import Enum

from mc_rcon.errors import (
    AuthenticationFailed,
    ConnectError,
    ConnectTimeout,
    ProtocolViolation,
    RconError,
    RconTimeout,
)
from mc_rcon.protocol.packet import (
    AUTH_RESPONSE,
    SIZE_FIELD,
    Packet,
    PacketType,
    decode_packet,
    encode_packet,
    read_declared_size,
)

AUTH_FAILED_ID = -1


class ClientState(str, Enum):
    """Connection lifecycle states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    EXECUTING = "executing"
    CLOSED = "closed"
    FAILED = "failed"


def random_request_id() -> int:
    return random.randint(0, 2**31 - 1)


class RconClient:
    """Source RCON client with explicit timeouts on every socket operation."""

    def __init__(
        self,
        host: str,
        port: int,
        *,
        timeout: float = 10.0,
        drain_timeout: float = 1.0,
        id_factory: Callable[[], int] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.drain_timeout = drain_timeout
        self._id_factory = id_factory or random_request_id
        self._logger = logger or logging.getLogger("mc_rcon.rcon_client")
        self._sock: socket.socket | None = None
        self._state = ClientState.DISCONNECTED

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def authenticated(self) -> bool:
        return self._state in (ClientState.READY, ClientState.EXECUTING)

    def __enter__(self) -> "RconClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def connect(self) -> None:
        if self._state is not ClientState.DISCONNECTED:
            raise ProtocolViolation(f"Cannot connect a client in state {self._state.value}")

        self._state = ClientState.CONNECTING
        try:
            self._sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except TimeoutError as exc:
            self._fail()
            raise ConnectTimeout(
                f"Timed out connecting to RCON at {self.host}:{self.port} after {self.timeout}s"
            ) from exc
        except OSError as exc:
            self._fail()
            raise ConnectError(f"Failed to connect to RCON at {self.host}:{self.port}: {exc}") from exc

        self._sock.settimeout(self.timeout)
        self._logger.debug("rcon_connected", extra={"host": self.host, "port": self.port})

    def authenticate(self, password: str) -> None:
        if self._state is not ClientState.CONNECTING:
            raise ProtocolViolation(f"Cannot authenticate a client in state {self._state.value}")

        self._state = ClientState.AUTHENTICATING
        request_id = self._id_factory()
        with self._failing_closed():
            self._send(request_id, PacketType.AUTH, password)
            response = self._recv()

            if response.request_id == AUTH_FAILED_ID:
                raise AuthenticationFailed("RCON authentication failed: server returned -1 (invalid password)")
            if response.packet_type != AUTH_RESPONSE:
                raise ProtocolViolation(
                    f"Unexpected auth response type {response.packet_type} (expected {AUTH_RESPONSE})"
                )
            if response.request_id != request_id:
                self._logger.debug(
                    "rcon_auth_id_mismatch",
                    extra={"expected_id": request_id, "received_id": response.request_id},
                )

            self._drain_stray_packet()

        self._state = ClientState.READY
        self._logger.debug("rcon_authenticated", extra={"host": self.host, "port": self.port})

    def execute(self, command: str) -> str:
        if self._state is not ClientState.READY:
            raise ProtocolViolation(f"RCON client is not ready (state {self._state.value})")

        self._state = ClientState.EXECUTING
        request_id = self._id_factory()
        with self._failing_closed():
            self._send(request_id, PacketType.EXEC_COMMAND, command)
            response = self._recv()
            if response.request_id != request_id:
                raise ProtocolViolation(
                    f"Invalid response id {response.request_id} for request {request_id}"
                )

        self._state = ClientState.READY
        return response.body

    def close(self) -> None:
        if self._sock is not None:
            with contextlib.suppress(OSError):
                self._sock.close()
            self._sock = None
        if self._state is not ClientState.FAILED:
            self._state = ClientState.CLOSED

    @contextlib.contextmanager
    def _failing_closed(self) -> Iterator[None]:
        try:
            yield
        except RconError:
            self._fail()
            raise

    def _fail(self) -> None:
        self.close()
        self._state = ClientState.FAILED

    def _drain_stray_packet(self) -> None:
        # Some servers follow the auth response with an empty packet.
        if self._sock is None:
            raise ConnectError("Not connected to RCON server")
        self._sock.settimeout(self.drain_timeout)
        try:
            stray = self._recv()
            self._logger.debug("rcon_auth_stray_packet", extra={"received_id": stray.request_id})
        except RconTimeout:
            pass
        finally:
            if self._sock is not None:
                self._sock.settimeout(self.timeout)

    def _send(self, request_id: int, packet_type: int, body: str) -> None:
        if self._sock is None:
            raise ConnectError("Not connected to RCON server")
        try:
            frame = encode_packet(request_id, packet_type, body)
        except ValueError as exc:
            raise ProtocolViolation(str(exc)) from exc
        try:
            self._sock.sendall(frame)
        except TimeoutError as exc:
            raise RconTimeout(f"Timed out sending to RCON after {self.timeout}s") from exc
        except OSError as exc:
            raise ConnectError(f"Failed to send RCON packet: {exc}") from exc

    def _recv(self) -> Packet:
        prefix = self._recv_exact(SIZE_FIELD.size)
        size = read_declared_size(prefix)
        return decode_packet(prefix + self._recv_exact(size))

    def _recv_exact(self, num_bytes: int) -> bytes:
        if self._sock is None:
            raise ConnectError("Not connected to RCON server")

        data = bytearray()
        while len(data) < num_bytes:
            try:
                chunk = self._sock.recv(num_bytes - len(data))
            except TimeoutError as exc:
                raise RconTimeout(f"Timed out waiting for RCON response after {self._sock.gettimeout()}s") from exc
            except OSError as exc:
                raise ConnectError(f"RCON connection lost: {exc}") from exc

            if not chunk:
                raise ConnectError("RCON connection closed by server")
            data.extend(chunk)
        return bytes(data)


@contextlib.contextmanager
def open_rcon(
    host: str,
    port: int,
    password: str,
    *,
    timeout: float = 10.0,
    drain_timeout: float = 1.0,
) -> Iterator[RconClient]:
    """Yield a connected, authenticated client and always close it afterwards."""
    client = RconClient(host, port, timeout=timeout, drain_timeout=drain_timeout)
    try:
        client.connect()
        client.authenticate(password)
        yield client
    finally:
        client.close()
