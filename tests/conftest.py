from __future__ import annotations

import logging
import socket
import struct
import threading
import time
from collections.abc import Callable, Iterator

import pytest

from mc_rcon.protocol.packet import PacketType, decode_packet, encode_packet
from mc_rcon.telemetry.logging import configure_logging

UNKNOWN = "Unknown command"


def _recv_exact(conn: socket.socket, num_bytes: int) -> bytes | None:
    data = bytearray()
    while len(data) < num_bytes:
        chunk = conn.recv(num_bytes - len(data))
        if not chunk:
            return None
        data.extend(chunk)
    return bytes(data)


class FakeRconServer:
    """Threaded stand-in for a game server speaking Source RCON."""

    def __init__(self) -> None:
        self.password: str | None = None
        self.responses: dict[str, str] = {}
        self.auth_id: Callable[[int], int] | None = None
        self.auth_type = 2
        self.send_stray_packet = False
        self.exec_id: Callable[[int], int] | None = None
        self.exec_delay = 0.0
        self.silent_auth = False
        self.commands: list[str] = []
        self.connections = 0

        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen()
        self._listener.settimeout(0.1)
        self._stopping = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def port(self) -> int:
        return self._listener.getsockname()[1]

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stopping.set()
        self._thread.join(timeout=2)
        self._listener.close()

    def _serve(self) -> None:
        while not self._stopping.is_set():
            try:
                conn, _ = self._listener.accept()
            except OSError:
                continue
            self.connections += 1
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn: socket.socket) -> None:
        conn.settimeout(5)
        with conn:
            try:
                while True:
                    prefix = _recv_exact(conn, 4)
                    if prefix is None:
                        return
                    (size,) = struct.unpack("<i", prefix)
                    rest = _recv_exact(conn, size)
                    if rest is None:
                        return
                    packet = decode_packet(prefix + rest)
                    if packet.packet_type == PacketType.AUTH:
                        self._on_auth(conn, packet.request_id, packet.body)
                    else:
                        self._on_exec(conn, packet.request_id, packet.body)
            except OSError:
                return

    def _on_auth(self, conn: socket.socket, request_id: int, password: str) -> None:
        if self.silent_auth:
            return
        if self.password is not None and password != self.password:
            conn.sendall(encode_packet(-1, self.auth_type, ""))
            return
        response_id = self.auth_id(request_id) if self.auth_id else request_id
        conn.sendall(encode_packet(response_id, self.auth_type, ""))
        if self.send_stray_packet:
            conn.sendall(encode_packet(response_id, 0, ""))

    def _on_exec(self, conn: socket.socket, request_id: int, command: str) -> None:
        self.commands.append(command)
        if self.exec_delay:
            time.sleep(self.exec_delay)
        response_id = self.exec_id(request_id) if self.exec_id else request_id
        conn.sendall(encode_packet(response_id, 0, self.responses.get(command, UNKNOWN)))


@pytest.fixture
def rcon_server() -> Iterator[FakeRconServer]:
    server = FakeRconServer()
    server.start()
    try:
        yield server
    finally:
        server.stop()


@pytest.fixture
def closed_port() -> int:
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    return port


@pytest.fixture
def rich_logging() -> Iterator[logging.Logger]:
    logger = logging.getLogger("mc_rcon")
    level, handlers = logger.level, list(logger.handlers)
    try:
        yield configure_logging("INFO")
    finally:
        for handler in logger.handlers[:]:
            if handler not in handlers:
                logger.removeHandler(handler)
        logger.setLevel(level)
