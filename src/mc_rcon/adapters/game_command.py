"""Boundary between the command service and the RCON transport."""

from typing import Protocol


class RconConnection(Protocol):
    """One authenticated request/response channel to a game server."""

    def connect(self) -> None:
        """Open the underlying stream socket."""

    def authenticate(self, password: str) -> None:
        """Complete the login handshake."""

    def execute(self, command: str) -> str:
        """Send one command and return the response body."""

    def close(self) -> None:
        """Release the socket; safe to call more than once."""
