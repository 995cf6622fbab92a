"""Failure taxonomy for RCON connections and the protocol exchange."""

from __future__ import annotations


class RconError(RuntimeError):
    """Base class for every connection- or protocol-level RCON failure."""


class ConnectError(RconError):
    """Raised when the TCP connection cannot be established or is lost."""


class ConnectTimeout(ConnectError):
    """Raised when establishing the TCP connection exceeds the timeout."""


class AuthenticationFailed(RconError):
    """Raised when the server rejects the RCON password (response id ``-1``)."""


class ProtocolViolation(RconError):
    """Raised when the server's packets do not follow the expected exchange."""


class MalformedPacket(ProtocolViolation):
    """Raised when a frame cannot be decoded into a packet."""


class RconTimeout(RconError, TimeoutError):
    """Raised when a read exceeds the configured timeout."""
