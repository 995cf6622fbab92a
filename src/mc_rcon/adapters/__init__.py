"""RCON transport adapters."""

from .game_command import RconConnection
from .rcon_client import ClientState, RconClient, open_rcon

__all__ = [
    "ClientState",
    "RconClient",
    "RconConnection",
    "open_rcon",
]
