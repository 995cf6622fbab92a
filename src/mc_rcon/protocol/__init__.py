"""RCON wire format."""

from .packet import (
    AUTH_RESPONSE,
    EXEC_RESPONSE,
    MAX_PACKET_SIZE,
    MIN_PACKET_SIZE,
    Packet,
    PacketType,
    decode_packet,
    encode_packet,
    read_declared_size,
)

__all__ = [
    "AUTH_RESPONSE",
    "EXEC_RESPONSE",
    "MAX_PACKET_SIZE",
    "MIN_PACKET_SIZE",
    "Packet",
    "PacketType",
    "decode_packet",
    "encode_packet",
    "read_declared_size",
]
