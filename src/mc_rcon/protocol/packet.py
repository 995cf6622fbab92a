"""Source RCON packet encoding and decoding.

Frame layout (little-endian)::

    <i size> <i request_id> <i type> <utf-8 body> 0x00 0x00

``size`` counts every byte after the size field itself.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

from mc_rcon.errors import MalformedPacket

SIZE_FIELD = struct.Struct("<i")
HEADER = struct.Struct("<ii")
TRAILER = b"\x00\x00"

MIN_PACKET_SIZE = HEADER.size + len(TRAILER)
MAX_PACKET_SIZE = 4096
MAX_BODY_BYTES = MAX_PACKET_SIZE - MIN_PACKET_SIZE


class PacketType(IntEnum):
    """Request type codes."""

    EXEC_COMMAND = 2
    AUTH = 3


# Responses reuse the EXEC_COMMAND value; context tells them apart.
AUTH_RESPONSE = 2
EXEC_RESPONSE = 2


@dataclass(frozen=True, slots=True)
class Packet:
    request_id: int
    packet_type: int
    body: str


def encode_packet(request_id: int, packet_type: int, body: str) -> bytes:
    """Serialize one packet, size prefix included."""
    if "\x00" in body:
        raise ValueError("RCON packet body must not contain NUL characters")

    body_bytes = body.encode("utf-8")
    if len(body_bytes) > MAX_BODY_BYTES:
        raise ValueError(f"RCON packet body is {len(body_bytes)} bytes; the limit is {MAX_BODY_BYTES}")

    size = HEADER.size + len(body_bytes) + len(TRAILER)
    return SIZE_FIELD.pack(size) + HEADER.pack(request_id, int(packet_type)) + body_bytes + TRAILER


def read_declared_size(prefix: bytes) -> int:
    """Return the size announced by a frame's first four bytes."""
    if len(prefix) < SIZE_FIELD.size:
        raise MalformedPacket(f"Need {SIZE_FIELD.size} bytes to read packet size, got {len(prefix)}")

    (size,) = SIZE_FIELD.unpack_from(prefix)
    if not MIN_PACKET_SIZE <= size <= MAX_PACKET_SIZE:
        raise MalformedPacket(f"Invalid packet size: {size}")
    return size


def decode_packet(frame: bytes) -> Packet:
    """Parse a complete frame, size prefix included."""
    size = read_declared_size(frame)
    payload = frame[SIZE_FIELD.size :]
    if len(payload) != size:
        raise MalformedPacket(f"Packet declares {size} bytes but carries {len(payload)}")
    if payload[-len(TRAILER) :] != TRAILER:
        raise MalformedPacket("Packet trailer is not NUL terminated")

    request_id, packet_type = HEADER.unpack_from(payload)
    body = payload[HEADER.size : size - len(TRAILER)].decode("utf-8", errors="replace")
    return Packet(request_id=request_id, packet_type=packet_type, body=body)
