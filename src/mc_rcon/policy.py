"""Caller-side checks applied before a request reaches the command service."""

from __future__ import annotations

import re

MINECRAFT_USERNAME_PAT = re.compile(r"^[A-Za-z0-9_]{1,16}$")

BLOCKED_COMMANDS = (
    "stop",
    "restart",
    "shutdown",
    "kill",
    "ban",
    "ban-ip",
    "pardon",
    "pardon-ip",
    "op",
    "deop",
    "kick",
    "whitelist off",
    "whitelist remove",
    "whitelist add",
)


def is_valid_username(username: str | None, max_length: int = 16) -> bool:
    if not username or len(username) > max_length:
        return False
    return bool(MINECRAFT_USERNAME_PAT.match(username))


def is_blocked_command(command: str) -> bool:
    """Return ``True`` for console commands that have dedicated handlers or are destructive."""
    normalized = " ".join(command.strip().lstrip("/").lower().split())
    return any(normalized == blocked or normalized.startswith(blocked + " ") for blocked in BLOCKED_COMMANDS)
