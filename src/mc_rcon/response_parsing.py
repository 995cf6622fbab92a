"""Turn free-form server console text into typed results.

Server wording is not a versioned contract, so every parser here degrades to a
default value and logs ``response_parse_fallback`` instead of raising.
"""

from __future__ import annotations

import logging
import re

from .models import (
    HEALTHY_TPS,
    UNKNOWN_VERSION,
    PlayerList,
    WhitelistFailure,
    WhitelistInfo,
    WhitelistResult,
    WhitelistSuccess,
)

logger = logging.getLogger("mc_rcon.response_parsing")

COLOR_CODE_PAT = re.compile(r"§[0-9a-fk-orx]", re.IGNORECASE)
UNKNOWN_COMMAND_PAT = re.compile(r"Unknown (?:or incomplete )?command", re.IGNORECASE)

WHITELIST_LIST_PAT = re.compile(r"There are (\d+) whitelisted players?(?:\(s\))?: (.*)", re.DOTALL)
WHITELIST_EMPTY_PAT = re.compile(r"There are no whitelisted players")

WHITELIST_ADDED_PAT = re.compile(r"Added .+ to the whitelist")
WHITELIST_REMOVED_PAT = re.compile(r"Removed .+ from the whitelist")
ALREADY_WHITELISTED_PAT = re.compile(r"already whitelisted", re.IGNORECASE)
NOT_WHITELISTED_PAT = re.compile(r"not whitelisted", re.IGNORECASE)
PLAYER_MISSING_PAT = re.compile(r"does not exist", re.IGNORECASE)

PLAYER_LIST_PATTERNS = [
    re.compile(r"There are (\d+) of a max of (\d+) players online:?(.*)", re.DOTALL),
    re.compile(r"There are (\d+) out of maximum (\d+) players online\.?:?(.*)", re.DOTALL),
]
TPS_PATTERNS = [
    re.compile(r"TPS: \*?([0-9.]+)"),
    re.compile(r"TPS from last [^:]*:\s*\*?([0-9.]+)"),
]
VERSION_PATTERNS = [
    re.compile(r"This server is running (.+?) version (.+?) \("),
    re.compile(r"([^\n]+?) version (\S+)"),
    re.compile(r"(\S+)\s+version\s*:?\s*(\S+)", re.IGNORECASE),
]


def strip_color_codes(text: str) -> str:
    return COLOR_CODE_PAT.sub("", text)


def is_unknown_command(text: str | None) -> bool:
    return text is None or bool(UNKNOWN_COMMAND_PAT.search(text))


def split_names(segment: str) -> tuple[str, ...]:
    """Split a ``"a, b, c"`` segment; an empty segment yields no names."""
    return tuple(name.strip() for name in segment.split(", ") if name.strip())


def _fallback(kind: str, response: str | None) -> None:
    logger.warning("response_parse_fallback", extra={"kind": kind, "response": response})


def parse_whitelist(response: str) -> WhitelistInfo:
    match = WHITELIST_LIST_PAT.search(response)
    if match:
        count = int(match.group(1))
        players = split_names(match.group(2)) if count > 0 else ()
        return WhitelistInfo(count=count, players=players)

    if WHITELIST_EMPTY_PAT.search(response):
        return WhitelistInfo(count=0)

    _fallback("whitelist_list", response)
    return WhitelistInfo(count=0)


def classify_whitelist_add(response: str, username: str) -> WhitelistResult:
    if WHITELIST_ADDED_PAT.search(response):
        return WhitelistSuccess(f"Player {username} successfully added to whitelist")
    if ALREADY_WHITELISTED_PAT.search(response):
        return WhitelistFailure(f"Player {username} is already whitelisted")
    if PLAYER_MISSING_PAT.search(response):
        return WhitelistFailure(f"Player {username} does not exist (invalid username)")

    _fallback("whitelist_add", response)
    return WhitelistFailure(f"Unexpected response: {response}")


def classify_whitelist_remove(response: str, username: str) -> WhitelistResult:
    if WHITELIST_REMOVED_PAT.search(response):
        return WhitelistSuccess(f"Player {username} successfully removed from whitelist")
    if NOT_WHITELISTED_PAT.search(response):
        return WhitelistFailure(f"Player {username} is not whitelisted")
    if PLAYER_MISSING_PAT.search(response):
        return WhitelistFailure(f"Player {username} does not exist (invalid username)")

    _fallback("whitelist_remove", response)
    return WhitelistFailure(f"Unexpected response: {response}")


def parse_player_list(response: str) -> PlayerList:
    text = strip_color_codes(response)
    for pattern in PLAYER_LIST_PATTERNS:
        match = pattern.search(text)
        if match:
            return PlayerList(
                online_players=int(match.group(1)),
                max_players=int(match.group(2)),
                players=split_names(match.group(3).strip()),
            )

    _fallback("player_list", response)
    return PlayerList(online_players=0, max_players=0)


def parse_tps(response: str | None) -> float:
    if not response or is_unknown_command(response):
        return HEALTHY_TPS

    text = strip_color_codes(response)
    for pattern in TPS_PATTERNS:
        match = pattern.search(text)
        if match:
            try:
                return float(match.group(1))
            except ValueError:
                break

    _fallback("tps", response)
    return HEALTHY_TPS


def parse_version(response: str | None) -> str:
    if not response or is_unknown_command(response):
        return UNKNOWN_VERSION

    text = strip_color_codes(response)
    for pattern in VERSION_PATTERNS:
        match = pattern.search(text)
        if match:
            return f"{match.group(1).strip()} {match.group(2).strip()}"

    _fallback("version", response)
    return UNKNOWN_VERSION
