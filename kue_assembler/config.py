"""
Target profiles and tool-wide settings.

The address unit is the smallest addressable quantity of the target: every
address, opcode and operand word is rendered with 2 hex digits per byte of it.
"""

import logging

from .errors import TargetError

TARGET_PROFILES = {
    "kuechip2": {
        "addr_unit_bytes": 1,
        "legacy_operands": True,     # (d) / (IX+d) forms
        "description": "KUE-CHIP2 - 8-bit words, byte addressed",
    },
    "kuechip3": {
        "addr_unit_bytes": 2,
        "legacy_operands": False,
        "description": "KUE-CHIP3 - 16-bit words, 2-byte address unit",
    },
}

DEFAULT_TARGET = "kuechip3"

# Level names accepted from the command line / callers
LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}

DEFAULT_LOG_LEVEL = "warn"

# Column at which the '#' of each listing line starts
LISTING_COLUMN = 17


def get_profile(mode: str) -> dict:
    """Return the profile for a target mode name (case-insensitive)."""
    profile = TARGET_PROFILES.get(mode.lower()) if mode else None
    if profile is None:
        raise TargetError(
            f"Unknown target mode '{mode}' (expected one of: {', '.join(TARGET_PROFILES)})")
    return profile


def resolve_log_level(name: str) -> int:
    try:
        return LOG_LEVELS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level '{name}'") from None
