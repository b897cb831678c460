"""
Moogle-themed event message builders.

RULES:
- No network calls
- No logging
- No environment access
- Never raise on bad input
- Always return a string
"""
from typing import Optional


def _safe(value: Optional[str], default: str = "Unknown") -> str:
    return str(value) if value not in (None, "") else default


def build_join_message(name: Optional[str]) -> str:
    return f"Kupo! {_safe(name)} has joined the free company. Welcome aboard!"


def build_rejoin_message(name: Optional[str]) -> str:
    return f"Kupo! {_safe(name)} has returned to the free company. Welcome back!"


def build_rename_message(old_name: Optional[str], new_name: Optional[str]) -> str:
    return f"Kupo? {_safe(old_name)} is now known as {_safe(new_name)}."


def build_promotion_message(name: Optional[str], old_rank: Optional[str], new_rank: Optional[str]) -> str:
    return f"Kupopo! {_safe(name)} has been promoted from {_safe(old_rank)} to {_safe(new_rank)}!"


__all__ = [
    "build_join_message",
    "build_rejoin_message",
    "build_rename_message",
    "build_promotion_message",
]
