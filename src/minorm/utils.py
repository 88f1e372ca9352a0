"""Shared helpers."""
from typing import Any


def normalize_name(name: Any) -> str:
    """Normalize a table, column or bind-token name.

    Every generated identifier goes through here so that mixed-case names
    supplied by callers resolve to the same token.
    """
    return str(name).strip().upper()
