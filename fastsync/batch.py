"""Splitting tagged accounts into batches for concurrent processing."""

from __future__ import annotations

from typing import Iterable


def split_into_batches(accounts: Iterable[str], batch_size: int) -> list[dict[str, bool]]:
    """Split account addresses into batches holding at most ``batch_size`` each.

    ``accounts`` is any iterable of addresses; a mapping contributes its keys.
    Each batch maps an address to ``True``.
    """
    batches: list[dict[str, bool]] = []
    current: dict[str, bool] = {}
    for account in accounts:
        current[account] = True
        if len(current) >= batch_size:
            batches.append(current)
            current = {}
    if current:
        batches.append(current)
    return batches