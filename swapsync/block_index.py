from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from types import MappingProxyType
from typing import Mapping, Protocol, Sequence

from swapsync.config import DEFAULT_INDEX_WORKERS
from swapsync.data_types import Trade
from swapsync.exceptions import LedgerError

logger = logging.getLogger(__name__)

UNRESOLVED_TIMESTAMP = 0


class TimestampSource(Protocol):
    def block_timestamp(self, number: int) -> int: ...


def shared_blocks(
    trades_a: Mapping[int, Sequence[Trade]],
    trades_b: Mapping[int, Sequence[Trade]],
) -> list[int]:
    return sorted(trades_a.keys() & trades_b.keys())


def _lookup(ledger: TimestampSource, block_number: int) -> tuple[int, int]:
    try:
        return block_number, ledger.block_timestamp(block_number)
    except LedgerError as exc:
        logger.warning("Timestamp lookup failed for block %d: %s", block_number, exc)
        return block_number, UNRESOLVED_TIMESTAMP


def index_block_times(
    ledger: TimestampSource,
    trades_a: Mapping[int, Sequence[Trade]],
    trades_b: Mapping[int, Sequence[Trade]],
    *,
    max_workers: int = DEFAULT_INDEX_WORKERS,
) -> Mapping[int, int]:
    """Timestamp of every block both venues traded in.

    Lookups run on a pool of `max_workers` threads; a failed lookup records
    `UNRESOLVED_TIMESTAMP` for its block instead of failing the index.
    """

    blocks = shared_blocks(trades_a, trades_b)
    if not blocks:
        return MappingProxyType({})

    resolved: dict[int, int] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(blocks)))) as pool:
        futures = [pool.submit(_lookup, ledger, block_number) for block_number in blocks]
        for future in as_completed(futures):
            block_number, timestamp = future.result()
            resolved[block_number] = timestamp

    unresolved = sum(1 for timestamp in resolved.values() if timestamp == UNRESOLVED_TIMESTAMP)
    logger.info("Resolved timestamps for %d shared blocks (%d unresolved)", len(resolved), unresolved)
    return MappingProxyType(resolved)
