from __future__ import annotations

import logging
from typing import Protocol

from swapsync.data_types import BlockHeader
from swapsync.exceptions import LedgerError
from swapsync.utils.math import round_half_up

logger = logging.getLogger(__name__)

FIRST_BLOCK = 1


class HeaderSource(Protocol):
    def header_at(self, number: int | None = None) -> BlockHeader: ...


def average_block_time(first: BlockHeader, tip: BlockHeader) -> float:
    if tip.number <= 0 or tip.timestamp <= first.timestamp:
        raise LedgerError("eth_getBlockByNumber", f"cannot derive block interval from tip {tip.number}")
    return (tip.timestamp - first.timestamp) / tip.number


def resolve_block_by_timestamp(ledger: HeaderSource, target_timestamp: int) -> int:
    """Approximate the height of the last block mined at or before `target_timestamp`.

    Extrapolates with the chain's average block interval, stepping back from the
    tip until the candidate is no longer newer than the target, then walks
    forward one block at a time while a whole interval still fits before it.
    Irregular block times can leave the result a few blocks off.
    """

    first = ledger.header_at(FIRST_BLOCK)
    tip = ledger.header_at(None)
    avg = average_block_time(first, tip)
    logger.debug("Tip %d at %d, average block time %.3fs", tip.number, tip.timestamp, avg)

    current = tip
    while current.timestamp > target_timestamp and current.number > FIRST_BLOCK:
        step = round_half_up((current.timestamp - target_timestamp) / avg)
        if step < 1:
            break
        current = ledger.header_at(max(current.number - step, FIRST_BLOCK))
        logger.debug("Stepped back %d blocks to %d (ts %d)", step, current.number, current.timestamp)

    while current.timestamp + avg < target_timestamp and current.number < tip.number:
        current = ledger.header_at(current.number + 1)

    return current.number
