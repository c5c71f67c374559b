from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any, Iterable, Protocol

from swapsync.data_types import RawSwap, Side, TokenPair, Trade, Venue
from swapsync.exceptions import SwapDecodeError
from swapsync.utils.math import ratio, round_2, scale_amount
from swapsync.utils.rpc import hex_to_int
from swapsync.utils.swap_decode import SWAP_TOPIC, decode_swap_data

logger = logging.getLogger(__name__)


class EventSource(Protocol):
    def query_events(
        self, address: str, topic: str, from_block: int, to_block: int | str | None = None
    ) -> list[dict[str, Any]]: ...


def raw_swap_from_log(log: dict[str, Any]) -> RawSwap:
    try:
        block_number = hex_to_int(log["blockNumber"])
        data = log["data"]
    except (KeyError, TypeError, ValueError) as exc:
        raise SwapDecodeError(f"malformed Swap log: {log!r}") from exc
    amount0_in, amount1_in, amount0_out, amount1_out = decode_swap_data(data)
    return RawSwap(
        amount0_in=amount0_in,
        amount1_in=amount1_in,
        amount0_out=amount0_out,
        amount1_out=amount1_out,
        block_number=block_number,
    )


def _quote(numerator: Decimal, denominator: Decimal, swap: RawSwap) -> Decimal:
    if not denominator:
        raise SwapDecodeError(f"swap in block {swap.block_number} has no counter amount: {swap}")
    return round_2(ratio(numerator, denominator))


def classify_swap(swap: RawSwap, pair: TokenPair) -> Trade:
    """Turn raw swap amounts into a two-place price/size trade.

    Token0 flowing into the pool is a sell, otherwise a buy. Which token
    denominates price and size follows the pair's decimals: when token0 has
    more decimals, price is token1 per token0 and size is in token0; otherwise
    price is token0 per token1 and size is in token1.
    """

    token0, token1 = pair.token0, pair.token1
    amount0_in = scale_amount(swap.amount0_in, token0.denominator)
    amount1_in = scale_amount(swap.amount1_in, token1.denominator)
    amount0_out = scale_amount(swap.amount0_out, token0.denominator)
    amount1_out = scale_amount(swap.amount1_out, token1.denominator)
    token0_quoted = token0.decimals > token1.decimals

    if swap.amount0_in > 0:
        if token0_quoted:
            return Trade(price=_quote(amount1_out, amount0_in, swap), size=round_2(amount0_in), side=Side.SELL)
        return Trade(price=_quote(amount0_in, amount1_out, swap), size=round_2(amount1_out), side=Side.SELL)

    if token0_quoted:
        return Trade(price=_quote(amount1_in, amount0_out, swap), size=round_2(amount0_out), side=Side.BUY)
    return Trade(price=_quote(amount0_out, amount1_in, swap), size=round_2(amount1_in), side=Side.BUY)


def group_trades_by_block(logs: Iterable[dict[str, Any]], pair: TokenPair) -> dict[int, list[Trade]]:
    trades: dict[int, list[Trade]] = defaultdict(list)
    for log in logs:
        if log.get("removed"):
            continue
        swap = raw_swap_from_log(log)
        trades[swap.block_number].append(classify_swap(swap, pair))
    return dict(trades)


def fetch_trades(ledger: EventSource, venue: Venue, pair: TokenPair, from_block: int) -> dict[int, list[Trade]]:
    """All `Swap` trades on `venue` from `from_block` through the tip, keyed by block."""

    logs = ledger.query_events(venue.pool_address, SWAP_TOPIC, from_block)
    trades = group_trades_by_block(logs, pair)
    logger.info(
        "%s: %d swaps across %d blocks since block %d",
        venue.name,
        sum(len(block_trades) for block_trades in trades.values()),
        len(trades),
        from_block,
    )
    return trades
