from __future__ import annotations

import argparse
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Mapping, Protocol, Sequence

import pandas as pd
from matplotlib import pyplot as plt

from swapsync.block_index import UNRESOLVED_TIMESTAMP, TimestampSource, index_block_times, shared_blocks
from swapsync.block_time import HeaderSource, resolve_block_by_timestamp
from swapsync.config import DEFAULT_INDEX_WORKERS, load_settings
from swapsync.data_types import ReportRow, Side, TokenPair, Trade, Venue
from swapsync.exceptions import InvalidLookbackError, SwapSyncError
from swapsync.swap_logs import EventSource, fetch_trades
from swapsync.utils.contracts import load_market
from swapsync.utils.rpc import JsonRpcLedger

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 60 * 60
TIME_FORMAT = "%b %d %H:%M:%S"
REPORT_COLUMNS = ["block_number", "time", "side", "venue", "price", "size"]


class Ledger(HeaderSource, EventSource, TimestampSource, Protocol):
    pass


def parse_lookback(value: int | str) -> int:
    """Validate a lookback depth given as a whole number of hours."""

    if isinstance(value, bool):
        raise InvalidLookbackError(f"lookback must be a positive integer, got {value!r}")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError as exc:
            raise InvalidLookbackError(f"lookback must be a positive integer, got {value!r}") from exc
    if not isinstance(value, int) or value <= 0:
        raise InvalidLookbackError(f"lookback must be a positive integer, got {value!r}")
    return value


def split_sides(trades: Iterable[Trade]) -> tuple[list[Trade], list[Trade]]:
    buys: list[Trade] = []
    sells: list[Trade] = []
    for trade in trades:
        (buys if trade.side is Side.BUY else sells).append(trade)
    return buys, sells


def _rows(block_number: int, timestamp: int, venue: str, trades: Sequence[Trade]) -> list[ReportRow]:
    return [
        ReportRow(
            block_number=block_number,
            timestamp=timestamp,
            venue=venue,
            side=trade.side,
            price=trade.price,
            size=trade.size,
        )
        for trade in trades
    ]


def correlate_trades(
    trades_a: Mapping[int, Sequence[Trade]],
    venue_a: str,
    trades_b: Mapping[int, Sequence[Trade]],
    venue_b: str,
    block_times: Mapping[int, int],
) -> list[ReportRow]:
    """Rows for every block, ascending, in which both venues traded the same side.

    Within a block, buys come before sells and venue A before venue B. A side is
    reported only when both venues have trades on it.
    """

    rows: list[ReportRow] = []
    for block_number in shared_blocks(trades_a, trades_b):
        buys_a, sells_a = split_sides(trades_a[block_number])
        buys_b, sells_b = split_sides(trades_b[block_number])
        timestamp = block_times.get(block_number, UNRESOLVED_TIMESTAMP)

        if buys_a and buys_b:
            rows += _rows(block_number, timestamp, venue_a, buys_a)
            rows += _rows(block_number, timestamp, venue_b, buys_b)
        if sells_a and sells_b:
            rows += _rows(block_number, timestamp, venue_a, sells_a)
            rows += _rows(block_number, timestamp, venue_b, sells_b)
    return rows


def correlate(
    lookback_hours: int | str,
    venue_a: Venue,
    venue_b: Venue,
    pair: TokenPair,
    ledger: Ledger,
    *,
    now: int | None = None,
    max_workers: int = DEFAULT_INDEX_WORKERS,
) -> list[ReportRow]:
    """Same-side trades on both venues over the last `lookback_hours` hours."""

    hours = parse_lookback(lookback_hours)
    current = int(time.time()) if now is None else now
    target_timestamp = current - hours * SECONDS_PER_HOUR

    logger.info("Finding block number by timestamp %d", target_timestamp)
    start_block = resolve_block_by_timestamp(ledger, target_timestamp)
    logger.info("Reading swap logs from block %d", start_block)
    trades_a = fetch_trades(ledger, venue_a, pair, start_block)
    trades_b = fetch_trades(ledger, venue_b, pair, start_block)

    block_times = index_block_times(ledger, trades_a, trades_b, max_workers=max_workers)
    rows = correlate_trades(trades_a, venue_a.name, trades_b, venue_b.name, block_times)
    logger.info("%d rows across %d synchronous blocks", len(rows), len({row.block_number for row in rows}))
    return rows


def format_block_time(timestamp: int) -> str:
    if timestamp == UNRESOLVED_TIMESTAMP:
        return "unresolved"
    return datetime.fromtimestamp(timestamp, timezone.utc).strftime(TIME_FORMAT)


def rows_to_frame(rows: Sequence[ReportRow]) -> pd.DataFrame:
    records = [
        {
            "block_number": row.block_number,
            "time": format_block_time(row.timestamp),
            "side": row.side.label,
            "venue": row.venue,
            "price": row.price,
            "size": row.size,
        }
        for row in rows
    ]
    return pd.DataFrame(records, columns=REPORT_COLUMNS)


def format_report(rows: Sequence[ReportRow]) -> str:
    if not rows:
        return "No synchronous swaps found."
    return rows_to_frame(rows).to_string(
        index=False,
        formatters={"price": "{:.2f}".format, "size": "{:.2f}".format},
    )


def plot_correlated_prices(
    rows: Sequence[ReportRow],
    *,
    file_path: Path | str | None = None,
    title: str = "Synchronous swaps",
) -> plt.Figure:
    """Scatter each venue's buy and sell prices over time."""

    resolved = [row for row in rows if row.timestamp != UNRESOLVED_TIMESTAMP]
    if not resolved:
        raise ValueError("No timestamped rows available for plotting")

    grouped: dict[tuple[str, Side], list[ReportRow]] = {}
    for row in resolved:
        grouped.setdefault((row.venue, row.side), []).append(row)

    fig, ax = plt.subplots()
    for (venue, side), points in grouped.items():
        timestamps = [datetime.fromtimestamp(point.timestamp, timezone.utc) for point in points]
        prices = [float(point.price) for point in points]
        ax.scatter(timestamps, prices, label=f"{venue} {side.label}", marker="^" if side is Side.BUY else "v")

    ax.set_xlabel("UTC time")
    ax.set_ylabel("Price")
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.autofmt_xdate()

    if file_path:
        fig.savefig(Path(file_path), bbox_inches="tight")

    return fig


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swapsync",
        description="Report blocks where two pools of the same pair traded the same side.",
    )
    parser.add_argument("--hours", help="analysis depth in hours (prompted when omitted)")
    parser.add_argument("--env-file", type=Path, help="dotenv file with ETH_* settings (default: ./.env)")
    parser.add_argument("--workers", type=_positive_int, help="concurrent block timestamp lookups")
    parser.add_argument("--plot", type=Path, help="save a price chart of the reported swaps to this path")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.env_file)
        ledger = JsonRpcLedger(settings.rpc_url, timeout=settings.rpc_timeout)
        logger.info("Initializing DEX and tokens data")
        pair, venue_a, venue_b = load_market(ledger, settings)
        hours = parse_lookback(args.hours if args.hours is not None else input("Enter analysis depth in hours: "))
        rows = correlate(
            hours,
            venue_a,
            venue_b,
            pair,
            ledger,
            max_workers=args.workers or settings.index_workers,
        )
    except SwapSyncError as exc:
        logger.error("%s", exc)
        return 1

    print(f"{pair.token0.symbol}/{pair.token1.symbol}: {venue_a.name} vs {venue_b.name}")
    print(format_report(rows))

    if args.plot:
        try:
            fig = plot_correlated_prices(rows, file_path=args.plot)
        except ValueError as exc:
            logger.warning("Skipping plot: %s", exc)
        else:
            plt.close(fig)
            logger.info("Saved plot: %s", args.plot)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
