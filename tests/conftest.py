from __future__ import annotations

import os

os.environ.setdefault("MPLBACKEND", "Agg")

import pytest

from swapsync.data_types import BlockHeader, Token, TokenPair, Venue
from swapsync.exceptions import LedgerError
from swapsync.utils.swap_decode import SWAP_TOPIC


def swap_log(block_number: int, amount0_in=0, amount1_in=0, amount0_out=0, amount1_out=0, **extra) -> dict:
    data = "0x" + "".join(f"{amount:064x}" for amount in (amount0_in, amount1_in, amount0_out, amount1_out))
    log = {"blockNumber": hex(block_number), "data": data, "topics": [SWAP_TOPIC]}
    log.update(extra)
    return log


class FakeLedger:
    """In-memory chain: block timestamps plus per-pool swap logs."""

    def __init__(self, timestamps: dict[int, int], logs: dict[str, list[dict]] | None = None) -> None:
        self.timestamps = timestamps
        self.logs = logs or {}
        self.failing_blocks: set[int] = set()
        self.header_calls: list[int | None] = []
        self.event_queries: list[tuple[str, str, int]] = []

    @property
    def tip(self) -> int:
        return max(self.timestamps)

    def header_at(self, number: int | None = None) -> BlockHeader:
        self.header_calls.append(number)
        number = self.tip if number is None else number
        if number not in self.timestamps:
            raise LedgerError("eth_getBlockByNumber", f"block {hex(number)} not found")
        return BlockHeader(number=number, timestamp=self.timestamps[number])

    def block_timestamp(self, number: int) -> int:
        if number in self.failing_blocks:
            raise LedgerError("eth_getBlockByNumber", f"timeout for {number}")
        return self.header_at(number).timestamp

    def query_events(self, address, topic, from_block, to_block=None):
        self.event_queries.append((address, topic, from_block))
        return [log for log in self.logs.get(address, []) if int(log["blockNumber"], 16) >= from_block]


@pytest.fixture
def weth():
    return Token(address="0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2", symbol="WETH", decimals=18)


@pytest.fixture
def usdc():
    return Token(address="0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48", symbol="USDC", decimals=6)


@pytest.fixture
def weth_usdc(weth, usdc):
    # token0 carries more decimals than token1
    return TokenPair(token0=weth, token1=usdc)


@pytest.fixture
def usdc_weth(weth, usdc):
    return TokenPair(token0=usdc, token1=weth)


@pytest.fixture
def venues():
    return (
        Venue(name="Uniswap", pool_address="0xb4e16d0168e52d35cacd2c6185b44281ec28c9dc"),
        Venue(name="Sushiswap", pool_address="0x397ff1542f962076d0bfe58ea045ffa2d347aca0"),
    )


@pytest.fixture
def make_ledger():
    return FakeLedger


@pytest.fixture
def make_swap_log():
    return swap_log
