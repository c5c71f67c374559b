from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class Side(str, Enum):
    """Trade direction relative to token0: selling it into the pool or buying it out."""

    BUY = "buy"
    SELL = "sell"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class Token:
    """ERC20 metadata resolved once at startup and used to scale raw amounts."""

    address: str
    symbol: str
    decimals: int
    denominator: Decimal = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "denominator", Decimal(10) ** self.decimals)


@dataclass(frozen=True)
class TokenPair:
    token0: Token
    token1: Token


@dataclass(frozen=True)
class Venue:
    name: str
    pool_address: str


@dataclass(frozen=True)
class BlockHeader:
    number: int
    timestamp: int


@dataclass(frozen=True)
class RawSwap:
    """Unscaled amounts carried by one `Swap` log."""

    amount0_in: int
    amount1_in: int
    amount0_out: int
    amount1_out: int
    block_number: int


@dataclass(frozen=True)
class Trade:
    price: Decimal
    size: Decimal
    side: Side


@dataclass(frozen=True)
class ReportRow:
    """One venue trade inside a block where both venues traded the same side."""

    block_number: int
    timestamp: int
    venue: str
    side: Side
    price: Decimal
    size: Decimal
