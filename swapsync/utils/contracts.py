"""Read token metadata and pool addresses straight from contract storage via `eth_call`."""

from __future__ import annotations

import logging
from typing import Protocol

from swapsync.config import Settings
from swapsync.data_types import Token, TokenPair, Venue
from swapsync.exceptions import ConfigError, LedgerError
from swapsync.utils.rpc import hex_to_int
from swapsync.utils.swap_decode import WORD_HEX, split_words

logger = logging.getLogger(__name__)

SYMBOL_SELECTOR = "0x95d89b41"
DECIMALS_SELECTOR = "0x313ce567"
GET_PAIR_SELECTOR = "0xe6a43905"
ZERO_ADDRESS = "0x" + "0" * 40


class ContractReader(Protocol):
    def call(self, to: str, data: str, block: int | str | None = None) -> str: ...


def encode_address(address: str) -> str:
    raw = address.lower().removeprefix("0x")
    if len(raw) != 40:
        raise ConfigError(f"invalid address: {address!r}")
    try:
        int(raw, 16)
    except ValueError as exc:
        raise ConfigError(f"invalid address: {address!r}") from exc
    return raw.rjust(WORD_HEX, "0")


def decode_address(word: str) -> str:
    return "0x" + word[-40:].lower()


def order_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Return both addresses with token0 (the numerically lower one) first."""

    if int(encode_address(token_a), 16) < int(encode_address(token_b), 16):
        return token_a, token_b
    return token_b, token_a


def decode_symbol(result: str) -> str:
    words = split_words(result)
    if not words:
        raise LedgerError("eth_call", "empty symbol() result")
    if len(words) == 1:
        # bytes32 symbols (e.g. MKR) are right padded with zero bytes
        return bytes.fromhex(words[0]).rstrip(b"\x00").decode("utf-8", errors="replace")
    offset = hex_to_int("0x" + words[0]) // 32
    if offset >= len(words):
        raise LedgerError("eth_call", f"symbol() string offset {offset} out of range")
    length = hex_to_int("0x" + words[offset])
    payload = "".join(words[offset + 1 :])[: length * 2]
    return bytes.fromhex(payload).decode("utf-8", errors="replace")


def read_symbol(ledger: ContractReader, address: str) -> str:
    return decode_symbol(ledger.call(address, SYMBOL_SELECTOR))


def read_decimals(ledger: ContractReader, address: str) -> int:
    result = ledger.call(address, DECIMALS_SELECTOR)
    if result in ("", "0x"):
        raise LedgerError("eth_call", f"{address} has no decimals()")
    return hex_to_int(result)


def load_token(ledger: ContractReader, address: str) -> Token:
    token = Token(address=address, symbol=read_symbol(ledger, address), decimals=read_decimals(ledger, address))
    logger.info("Token %s %s (%d decimals)", token.symbol, address, token.decimals)
    return token


def get_pair_address(ledger: ContractReader, factory: str, token0: str, token1: str) -> str:
    data = GET_PAIR_SELECTOR + encode_address(token0) + encode_address(token1)
    words = split_words(ledger.call(factory, data))
    pair = decode_address(words[0]) if words else ZERO_ADDRESS
    if pair == ZERO_ADDRESS:
        raise ConfigError(f"factory {factory} has no pool for {token0}/{token1}")
    return pair


def load_market(ledger: ContractReader, settings: Settings) -> tuple[TokenPair, Venue, Venue]:
    """Resolve both tokens and the two venues' pool addresses for the configured pair."""

    token0_address, token1_address = order_tokens(settings.token_a, settings.token_b)
    pair = TokenPair(token0=load_token(ledger, token0_address), token1=load_token(ledger, token1_address))

    venue_a = Venue(
        name=settings.dex0_name,
        pool_address=get_pair_address(ledger, settings.dex0_factory, token0_address, token1_address),
    )
    venue_b = Venue(
        name=settings.dex1_name,
        pool_address=get_pair_address(ledger, settings.dex1_factory, token0_address, token1_address),
    )
    logger.info("Pools: %s=%s %s=%s", venue_a.name, venue_a.pool_address, venue_b.name, venue_b.pool_address)
    return pair, venue_a, venue_b
