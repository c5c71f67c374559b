from __future__ import annotations

from swapsync.exceptions import SwapDecodeError

# keccak256("Swap(address,uint256,uint256,uint256,uint256,address)")
SWAP_TOPIC = "0xd78ad95fa46c994b6551d0da85fc275fe613ce37657fb8d5e3d130840159d822"

WORD_HEX = 64
SWAP_WORDS = 4


def split_words(data: str) -> list[str]:
    raw = data[2:] if data.startswith(("0x", "0X")) else data
    if len(raw) % WORD_HEX:
        raise SwapDecodeError(f"payload length {len(raw)} is not a multiple of 32 bytes")
    return [raw[i : i + WORD_HEX] for i in range(0, len(raw), WORD_HEX)]


def decode_swap_data(data: str) -> tuple[int, int, int, int]:
    """Decode the non-indexed `Swap` fields: amount0In, amount1In, amount0Out, amount1Out."""

    if not isinstance(data, str):
        raise SwapDecodeError(f"payload must be a hex string, got {type(data).__name__}")
    words = split_words(data)
    if len(words) < SWAP_WORDS:
        raise SwapDecodeError(f"expected {SWAP_WORDS} words, got {len(words)}")
    try:
        amount0_in, amount1_in, amount0_out, amount1_out = (int(word, 16) for word in words[:SWAP_WORDS])
    except ValueError as exc:
        raise SwapDecodeError(f"payload is not valid hex: {data[:20]}...") from exc
    return amount0_in, amount1_in, amount0_out, amount1_out
