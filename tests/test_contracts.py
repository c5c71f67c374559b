import pytest

from swapsync.config import Settings
from swapsync.exceptions import ConfigError
from swapsync.utils.contracts import (
    DECIMALS_SELECTOR,
    GET_PAIR_SELECTOR,
    SYMBOL_SELECTOR,
    decode_symbol,
    encode_address,
    get_pair_address,
    load_market,
    order_tokens,
    read_decimals,
)

WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
UNI_FACTORY = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"
SUSHI_FACTORY = "0xC0AEe478e3658e2610c5F7A4A2E1777cE9e4f2Ac"
UNI_POOL = "0xb4e16d0168e52d35cacd2c6185b44281ec28c9dc"
SUSHI_POOL = "0x397ff1542f962076d0bfe58ea045ffa2d347aca0"


def word(value: int) -> str:
    return f"{value:064x}"


def abi_string(text: str) -> str:
    raw = text.encode().hex()
    return "0x" + word(32) + word(len(text)) + raw.ljust(64, "0")


def abi_address(address: str) -> str:
    return "0x" + address.lower().removeprefix("0x").rjust(64, "0")


class FakeContracts:
    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def call(self, to, data, block=None):
        self.calls.append((to, data))
        return self.responses[(to.lower(), data)]


def test_order_tokens_puts_lower_address_first():
    assert order_tokens(WETH, USDC) == (USDC, WETH)
    assert order_tokens(USDC, WETH) == (USDC, WETH)


def test_encode_address_rejects_garbage():
    with pytest.raises(ConfigError):
        encode_address("0x1234")
    with pytest.raises(ConfigError):
        encode_address("0x" + "g" * 40)


def test_decode_symbol_dynamic_string():
    assert decode_symbol(abi_string("USDC")) == "USDC"


def test_decode_symbol_bytes32():
    assert decode_symbol("0x" + "4d4b52".ljust(64, "0")) == "MKR"


def test_read_decimals():
    reader = FakeContracts({(USDC.lower(), DECIMALS_SELECTOR): "0x" + word(6)})

    assert read_decimals(reader, USDC) == 6


def test_get_pair_address_encodes_both_tokens():
    data = GET_PAIR_SELECTOR + encode_address(USDC) + encode_address(WETH)
    reader = FakeContracts({(UNI_FACTORY.lower(), data): abi_address(UNI_POOL)})

    assert get_pair_address(reader, UNI_FACTORY, USDC, WETH) == UNI_POOL
    assert len(data) == 2 + 8 + 128


def test_missing_pool_is_a_config_error():
    data = GET_PAIR_SELECTOR + encode_address(USDC) + encode_address(WETH)
    reader = FakeContracts({(SUSHI_FACTORY.lower(), data): "0x" + word(0)})

    with pytest.raises(ConfigError, match="no pool"):
        get_pair_address(reader, SUSHI_FACTORY, USDC, WETH)


def test_load_market():
    pair_data = GET_PAIR_SELECTOR + encode_address(USDC) + encode_address(WETH)
    reader = FakeContracts(
        {
            (USDC.lower(), SYMBOL_SELECTOR): abi_string("USDC"),
            (USDC.lower(), DECIMALS_SELECTOR): "0x" + word(6),
            (WETH.lower(), SYMBOL_SELECTOR): abi_string("WETH"),
            (WETH.lower(), DECIMALS_SELECTOR): "0x" + word(18),
            (UNI_FACTORY.lower(), pair_data): abi_address(UNI_POOL),
            (SUSHI_FACTORY.lower(), pair_data): abi_address(SUSHI_POOL),
        }
    )
    settings = Settings(
        rpc_url="http://localhost:8545",
        dex0_factory=UNI_FACTORY,
        dex1_factory=SUSHI_FACTORY,
        dex0_name="Uniswap",
        dex1_name="Sushiswap",
        token_a=WETH,
        token_b=USDC,
    )

    pair, venue_a, venue_b = load_market(reader, settings)

    assert (pair.token0.symbol, pair.token0.decimals) == ("USDC", 6)
    assert (pair.token1.symbol, pair.token1.decimals) == ("WETH", 18)
    assert str(pair.token1.denominator) == str(10**18)
    assert (venue_a.name, venue_a.pool_address) == ("Uniswap", UNI_POOL)
    assert (venue_b.name, venue_b.pool_address) == ("Sushiswap", SUSHI_POOL)
