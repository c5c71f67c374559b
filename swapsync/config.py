from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, TypeVar

from dotenv import find_dotenv, load_dotenv

from swapsync.exceptions import ConfigError

DEFAULT_INDEX_WORKERS = 16
DEFAULT_RPC_TIMEOUT = 30.0

Number = TypeVar("Number", int, float)


@dataclass(frozen=True)
class Settings:
    """Run configuration, passed explicitly to the pieces that need it."""

    rpc_url: str
    dex0_factory: str
    dex1_factory: str
    dex0_name: str
    dex1_name: str
    token_a: str
    token_b: str
    index_workers: int = DEFAULT_INDEX_WORKERS
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT


def _required(env: Mapping[str, str], key: str) -> str:
    value = env.get(key, "").strip()
    if not value:
        raise ConfigError(f"{key} is not set")
    return value


def _positive_number(env: Mapping[str, str], key: str, default: Number, cast: Callable[[str], Number]) -> Number:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}")
    return value


def settings_from_env(env: Mapping[str, str]) -> Settings:
    return Settings(
        rpc_url=_required(env, "ETH_APIADDRESS") + env.get("ETH_APPKEY", "").strip(),
        dex0_factory=_required(env, "ETH_DEX0_FACTORY"),
        dex1_factory=_required(env, "ETH_DEX1_FACTORY"),
        dex0_name=env.get("ETH_DEX0_NAME", "").strip() or "DEX0",
        dex1_name=env.get("ETH_DEX1_NAME", "").strip() or "DEX1",
        token_a=_required(env, "ETH_TOKEN0"),
        token_b=_required(env, "ETH_TOKEN1"),
        index_workers=_positive_number(env, "ETH_INDEX_WORKERS", DEFAULT_INDEX_WORKERS, int),
        rpc_timeout=_positive_number(env, "ETH_RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT, float),
    )


def load_settings(env_file: Path | str | None = None) -> Settings:
    """Load `.env` (or `env_file`) into the process environment and build `Settings`."""

    if env_file is not None and not Path(env_file).is_file():
        raise ConfigError(f"env file not found: {env_file}")
    load_dotenv(env_file if env_file is not None else find_dotenv(usecwd=True))
    return settings_from_env(os.environ)
