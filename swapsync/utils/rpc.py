from __future__ import annotations

import logging
from typing import Any

import requests

from swapsync.data_types import BlockHeader
from swapsync.exceptions import LedgerError

logger = logging.getLogger(__name__)


def hex_to_int(value: str | None) -> int:
    return int(value, 16) if value and value != "0x" else 0


def block_tag(number: int | str | None) -> str:
    if number is None:
        return "latest"
    if isinstance(number, str):
        return number
    return hex(number)


class JsonRpcLedger:
    """Ledger data provider backed by an Ethereum JSON-RPC endpoint.

    Every request is a standalone `requests.post`, so one instance can be shared
    by the indexer's worker threads.
    """

    def __init__(self, url: str, *, timeout: float = 30.0) -> None:
        self.url = url
        self.timeout = timeout

    def request(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            resp = requests.post(self.url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise LedgerError(method, str(exc)) from exc
        except ValueError as exc:
            raise LedgerError(method, "response is not JSON") from exc

        if not isinstance(data, dict):
            raise LedgerError(method, f"unexpected response: {data!r}")
        error = data.get("error")
        if error:
            message = error.get("message", error) if isinstance(error, dict) else error
            raise LedgerError(method, str(message))
        return data.get("result")

    def header_at(self, number: int | None = None) -> BlockHeader:
        """Header of block `number`, or of the tip when `number` is None."""

        block = self.request("eth_getBlockByNumber", [block_tag(number), False])
        if not block:
            raise LedgerError("eth_getBlockByNumber", f"block {block_tag(number)} not found")
        try:
            return BlockHeader(number=hex_to_int(block["number"]), timestamp=hex_to_int(block["timestamp"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise LedgerError("eth_getBlockByNumber", f"malformed block {block_tag(number)}: {block!r}") from exc

    def block_timestamp(self, number: int) -> int:
        return self.header_at(number).timestamp

    def query_events(
        self,
        address: str,
        topic: str,
        from_block: int,
        to_block: int | str | None = None,
    ) -> list[dict[str, Any]]:
        logs = self.request(
            "eth_getLogs",
            [
                {
                    "fromBlock": block_tag(from_block),
                    "toBlock": block_tag(to_block),
                    "address": address,
                    "topics": [topic],
                }
            ],
        )
        if not isinstance(logs, list):
            raise LedgerError("eth_getLogs", f"unexpected result for {address}: {logs!r}")
        logger.debug("eth_getLogs %s from %d returned %d logs", address, from_block, len(logs))
        return logs

    def call(self, to: str, data: str, block: int | str | None = None) -> str:
        result = self.request("eth_call", [{"to": to, "data": data}, block_tag(block)])
        if not isinstance(result, str):
            raise LedgerError("eth_call", f"unexpected result for {to}: {result!r}")
        return result
