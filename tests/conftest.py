"""
Pytest fixtures for ARC Score tests. Temporary SQLite DB per test, an in-memory
fake chain, and an httpx.MockTransport-backed ChainClient for JSON-RPC tests.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from backend_arcscore.chain_client import Block, ChainClient, ChainTransaction, Receipt
from backend_arcscore.core.exceptions import RpcUnavailable

SENDER_MIXED = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
SENDER_B = "0x1111111111111111111111111111111111111111"
SENDER_C = "0x2222222222222222222222222222222222222222"
RECEIVER = "0x3333333333333333333333333333333333333333"
TOKEN = "0x3600000000000000000000000000000000000000"

# 2023-11-14T22:13:20Z
T0 = 1_700_000_000
DAY = 86_400


def make_tx(n: int, sender: str | None = SENDER_B, to: str | None = RECEIVER, value: int = 1) -> ChainTransaction:
    return ChainTransaction(
        hash="0x" + format(n, "064x"),
        from_address=sender,
        to_address=to,
        value=value,
        gas_price=10,
        transaction_index=0,
    )


class FakeChain:
    """
    In-memory stand-in for ChainClient. Blocks are added with add_block();
    receipts default to success unless overridden; fail_* hooks inject errors.
    """

    def __init__(self, height: int = 0) -> None:
        self.height = height
        self.blocks: dict[int, Block] = {}
        self.receipts: dict[str, Receipt | None] = {}
        self.receipt_errors: dict[str, Exception] = {}
        self.unavailable = False
        self.native_balance = "0"
        self.token_balance = "0"
        self.receipt_calls: list[str] = []
        self.token_calls: list[tuple[str, str]] = []

    def add_block(self, number: int, txs: list[ChainTransaction] = (), timestamp: int = T0) -> Block:
        block = Block(
            number=number,
            hash="0x" + format(number, "064x"),
            timestamp=timestamp,
            transactions=tuple(txs),
        )
        self.blocks[number] = block
        self.height = max(self.height, number)
        return block

    def fill_empty(self, first: int, last: int) -> None:
        for n in range(first, last + 1):
            self.add_block(n, [])

    def current_height(self) -> int:
        if self.unavailable:
            raise RpcUnavailable("eth_blockNumber", "connection refused")
        return self.height

    def get_block(self, number: int) -> Block | None:
        if self.unavailable:
            raise RpcUnavailable("eth_getBlockByNumber", "connection refused")
        return self.blocks.get(number)

    def get_block_transactions(self, block: Block) -> list[ChainTransaction]:
        return list(block.transactions)

    def get_receipt(self, tx_hash: str) -> Receipt | None:
        self.receipt_calls.append(tx_hash)
        if tx_hash in self.receipt_errors:
            raise self.receipt_errors[tx_hash]
        if tx_hash in self.receipts:
            return self.receipts[tx_hash]
        return Receipt(transaction_hash=tx_hash, status=1, gas_used=21000, transaction_index=0)

    def get_balance(self, address: str) -> str:
        return self.native_balance

    def get_token_balance(self, token_address: str, wallet_address: str) -> str:
        self.token_calls.append((token_address, wallet_address))
        return self.token_balance

    def close(self) -> None:
        pass


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh SQLite database with schema, in a temp dir."""
    monkeypatch.delenv("DATABASE_URL", raising=False)
    from backend_arcscore.database import get_database

    return get_database(f"sqlite:///{tmp_path / 'arcscore.db'}")


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def make_settings():
    """Factory for Settings with test-friendly defaults."""
    from backend_arcscore.config import Settings

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "rpc_url": "http://node.test",
            "database_url": "sqlite://",
            "indexer_enabled": True,
            "batch_size": 100,
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def services(db, chain, make_settings):
    """ArcServices over the temp DB and the fake chain, indexer enabled."""
    from backend_arcscore.agent_worker import build_services

    return build_services(make_settings(), db=db, chain=chain)


RpcHandler = Callable[[str, list], Any]


@pytest.fixture
def rpc_client():
    """
    Factory: rpc_client(handler) -> ChainClient whose JSON-RPC calls go to
    handler(method, params). handler returns a result value, a full response
    dict (with "error"), or raises httpx errors to simulate transport failures.
    Every request is appended to client.calls as (method, params).
    """
    clients: list[ChainClient] = []

    def _make(handler: RpcHandler) -> ChainClient:
        calls: list[tuple[str, list]] = []

        def transport_handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            calls.append((body["method"], body["params"]))
            result = handler(body["method"], body["params"])
            if isinstance(result, httpx.Response):
                return result
            if isinstance(result, dict) and "error" in result:
                return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **result})
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

        client = ChainClient("http://node.test", transport=httpx.MockTransport(transport_handler))
        client.calls = calls
        clients.append(client)
        return client

    yield _make
    for c in clients:
        c.close()
