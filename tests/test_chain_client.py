"""
Tests for the JSON-RPC ChainClient over httpx.MockTransport.
"""

from __future__ import annotations

import httpx
import pytest

from backend_arcscore.chain_client.client import BALANCE_OF_SELECTOR, _balance_call_candidates, encode_address_arg
from backend_arcscore.chain_client.models import hex_to_int
from backend_arcscore.core.exceptions import RpcResponseError, RpcUnavailable

WALLET = "0x1111111111111111111111111111111111111111"
TOKEN = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"

BLOCK_PAYLOAD = {
    "number": "0x10",
    "hash": "0xblockhash16",
    "timestamp": "0x6553f100",
    "transactions": [
        {
            "hash": "0xaa",
            "from": "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01",
            "to": None,
            "value": "0xde0b6b3a7640000",
            "gasPrice": "0x3b9aca00",
            "transactionIndex": "0x0",
            "blockNumber": "0x10",
        },
        "0xbb",
    ],
}


def test_hex_to_int():
    assert hex_to_int("0x1a") == 26
    assert hex_to_int(26) == 26
    assert hex_to_int("26") == 26
    assert hex_to_int(None, 7) == 7
    assert hex_to_int("0x", 0) == 0
    with pytest.raises(ValueError):
        hex_to_int("zz")


def test_current_height(rpc_client):
    client = rpc_client(lambda method, params: "0x32")
    assert client.current_height() == 50
    assert client.calls == [("eth_blockNumber", [])]


def test_get_block_parses_full_and_hash_entries(rpc_client):
    """Full transaction objects are parsed; bare hashes are kept for expansion."""
    client = rpc_client(lambda method, params: BLOCK_PAYLOAD)
    block = client.get_block(16)
    assert client.calls[0] == ("eth_getBlockByNumber", ["0x10", True])
    assert block.number == 16
    assert block.timestamp == 0x6553F100
    assert block.transaction_count == 2
    tx = block.transactions[0]
    assert tx.to_address is None
    assert tx.value == 10**18
    assert tx.gas_price == 10**9
    assert block.transaction_hashes == ("0xbb",)


def test_get_block_absent_returns_none(rpc_client):
    client = rpc_client(lambda method, params: None)
    assert client.get_block(999) is None


def test_get_block_transactions_expands_hashes(rpc_client):
    """Hash-only entries are fetched by hash; unknown hashes are dropped."""

    def handler(method, params):
        if method == "eth_getBlockByNumber":
            return {**BLOCK_PAYLOAD, "transactions": ["0xbb", "0xcc"]}
        if method == "eth_getTransactionByHash" and params == ["0xbb"]:
            return {"hash": "0xbb", "from": WALLET, "to": TOKEN, "value": "0x0", "maxFeePerGas": "0x5"}
        return None

    client = rpc_client(handler)
    txs = client.get_block_transactions(client.get_block(16))
    assert [t.hash for t in txs] == ["0xbb"]
    assert txs[0].gas_price == 5


def test_receipt_status_and_contract_creation(rpc_client):
    """A reverted receipt keeps status 0; contractAddress marks contract creation."""

    def handler(method, params):
        return {
            "transactionHash": params[0],
            "status": "0x0",
            "gasUsed": "0x5208",
            "contractAddress": "0x4444444444444444444444444444444444444444",
        }

    receipt = rpc_client(handler).get_receipt("0xaa")
    assert receipt.status == 0
    assert receipt.gas_used == 21000
    assert receipt.is_contract_creation is True


def test_receipt_without_status_counts_as_success(rpc_client):
    receipt = rpc_client(lambda m, p: {"transactionHash": "0xaa", "gasUsed": "0x1"}).get_receipt("0xaa")
    assert receipt.status == 1
    assert receipt.is_contract_creation is False


def test_transport_failure_raises_rpc_unavailable(rpc_client):
    def handler(method, params):
        raise httpx.ConnectError("connection refused")

    client = rpc_client(handler)
    with pytest.raises(RpcUnavailable) as exc:
        client.current_height()
    assert exc.value.method == "eth_blockNumber"


def test_http_error_status_raises_rpc_unavailable(rpc_client):
    client = rpc_client(lambda m, p: httpx.Response(503, text="busy"))
    with pytest.raises(RpcUnavailable):
        client.get_block(1)


def test_rpc_error_object_raises_response_error(rpc_client):
    client = rpc_client(lambda m, p: {"error": {"code": -32000, "message": "header not found"}})
    with pytest.raises(RpcResponseError) as exc:
        client.get_receipt("0xaa")
    assert exc.value.code == -32000
    assert "header not found" in str(exc.value)


def test_get_balance_returns_zero_on_failure(rpc_client):
    """Native balance never raises."""
    ok = rpc_client(lambda m, p: "0x64")
    assert ok.get_balance(WALLET) == "100"

    def handler(method, params):
        raise httpx.ReadTimeout("timed out")

    assert rpc_client(handler).get_balance(WALLET) == "0"


def test_token_balance_uses_checksummed_call_first(rpc_client):
    client = rpc_client(lambda m, p: "0x" + format(1_500_000, "064x"))
    assert client.get_token_balance(TOKEN, WALLET) == "1500000"
    method, params = client.calls[0]
    assert method == "eth_call"
    assert params[0]["data"] == BALANCE_OF_SELECTOR + WALLET[2:].rjust(64, "0")
    assert params[1] == "latest"


def test_token_balance_falls_back_to_raw_addresses(rpc_client):
    """When the checksummed call fails, the raw pair is tried before giving up."""
    raw_token = TOKEN.upper().replace("0X", "0x")

    def handler(method, params):
        if params[0]["to"] == raw_token:
            return "0x2a"
        return {"error": {"code": 3, "message": "execution reverted"}}

    client = rpc_client(handler)
    assert client.get_token_balance(raw_token, WALLET) == "42"
    assert len(client.calls) == 2


def test_token_balance_returns_zero_when_all_attempts_fail(rpc_client):
    client = rpc_client(lambda m, p: {"error": {"code": 3, "message": "execution reverted"}})
    assert client.get_token_balance(TOKEN, WALLET) == "0"
    assert client.get_token_balance("not-an-address", WALLET) == "0"


def test_balance_call_candidates():
    pairs = _balance_call_candidates(TOKEN, WALLET)
    assert len(pairs) == 2
    assert pairs[1] == (TOKEN, WALLET)
    assert pairs[0][0].lower() == TOKEN
    assert _balance_call_candidates("bad", WALLET) == [("bad", WALLET)]


def test_encode_address_arg():
    assert encode_address_arg(WALLET) == "0" * 24 + "1" * 40
    with pytest.raises(ValueError):
        encode_address_arg("0x1234")


def test_get_block_counts_malformed_entries(rpc_client):
    """An entry without a hash is counted, not parsed; the rest of the block survives."""
    payload = {**BLOCK_PAYLOAD, "transactions": [BLOCK_PAYLOAD["transactions"][0], {"from": WALLET, "value": "0x1"}]}
    client = rpc_client(lambda method, params: payload)
    block = client.get_block(16)
    assert [t.hash for t in block.transactions] == ["0xaa"]
    assert block.malformed_transactions == 1
    assert block.transaction_count == 2


def test_get_block_transactions_skips_unreadable_hash(rpc_client):
    """An error object for one hash drops that entry; the other hashes are still fetched."""

    def handler(method, params):
        if method == "eth_getBlockByNumber":
            return {**BLOCK_PAYLOAD, "transactions": ["0xbb", "0xcc"]}
        if params == ["0xbb"]:
            return {"error": {"code": -32000, "message": "transaction indexing in progress"}}
        return {"hash": "0xcc", "from": WALLET, "to": TOKEN, "value": "0x0", "gasPrice": "0x1"}

    client = rpc_client(handler)
    txs = client.get_block_transactions(client.get_block(16))
    assert [t.hash for t in txs] == ["0xcc"]
