"""
Chain client: JSON-RPC reads against an EVM-compatible node.

Responsibilities:
- Current block height, block by number (with transactions), transaction by hash,
  transaction receipt.
- Native and ERC-20 balance lookups that never raise: failures come back as "0".
- Bound every call with an HTTP timeout; transport failures raise RpcUnavailable,
  JSON-RPC error objects raise RpcResponseError.

All methods are side-effect-free reads. No retries, except the token balance
lookup which tries checksummed addresses first and the raw addresses second.
"""

from __future__ import annotations

import itertools
from typing import Any

import httpx

from backend_arcscore.arc_logging import get_logger
from backend_arcscore.chain_client.models import Block, ChainTransaction, Receipt, hex_to_int
from backend_arcscore.config.env import mask_url
from backend_arcscore.core.exceptions import ChainClientError, RpcResponseError, RpcUnavailable
from backend_arcscore.utils.wallet_utils import checksum_or_none

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 15.0

# keccak256("balanceOf(address)")[:4]
BALANCE_OF_SELECTOR = "0x70a08231"


def encode_address_arg(address: str) -> str:
    """ABI-encode an address as one 32-byte word (64 hex chars, no 0x). Raises ValueError if malformed."""
    body = address.strip()
    if body[:2].lower() == "0x":
        body = body[2:]
    if len(body) != 40:
        raise ValueError(f"address must be 20 bytes: {address!r}")
    int(body, 16)
    return body.lower().rjust(64, "0")


class ChainClient:
    """
    Synchronous JSON-RPC client for one node URL.

    Holds a single httpx.Client for connection reuse; pass transport= to inject
    an httpx.MockTransport in tests. Use as a context manager or call close().
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not rpc_url or not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        if timeout_sec <= 0:
            raise ValueError("timeout_sec must be positive")
        self._rpc_url = rpc_url.strip()
        self._client = httpx.Client(timeout=httpx.Timeout(timeout_sec), transport=transport)
        self._request_ids = itertools.count(1)
        logger.info("chain_client_initialized", rpc_url=mask_url(self._rpc_url), timeout_sec=timeout_sec)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ChainClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _call(self, method: str, params: list[Any]) -> Any:
        """POST one JSON-RPC request and return its result (which may be None)."""
        body = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        try:
            resp = self._client.post(self._rpc_url, json=body)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise RpcUnavailable(method, str(e) or type(e).__name__) from e
        try:
            data = resp.json()
        except ValueError as e:
            raise RpcResponseError(method, f"invalid JSON response: {e}") from e
        if not isinstance(data, dict):
            raise RpcResponseError(method, "response is not a JSON object")
        err = data.get("error")
        if err:
            if isinstance(err, dict):
                raise RpcResponseError(method, str(err.get("message", err)), code=err.get("code"))
            raise RpcResponseError(method, str(err))
        if "result" not in data:
            raise RpcResponseError(method, "response has no result")
        return data["result"]

    # -------------------------------------------------------------------------
    # Blocks and transactions
    # -------------------------------------------------------------------------

    def current_height(self) -> int:
        """Latest block number. Raises RpcUnavailable / RpcResponseError."""
        result = self._call("eth_blockNumber", [])
        try:
            height = hex_to_int(result)
        except ValueError as e:
            raise RpcResponseError("eth_blockNumber", f"bad quantity {result!r}") from e
        if height is None:
            raise RpcResponseError("eth_blockNumber", "empty result")
        return height

    def get_block(self, number: int) -> Block | None:
        """Block with full transaction objects, or None if the node has no such block yet."""
        result = self._call("eth_getBlockByNumber", [hex(number), True])
        if result is None:
            return None
        try:
            return Block.from_rpc(result)
        except (KeyError, TypeError, ValueError) as e:
            raise RpcResponseError("eth_getBlockByNumber", f"malformed block {number}: {e}") from e

    def get_transaction(self, tx_hash: str) -> ChainTransaction | None:
        result = self._call("eth_getTransactionByHash", [tx_hash])
        if result is None:
            return None
        try:
            return ChainTransaction.from_rpc(result)
        except (KeyError, TypeError, ValueError) as e:
            raise RpcResponseError("eth_getTransactionByHash", f"malformed transaction {tx_hash}: {e}") from e

    def get_block_transactions(self, block: Block) -> list[ChainTransaction]:
        """
        Full transaction list for a block, in block order. Entries the node listed
        only by hash are fetched one by one; hashes the node no longer knows, or
        answers with an error or a malformed object, are dropped. RpcUnavailable
        still propagates.
        """
        transactions = list(block.transactions)
        for tx_hash in block.transaction_hashes:
            try:
                tx = self.get_transaction(tx_hash)
            except RpcResponseError as e:
                logger.warning("chain_transaction_unreadable", tx_hash=tx_hash, block_number=block.number, error=str(e))
                continue
            if tx is None:
                logger.debug("chain_transaction_not_found", tx_hash=tx_hash, block_number=block.number)
                continue
            transactions.append(tx)
        return transactions

    def get_receipt(self, tx_hash: str) -> Receipt | None:
        """Receipt for a mined transaction, or None if not yet available."""
        result = self._call("eth_getTransactionReceipt", [tx_hash])
        if result is None:
            return None
        try:
            return Receipt.from_rpc(result)
        except (KeyError, TypeError, ValueError) as e:
            raise RpcResponseError("eth_getTransactionReceipt", f"malformed receipt {tx_hash}: {e}") from e

    # -------------------------------------------------------------------------
    # Balances (best-effort)
    # -------------------------------------------------------------------------

    def get_balance(self, address: str) -> str:
        """Native balance in wei as a decimal string; "0" on any failure."""
        try:
            result = self._call("eth_getBalance", [address, "latest"])
            return str(hex_to_int(result, 0))
        except (ChainClientError, ValueError) as e:
            logger.warning("native_balance_failed", wallet_id=address, error=str(e))
            return "0"

    def get_token_balance(self, token_address: str, wallet_address: str) -> str:
        """
        ERC-20 balanceOf(wallet) as a decimal string; "0" on any failure.

        Tries each address pair from _balance_call_candidates in order: the
        checksum-normalized pair first, then the addresses exactly as given.
        """
        last_error: Exception | None = None
        for token, wallet in _balance_call_candidates(token_address, wallet_address):
            try:
                return str(self._erc20_balance_of(token, wallet))
            except (ChainClientError, ValueError) as e:
                last_error = e
                logger.debug("token_balance_attempt_failed", token=token, wallet_id=wallet, error=str(e))
        logger.warning(
            "token_balance_failed",
            token=token_address,
            wallet_id=wallet_address,
            error=str(last_error) if last_error else None,
        )
        return "0"

    def _erc20_balance_of(self, token: str, wallet: str) -> int:
        data = BALANCE_OF_SELECTOR + encode_address_arg(wallet)
        result = self._call("eth_call", [{"to": token, "data": data}, "latest"])
        balance = hex_to_int(result)
        if balance is None:
            raise RpcResponseError("eth_call", f"empty balanceOf result from {token}")
        return balance


def _balance_call_candidates(token_address: str, wallet_address: str) -> list[tuple[str, str]]:
    """Checksummed (token, wallet) first when both normalize, then the raw pair."""
    candidates: list[tuple[str, str]] = []
    token_cs = checksum_or_none(token_address)
    wallet_cs = checksum_or_none(wallet_address)
    if token_cs and wallet_cs:
        candidates.append((token_cs, wallet_cs))
    raw = ((token_address or "").strip(), (wallet_address or "").strip())
    if raw not in candidates:
        candidates.append(raw)
    return candidates
