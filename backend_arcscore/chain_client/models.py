"""
Data models for chain node responses.

Block, ChainTransaction and Receipt are normalized from Ethereum-style JSON-RPC
payloads (eth_getBlockByNumber, eth_getTransactionByHash, eth_getTransactionReceipt):
hex quantities become ints, addresses keep the node's casing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def hex_to_int(value: Any, default: int | None = None) -> int | None:
    """
    Parse a JSON-RPC quantity ("0x1a", 26, "26") to int.
    None / "" / "0x" return default. Raises ValueError on anything else unparseable.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(f"not a quantity: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text in ("", "0x", "0X"):
        return default
    if text[:2].lower() == "0x":
        return int(text, 16)
    return int(text)


@dataclass(frozen=True)
class ChainTransaction:
    """Transaction as listed in a block (or fetched by hash)."""

    hash: str
    from_address: str | None
    """Sender; empty/None for malformed or system entries (skipped by ingestion)."""
    to_address: str | None
    """Recipient; None signals contract creation."""
    value: int = 0
    gas_price: int = 0
    transaction_index: int | None = None
    block_number: int | None = None

    @classmethod
    def from_rpc(cls, item: dict[str, Any]) -> "ChainTransaction":
        gas_price = item.get("gasPrice")
        if gas_price is None:
            gas_price = item.get("maxFeePerGas")
        return cls(
            hash=item["hash"],
            from_address=item.get("from") or None,
            to_address=item.get("to") or None,
            value=hex_to_int(item.get("value"), 0) or 0,
            gas_price=hex_to_int(gas_price, 0) or 0,
            transaction_index=hex_to_int(item.get("transactionIndex")),
            block_number=hex_to_int(item.get("blockNumber")),
        )


@dataclass(frozen=True)
class Block:
    """
    Block header plus its transaction list.

    transactions holds ChainTransaction objects when the node returned full
    objects; transaction_hashes holds the hashes when it returned only hashes.
    """

    number: int
    hash: str | None
    timestamp: int
    transactions: tuple[ChainTransaction, ...] = field(default_factory=tuple)
    transaction_hashes: tuple[str, ...] = field(default_factory=tuple)
    malformed_transactions: int = 0
    """Listed entries that could not be parsed; counted as failed, never stored."""

    @property
    def transaction_count(self) -> int:
        return len(self.transactions) + len(self.transaction_hashes) + self.malformed_transactions

    @classmethod
    def from_rpc(cls, item: dict[str, Any]) -> "Block":
        full: list[ChainTransaction] = []
        hashes: list[str] = []
        malformed = 0
        for tx in item.get("transactions") or []:
            if isinstance(tx, str):
                hashes.append(tx)
                continue
            try:
                full.append(ChainTransaction.from_rpc(tx))
            except (AttributeError, KeyError, TypeError, ValueError):
                malformed += 1
        return cls(
            number=hex_to_int(item["number"]),
            hash=item.get("hash"),
            timestamp=hex_to_int(item["timestamp"]),
            transactions=tuple(full),
            transaction_hashes=tuple(hashes),
            malformed_transactions=malformed,
        )


@dataclass(frozen=True)
class Receipt:
    """Execution result of a mined transaction."""

    transaction_hash: str
    status: int
    """1 = success, 0 = reverted. Pre-Byzantium receipts without status count as 1."""
    gas_used: int
    transaction_index: int | None = None
    block_number: int | None = None
    block_hash: str | None = None
    contract_address: str | None = None
    """Set only when the transaction created a contract."""

    @property
    def is_contract_creation(self) -> bool:
        return self.contract_address is not None

    @classmethod
    def from_rpc(cls, item: dict[str, Any]) -> "Receipt":
        return cls(
            transaction_hash=item["transactionHash"],
            status=hex_to_int(item.get("status"), 1),
            gas_used=hex_to_int(item.get("gasUsed"), 0) or 0,
            transaction_index=hex_to_int(item.get("transactionIndex")),
            block_number=hex_to_int(item.get("blockNumber")),
            block_hash=item.get("blockHash"),
            contract_address=item.get("contractAddress") or None,
        )
