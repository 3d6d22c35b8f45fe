"""
Ingestion engine: chain blocks -> transactions, wallets, daily activity.

compute_blocks_to_index() picks the next contiguous range after the cursor,
capped at batch_size blocks per cycle. index_block() pulls one block and ingests
each transaction independently, then advances the cursor. ingest_transaction()
is idempotent on the transaction hash, so replaying a block changes nothing.

Failure isolation:
- RpcUnavailable propagates: the caller's cycle aborts with the cursor at the
  last fully indexed block.
- Any other exception while ingesting one transaction is logged and counted;
  the block carries on and the cursor still advances.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_arcscore.arc_logging import bind_block, get_logger
from backend_arcscore.chain_client import Block, ChainClient, ChainTransaction
from backend_arcscore.config.settings import DEFAULT_BATCH_SIZE
from backend_arcscore.core.exceptions import RpcUnavailable
from backend_arcscore.database import Database, TransactionRecord
from backend_arcscore.ingestion.cursor import CursorStore
from backend_arcscore.utils.wallet_utils import normalize_address

logger = get_logger(__name__)


@dataclass
class BlockIndexResult:
    """Outcome of index_block for one block number."""

    block_number: int
    found: bool
    """False when the node has no such block yet; the cursor did not move."""
    transactions: int = 0
    ingested: int = 0
    skipped: int = 0
    """No sender, no receipt yet, or already stored."""
    failed: int = 0


class IndexerService:
    """Drives block fetch and transaction ingestion for one chain and one store."""

    def __init__(
        self,
        db: Database,
        chain: ChainClient,
        cursor: CursorStore,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._db = db
        self._chain = chain
        self._cursor = cursor
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def compute_blocks_to_index(self) -> list[int]:
        """
        Next block numbers to index, ascending: (last, min(last + batch_size, height)].
        Empty when the node is not ahead of the cursor.
        """
        last = self._cursor.last_block_number()
        height = self._chain.current_height()
        if height <= last:
            return []
        end = min(last + self._batch_size, height)
        return list(range(last + 1, end + 1))

    def index_block(self, number: int) -> BlockIndexResult:
        """Ingest every transaction of one block, then advance the cursor to it."""
        log = bind_block(number)
        block = self._chain.get_block(number)
        if block is None:
            log.warning("block_not_found")
            return BlockIndexResult(block_number=number, found=False)

        result = BlockIndexResult(block_number=number, found=True)
        if block.transaction_count == 0:
            self._cursor.advance(block.number, block.hash)
            log.debug("block_indexed_empty")
            return result

        transactions = self._chain.get_block_transactions(block)
        result.transactions = block.transaction_count
        result.failed = block.malformed_transactions
        if block.malformed_transactions:
            log.warning("transactions_malformed", count=block.malformed_transactions)
        # hash-only entries the node could not return
        result.skipped = len(block.transactions) + len(block.transaction_hashes) - len(transactions)
        for tx in transactions:
            if not (tx.from_address or "").strip():
                result.skipped += 1
                continue
            try:
                if self.ingest_transaction(tx, block):
                    result.ingested += 1
                else:
                    result.skipped += 1
            except RpcUnavailable:
                raise
            except Exception as e:
                result.failed += 1
                log.warning("transaction_ingest_failed", tx_hash=tx.hash, error=str(e), exc_info=True)

        self._cursor.advance(block.number, block.hash)
        log.info(
            "block_indexed",
            transactions=result.transactions,
            ingested=result.ingested,
            skipped=result.skipped,
            failed=result.failed,
        )
        return result

    def ingest_transaction(self, tx: ChainTransaction, block: Block) -> bool:
        """
        Store one transaction with its receipt fields. Returns True when stored,
        False when skipped (already stored, or receipt not available yet).
        """
        if self._db.transaction_exists(tx.hash):
            logger.debug("transaction_duplicate", tx_hash=tx.hash)
            return False
        receipt = self._chain.get_receipt(tx.hash)
        if receipt is None:
            logger.debug("receipt_not_found", tx_hash=tx.hash, block_number=block.number)
            return False

        sender = normalize_address(tx.from_address or "")
        record = TransactionRecord(
            hash=tx.hash,
            block_number=block.number,
            block_hash=block.hash,
            from_address=sender,
            to_address=tx.to_address.lower() if tx.to_address else None,
            value=str(tx.value),
            gas_used=str(receipt.gas_used),
            gas_price=str(tx.gas_price),
            timestamp=block.timestamp,
            transaction_index=(
                receipt.transaction_index
                if receipt.transaction_index is not None
                else tx.transaction_index
            ),
            status=receipt.status,
            is_contract_creation=receipt.is_contract_creation,
            contract_address=receipt.contract_address.lower() if receipt.contract_address else None,
        )
        inserted = self._db.record_transaction(record)
        if inserted:
            logger.debug("transaction_ingested", tx_hash=tx.hash, wallet_id=sender, block_number=block.number)
        else:
            logger.debug("transaction_duplicate", tx_hash=tx.hash)
        return inserted

    def count_wallet_transactions(self, address: str) -> int:
        """Stored transactions sent by address; 0 for a wallet never seen."""
        address = normalize_address(address)
        if self._db.get_wallet(address) is None:
            logger.info("wallet_not_indexed", wallet_id=address)
            return 0
        return self._db.count_transactions(sender=address)
