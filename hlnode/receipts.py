"""RPC receipt and transaction views that separate system from user transactions.

System transactions come first in a block and their receipts carry zero
cumulative gas. User receipts are renumbered as if the system transactions
were not in the block; system receipts keep their real positions.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Iterator, Sequence

from hlnode.compliance import Block, Log, Receipt, Transaction, system_tx_count


@dataclass(frozen=True)
class ReceiptView:
    """A receipt as served over RPC, placed within its block."""

    transaction_hash: bytes
    transaction_index: int
    block_hash: bytes
    block_number: int
    gas_used: int
    cumulative_gas_used: int
    logs: tuple[Log, ...]
    success: bool = True
    sender: bytes | None = None
    base_fee_per_gas: int | None = None
    timestamp: int = 0


def _full_transactions(block: Block) -> list[Transaction]:
    transactions = list(block.transactions)
    if not all(isinstance(tx, Transaction) for tx in transactions):
        raise TypeError("receipts can only be built for blocks with full transactions")
    return transactions  # type: ignore[return-value]


def _view(
    block: Block,
    tx: Transaction,
    receipt: Receipt,
    index: int,
    gas_used: int,
    next_log_index: int,
) -> ReceiptView:
    logs = tuple(
        dataclasses.replace(
            log,
            block_number=block.number,
            block_hash=block.hash,
            transaction_hash=tx.hash,
            transaction_index=index,
            log_index=next_log_index + offset,
        )
        for offset, log in enumerate(receipt.logs)
    )
    return ReceiptView(
        transaction_hash=tx.hash,
        transaction_index=index,
        block_hash=block.hash,
        block_number=block.number,
        gas_used=gas_used,
        cumulative_gas_used=receipt.cumulative_gas_used,
        logs=logs,
        success=receipt.success,
        sender=tx.sender,
        base_fee_per_gas=block.base_fee_per_gas,
        timestamp=block.timestamp,
    )


def system_transactions(block: Block) -> list[Transaction]:
    """The block's system transactions, each carrying its position in the block."""
    return [
        dataclasses.replace(tx, transaction_index=index)
        for index, tx in enumerate(_full_transactions(block))
        if tx.is_system_transaction
    ]


def system_transaction_receipts(
    block: Block, receipts: Sequence[Receipt]
) -> list[ReceiptView]:
    """Receipts of the leading system transactions of a block."""
    views = []
    gas_used = 0
    next_log_index = 0
    for index, (tx, receipt) in enumerate(zip(_full_transactions(block), receipts)):
        if receipt.cumulative_gas_used != 0:
            break
        views.append(
            _view(
                block,
                tx,
                receipt,
                index,
                receipt.cumulative_gas_used - gas_used,
                next_log_index,
            )
        )
        gas_used = receipt.cumulative_gas_used
        next_log_index += len(receipt.logs)
    return views


def _user_receipts(
    block: Block, receipts: Sequence[Receipt], skipped: int
) -> Iterator[ReceiptView]:
    gas_used = 0
    next_log_index = 0
    for index, (tx, receipt) in enumerate(zip(_full_transactions(block), receipts)):
        if receipt.is_system:
            continue
        yield _view(
            block,
            tx,
            receipt,
            index - skipped,
            receipt.cumulative_gas_used - gas_used,
            next_log_index,
        )
        gas_used = receipt.cumulative_gas_used
        next_log_index += len(receipt.logs)


def user_transaction_receipts(
    block: Block, receipts: Sequence[Receipt]
) -> list[ReceiptView]:
    """Receipts of the block's user transactions, renumbered past system ones."""
    return list(_user_receipts(block, receipts, system_tx_count(block)))


def adjust_transaction_receipt(
    block: Block, receipts: Sequence[Receipt], tx_hash: bytes
) -> ReceiptView | None:
    """The renumbered receipt of the user transaction ``tx_hash``.

    Returns None when the block holds no such transaction. System
    transactions have no place among user receipts and raise ValueError.
    """
    transactions = _full_transactions(block)
    position = next(
        (index for index, tx in enumerate(transactions) if tx.hash == tx_hash), None
    )
    if position is None:
        return None
    skipped = system_tx_count(block)
    if position < skipped:
        raise ValueError(f"0x{tx_hash.hex()} is a system transaction")
    user_receipts = user_transaction_receipts(block, receipts)
    try:
        return user_receipts[position - skipped]
    except IndexError:
        raise ValueError(f"no receipt stored for 0x{tx_hash.hex()}") from None