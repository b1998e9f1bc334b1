"""Hide Hyperliquid system transactions from RPC views of blocks and logs.

System transactions always sit at the start of a block and are recognised by
a zero gas price; their receipts carry zero cumulative gas. Indices of the
user transactions and logs that follow are shifted so that clients see the
block as if the system transactions were not there.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Sequence, Union


@dataclass(frozen=True)
class Log:
    """A log entry as returned by the RPC."""

    address: bytes = bytes(20)
    topics: tuple[bytes, ...] = ()
    data: bytes = b""
    block_number: int | None = None
    block_hash: bytes | None = None
    transaction_hash: bytes | None = None
    transaction_index: int | None = None
    log_index: int | None = None
    removed: bool = False


@dataclass(frozen=True)
class Receipt:
    """A stored transaction receipt."""

    cumulative_gas_used: int
    logs: tuple[Log, ...] = ()
    success: bool = True

    @property
    def is_system(self) -> bool:
        """System transaction receipts consume no gas."""
        return self.cumulative_gas_used == 0


@dataclass(frozen=True)
class Transaction:
    """A transaction within a block."""

    hash: bytes
    gas_price: int | None = None
    transaction_index: int | None = None
    sender: bytes | None = None

    @property
    def is_system_transaction(self) -> bool:
        """System transactions are legacy transactions with a zero gas price."""
        return self.gas_price == 0


@dataclass(frozen=True)
class Block:
    """A block with either full transactions or only their hashes."""

    number: int
    hash: bytes
    transactions: tuple[Union[Transaction, bytes], ...] = field(default_factory=tuple)
    base_fee_per_gas: int | None = None
    timestamp: int = 0


ReceiptSource = Union[
    Mapping[int, Sequence[Receipt]], Callable[[int], Union[Sequence[Receipt], None]]
]


def system_tx_count(block: Block) -> int:
    """Number of system transactions in a block with full transactions."""
    count = 0
    for tx in block.transactions:
        if not isinstance(tx, Transaction):
            raise TypeError("system transactions can only be counted on full blocks")
        if tx.is_system_transaction:
            count += 1
    return count


def adjust_log(log: Log, receipts: Sequence[Receipt] | None) -> Log | None:
    """Shift a log's indices past the block's system transactions.

    Returns None for logs emitted by system transactions, for logs missing
    their position fields and when the block's receipts are unknown.
    """
    if log.transaction_index is None or log.log_index is None:
        return None
    if log.block_number is None or receipts is None:
        return None

    system = [receipt for receipt in receipts if receipt.is_system]
    sys_tx_count = len(system)
    sys_log_count = sum(len(receipt.logs) for receipt in system)

    if sys_tx_count > log.transaction_index:
        return None
    return dataclasses.replace(
        log,
        transaction_index=log.transaction_index - sys_tx_count,
        log_index=log.log_index - sys_log_count,
    )


def adjust_logs(logs: Iterable[Log], receipts_by_block: ReceiptSource) -> list[Log]:
    """Adjust every log, dropping those that belong to system transactions.

    ``receipts_by_block`` maps a block number to that block's receipts, either
    as a mapping or as a callable returning None for unknown blocks.
    """
    if callable(receipts_by_block):
        lookup = receipts_by_block
    else:
        mapping = receipts_by_block
        lookup = mapping.get

    cache: dict[int, Sequence[Receipt] | None] = {}
    adjusted = []
    for log in logs:
        receipts = None
        if log.block_number is not None:
            if log.block_number not in cache:
                cache[log.block_number] = lookup(log.block_number)
            receipts = cache[log.block_number]
        result = adjust_log(log, receipts)
        if result is not None:
            adjusted.append(result)
    return adjusted


def adjust_block(block: Block, full: bool) -> Block:
    """Return the block without its leading system transactions.

    With ``full`` the remaining transactions keep their bodies and have their
    indices shifted; otherwise only their hashes are kept.
    """
    count = system_tx_count(block)
    remaining = [tx for tx in block.transactions[count:] if isinstance(tx, Transaction)]
    if full:
        transactions: tuple[Union[Transaction, bytes], ...] = tuple(
            tx
            if tx.transaction_index is None
            else dataclasses.replace(tx, transaction_index=tx.transaction_index - count)
            for tx in remaining
        )
    else:
        transactions = tuple(tx.hash for tx in remaining)
    return dataclasses.replace(block, transactions=transactions)


def adjust_transaction_count(count: int | None, block: Block) -> int | None:
    """Subtract the block's system transactions from a transaction count."""
    if count is None:
        return None
    return count - system_tx_count(block)