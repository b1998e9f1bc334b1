"""Head selection rules for the Hyperliquid EVM chain."""

from __future__ import annotations

from typing import Protocol


class HlConsensusError(Exception):
    """Base error for consensus decisions."""


class HeadHashNotFoundError(HlConsensusError):
    """The provider knows the head block number but not its hash."""

    def __init__(self) -> None:
        super().__init__("Head block hash not found")


class BlockNumberReader(Protocol):
    """What the consensus rules need to read from the chain store."""

    def best_block_number(self) -> int: ...

    def block_hash(self, number: int) -> bytes | None: ...


class HlConsensus:
    """Picks the canonical head from a provider's view of the chain."""

    def __init__(self, provider: BlockNumberReader) -> None:
        self.provider = provider

    def canonical_head(self, block_hash: bytes, number: int) -> tuple[bytes, bytes]:
        """Return ``(head_hash, current_head_hash)`` for a newly seen block.

        The highest block number wins; at equal height the lower hash wins.
        Errors raised by the provider propagate unchanged.
        """
        current_head = self.provider.best_block_number()
        current_hash = self.provider.block_hash(current_head)
        if current_hash is None:
            raise HeadHashNotFoundError()

        if number > current_head:
            return block_hash, current_hash
        if number == current_head:
            return min(block_hash, current_hash), current_hash
        return current_hash, current_hash