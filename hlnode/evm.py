"""EVM specification ids and the Hyperliquid BLOCKHASH patch."""

from __future__ import annotations

import enum

from Crypto.Hash import keccak

from hlnode.chainspec import MAINNET_CHAIN_ID

# Number of most recent blocks whose hash BLOCKHASH may return.
BLOCK_HASH_HISTORY = 256

# Mainnet blocks below this height see placeholder hashes from BLOCKHASH.
NON_PLACEHOLDER_BLOCK_HASH_HEIGHT = 243_538

_U64_MAX = (1 << 64) - 1
_U256_MAX = (1 << 256) - 1


class SpecId(enum.IntEnum):
    """Ethereum EVM specification ids, ordered by activation."""

    FRONTIER = 0
    FRONTIER_THAWING = 1
    HOMESTEAD = 2
    DAO_FORK = 3
    TANGERINE = 4
    SPURIOUS_DRAGON = 5
    BYZANTIUM = 6
    CONSTANTINOPLE = 7
    PETERSBURG = 8
    ISTANBUL = 9
    MUIR_GLACIER = 10
    BERLIN = 11
    LONDON = 12
    ARROW_GLACIER = 13
    GRAY_GLACIER = 14
    MERGE = 15
    SHANGHAI = 16
    CANCUN = 17
    PRAGUE = 18
    OSAKA = 19


class HlSpecId(enum.IntEnum):
    """Hyperliquid EVM specification ids."""

    V1 = 0

    @classmethod
    def default(cls) -> HlSpecId:
        """The spec id used when none is configured."""
        return cls.V1

    def into_eth_spec(self) -> SpecId:
        """The Ethereum spec id this Hyperliquid spec executes as."""
        if self is HlSpecId.V1:
            return SpecId.CANCUN
        raise ValueError(f"no Ethereum spec for {self!r}")


def _check_word(name: str, value: int) -> None:
    if not 0 <= value <= _U256_MAX:
        raise ValueError(f"{name} must fit in 256 unsigned bits, got {value}")


def _saturate_u64(value: int) -> int:
    return min(value, _U64_MAX)


def uses_placeholder_blockhash(chain_id: int, block_number: int) -> bool:
    """Whether BLOCKHASH must return placeholder hashes for this block."""
    return (
        chain_id == MAINNET_CHAIN_ID
        and block_number < NON_PLACEHOLDER_BLOCK_HASH_HEIGHT
    )


def placeholder_block_hash(number: int) -> bytes:
    """Keccak-256 of the decimal form of ``number`` saturated to 64 bits."""
    _check_word("number", number)
    digest = keccak.new(digest_bits=256)
    digest.update(str(_saturate_u64(number)).encode("ascii"))
    return digest.digest()


def blockhash_returning_placeholder(block_number: int, requested_number: int) -> int:
    """Result word of the patched BLOCKHASH instruction.

    Zero for the current block, future blocks and blocks older than the
    hash history; otherwise the placeholder hash as a big-endian word.
    """
    _check_word("block_number", block_number)
    _check_word("requested_number", requested_number)

    if requested_number > block_number:
        return 0
    diff = _saturate_u64(block_number - requested_number)
    if diff == 0:
        return 0
    if diff <= BLOCK_HASH_HISTORY:
        return int.from_bytes(placeholder_block_hash(requested_number), "big")
    return 0