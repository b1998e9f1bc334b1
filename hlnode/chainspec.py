"""Chain specifications and hardfork schedule for the Hyperliquid EVM."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Union

MAINNET_CHAIN_ID = 999
TESTNET_CHAIN_ID = 998

# Chains accepted by the parser; the first one is the default.
SUPPORTED_CHAINS = ("mainnet", "testnet")

GENESIS_HASH = bytes.fromhex(
    "d8fcc13b6a195b88b7b2da3722ff6cad767b13a8c1e9ffb1c73aa9d216d895f0"
)

_ZERO_HASH = bytes(32)


class EthereumHardfork(enum.Enum):
    """Ethereum mainnet hardforks."""

    FRONTIER = "Frontier"
    HOMESTEAD = "Homestead"
    DAO = "Dao"
    TANGERINE = "Tangerine"
    SPURIOUS_DRAGON = "SpuriousDragon"
    BYZANTIUM = "Byzantium"
    CONSTANTINOPLE = "Constantinople"
    PETERSBURG = "Petersburg"
    ISTANBUL = "Istanbul"
    MUIR_GLACIER = "MuirGlacier"
    BERLIN = "Berlin"
    LONDON = "London"
    ARROW_GLACIER = "ArrowGlacier"
    GRAY_GLACIER = "GrayGlacier"
    PARIS = "Paris"
    SHANGHAI = "Shanghai"
    CANCUN = "Cancun"
    PRAGUE = "Prague"
    OSAKA = "Osaka"


class HlHardfork(enum.Enum):
    """Hyperliquid EVM hardforks; these are unnamed EVM bug-fix releases."""

    V1 = "V1"


@dataclass(frozen=True)
class BlockFork:
    """Fork activated at a block number."""

    block: int


@dataclass(frozen=True)
class TimestampFork:
    """Fork activated at a block timestamp."""

    timestamp: int


@dataclass(frozen=True)
class TtdFork:
    """Fork activated by total terminal difficulty."""

    activation_block_number: int
    total_difficulty: int
    fork_block: int | None = None


ForkCondition = Union[BlockFork, TimestampFork, TtdFork]

HL_HARDFORKS: tuple[tuple[EthereumHardfork, ForkCondition], ...] = (
    (EthereumHardfork.FRONTIER, BlockFork(0)),
    (EthereumHardfork.HOMESTEAD, BlockFork(0)),
    (EthereumHardfork.DAO, BlockFork(0)),
    (EthereumHardfork.TANGERINE, BlockFork(0)),
    (EthereumHardfork.SPURIOUS_DRAGON, BlockFork(0)),
    (EthereumHardfork.BYZANTIUM, BlockFork(0)),
    (EthereumHardfork.CONSTANTINOPLE, BlockFork(0)),
    (EthereumHardfork.PETERSBURG, BlockFork(0)),
    (EthereumHardfork.ISTANBUL, BlockFork(0)),
    (EthereumHardfork.BERLIN, BlockFork(0)),
    (EthereumHardfork.LONDON, BlockFork(0)),
    (
        EthereumHardfork.PARIS,
        TtdFork(activation_block_number=0, total_difficulty=0, fork_block=None),
    ),
    (EthereumHardfork.SHANGHAI, TimestampFork(0)),
    (EthereumHardfork.CANCUN, TimestampFork(0)),
)


@dataclass(frozen=True)
class Header:
    """Block header fields needed for the genesis header."""

    parent_hash: bytes = _ZERO_HASH
    number: int = 0
    timestamp: int = 0
    transactions_root: bytes = _ZERO_HASH
    receipts_root: bytes = _ZERO_HASH
    state_root: bytes = _ZERO_HASH
    gas_used: int = 0
    gas_limit: int = 0x1C9C380
    difficulty: int = 0
    mix_hash: bytes = _ZERO_HASH
    extra_data: bytes = b""
    nonce: bytes = bytes(8)
    ommers_hash: bytes = _ZERO_HASH
    beneficiary: bytes = bytes(20)
    logs_bloom: bytes = bytes(256)
    base_fee_per_gas: int | None = 0
    withdrawals_root: bytes | None = _ZERO_HASH
    blob_gas_used: int | None = 0
    excess_blob_gas: int | None = 0
    parent_beacon_block_root: bytes | None = _ZERO_HASH
    requests_hash: bytes | None = _ZERO_HASH


@dataclass
class ChainSpec:
    """Generic chain specification."""

    chain_id: int
    genesis: dict[str, Any] = field(default_factory=dict)
    genesis_header: Header = field(default_factory=Header)
    genesis_hash: bytes = _ZERO_HASH
    paris_block_and_final_difficulty: tuple[int, int] | None = None
    hardforks: tuple[tuple[Any, ForkCondition], ...] = ()
    prune_delete_limit: int = 10000

    def fork(self, hardfork: Any) -> ForkCondition | None:
        """Return the activation condition of ``hardfork``, or None if never active."""
        for known, condition in self.hardforks:
            if known == hardfork:
                return condition
        return None

    @property
    def final_paris_total_difficulty(self) -> int | None:
        if self.paris_block_and_final_difficulty is None:
            return None
        return self.paris_block_and_final_difficulty[1]


class UnsupportedChainError(ValueError):
    """Raised for chain names or ids this node does not serve."""


@dataclass
class HlChainSpec:
    """Hyperliquid chain specification wrapping a generic one.

    Hyperliquid chains have no deposit contract.
    """

    MAINNET_RPC_URL = "https://rpc.hyperliquid.xyz/evm"
    TESTNET_RPC_URL = "https://rpc.hyperliquid-testnet.xyz/evm"

    inner: ChainSpec

    @property
    def chain_id(self) -> int:
        return self.inner.chain_id

    @property
    def genesis_hash(self) -> bytes:
        return self.inner.genesis_hash

    def fork(self, hardfork: Any) -> ForkCondition | None:
        return self.inner.fork(hardfork)

    def official_rpc_url(self) -> str:
        """Upstream RPC endpoint for this chain."""
        if self.chain_id == MAINNET_CHAIN_ID:
            return self.MAINNET_RPC_URL
        if self.chain_id == TESTNET_CHAIN_ID:
            return self.TESTNET_RPC_URL
        raise UnsupportedChainError(f"Unsupported chain id: {self.chain_id}")

    def official_s3_bucket(self) -> str:
        """S3 bucket holding this chain's EVM blocks."""
        if self.chain_id == MAINNET_CHAIN_ID:
            return "hl-mainnet-evm-blocks"
        if self.chain_id == TESTNET_CHAIN_ID:
            return "hl-testnet-evm-blocks"
        raise UnsupportedChainError(f"Unsupported chain id: {self.chain_id}")


def _load_genesis(genesis: str | dict[str, Any] | None) -> dict[str, Any]:
    if genesis is None:
        return {}
    if isinstance(genesis, dict):
        return dict(genesis)
    try:
        loaded = json.loads(genesis)
    except (TypeError, ValueError) as exc:
        raise ValueError("Can't deserialize Hyperliquid genesis json") from exc
    if not isinstance(loaded, dict):
        raise ValueError("Can't deserialize Hyperliquid genesis json")
    return loaded


def hl_chainspec(chain_id: int, genesis: str | dict[str, Any] | None) -> ChainSpec:
    """Build a Hyperliquid chain spec for ``chain_id`` from a genesis document."""
    return ChainSpec(
        chain_id=chain_id,
        genesis=_load_genesis(genesis),
        genesis_header=Header(),
        genesis_hash=GENESIS_HASH,
        paris_block_and_final_difficulty=(0, 0),
        hardforks=HL_HARDFORKS,
        prune_delete_limit=10000,
    )


def hl_mainnet(genesis: str | dict[str, Any] | None = None) -> ChainSpec:
    """Hyperliquid mainnet spec."""
    return hl_chainspec(MAINNET_CHAIN_ID, genesis)


def hl_testnet(genesis: str | dict[str, Any] | None = None) -> ChainSpec:
    """Hyperliquid testnet spec.

    Testnet syncs from a state snapshot, so the genesis allocation is unused
    and the mainnet genesis document can be reused.
    """
    return hl_chainspec(TESTNET_CHAIN_ID, genesis)


def chain_value_parser(name: str) -> HlChainSpec:
    """Parse a chain name given on the command line."""
    if name == "mainnet":
        return HlChainSpec(inner=hl_mainnet())
    if name == "testnet":
        return HlChainSpec(inner=hl_testnet())
    raise UnsupportedChainError(f"Unsupported chain: {name}")