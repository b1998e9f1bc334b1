# hlnode

A library of building blocks for a HyperEVM node front end. It covers the chain
specifications, the canonical-head rule, the mainnet `BLOCKHASH` quirk, JSON-RPC
forwarding to an upstream node, and the rewriting that makes block, log and
receipt responses match those of hl-node.

## Installation

```
pip install .
pip install ".[test]"   # adds pytest, pytest-asyncio and respx for the test suite
```

## Modules

| Module | Purpose |
| --- | --- |
| `hlnode.chainspec` | Hardfork schedule, the empty genesis header, `ChainSpec`, `HlChainSpec` and `chain_value_parser` for `"mainnet"` / `"testnet"` |
| `hlnode.consensus` | `HlConsensus.canonical_head`: follow the highest block; at equal height take the lower hash |
| `hlnode.evm` | `SpecId`, `HlSpecId`, and the placeholder `BLOCKHASH` rule used on mainnet before block 243,538 |
| `hlnode.forwarders` | `JsonRpcClient`, `EthForwarder` and `CallForwarder`, which send transactions, calls and gas estimates to an upstream JSON-RPC endpoint |
| `hlnode.compliance` | `Block`, `Transaction`, `Receipt`, `Log`, and functions that drop system transactions from blocks, logs and transaction counts |
| `hlnode.receipts` | `ReceiptView`, system-transaction lookups, and receipts with system transactions left out |

## Chain specifications

```python
from hlnode.chainspec import chain_value_parser, EthereumHardfork

spec = chain_value_parser("mainnet")
print(spec.chain_id)                    # 999
print(spec.official_rpc_url())          # https://rpc.hyperliquid.xyz/evm
print(spec.official_s3_bucket())        # hl-mainnet-evm-blocks
print(spec.fork(EthereumHardfork.CANCUN))   # TimestampFork(timestamp=0)
```

Only `"mainnet"` (chain id 999) and `"testnet"` (chain id 998) are accepted. Any
other name raises `UnsupportedChainError`, a `ValueError`. `official_rpc_url` and
`official_s3_bucket` raise the same error for any other chain id.

Every Ethereum fork from Frontier to Cancun is active from the start. Frontier
through London are `BlockFork(0)`, Paris is a `TtdFork` at block 0 with zero
difficulty, and Shanghai and Cancun are `TimestampFork(0)`. `ChainSpec.fork`
returns `None` for a fork that is not in the schedule, such as Prague.

All specs share the known genesis hash and an empty genesis `Header`. The
genesis document is not bundled. `hl_mainnet(genesis)`, `hl_testnet(genesis)`
and `hl_chainspec(chain_id, genesis)` take it as a JSON string or a dict; with
no document the spec's `genesis` is an empty dict. Text that is not a JSON
object raises `ValueError`.

## Choosing the canonical head

`HlConsensus` wraps a provider object that answers `best_block_number()` and
`block_hash(number)`. `canonical_head(block_hash, number)` returns a pair: the
hash that should become head, and the current head's hash.

- A block higher than the current head wins.
- A block lower than the current head loses, and the current head stays.
- At equal height the lower of the two hashes wins.

If the provider has no hash for its own best block, `HeadHashNotFoundError` is
raised. It is a subclass of `HlConsensusError`. Errors raised by the provider
pass through unchanged.

## The mainnet BLOCKHASH placeholder

On mainnet before block 243,538, `BLOCKHASH` for any of the last 256 blocks gives
the keccak-256 of the block number written in decimal, not the real hash:

```python
from hlnode.evm import uses_placeholder_blockhash, blockhash_returning_placeholder

if uses_placeholder_blockhash(999, 1000):
    word = blockhash_returning_placeholder(1000, 999)   # int, big-endian hash
```

A request for the current block or a future block gives zero, and so does one
for a block more than 256 blocks back. Arguments that do not fit in 256 unsigned
bits raise `ValueError`. `placeholder_block_hash(number)` returns the hash as
bytes. `HlSpecId.V1.into_eth_spec()` is `SpecId.CANCUN`.

## Forwarding to an upstream node

All forwarders are asynchronous. Each takes either an upstream URL or a
`JsonRpcClient`. `JsonRpcClient(url)` rejects anything that is not an http or
https URL with a host. Its `request(method, params)` raises `RpcError` when the
upstream answers with an error object.

```python
from hlnode.forwarders import EthForwarder

forwarder = EthForwarder("https://rpc.hyperliquid.xyz/evm")
tx_hash = await forwarder.send_raw_transaction(signed_tx_bytes)
receipt = await forwarder.send_raw_transaction_sync(signed_tx_bytes)
await forwarder.aclose()
```

- `send_raw_transaction` forwards `eth_sendRawTransaction` and returns the hash
  as bytes.
- `send_raw_transaction_sync` then polls `eth_getTransactionReceipt`, by default
  once a second. It raises `TransactionConfirmationTimeout` after 30 seconds.
  Both times are set with `poll_interval` and `confirmation_timeout`.
- `send_transaction` always raises `RpcError` with the message
  `"Unimplemented"`.

`CallForwarder(upstream, eth_api)` sends `eth_call` and `eth_estimateGas`
upstream when the block id is missing or `latest`; `is_latest(block_id)` tells
which case applies. Any other block is answered by the local `eth_api`, which
must provide async `call` and `estimate_gas_at` methods. `call` returns bytes
and `estimate_gas` returns an int.

Upstream error objects come back as `RpcError` with the upstream code, message
and data. Transport failures and local errors become `RpcError` with code
`-32603` and a message such as `"Failed to call: ..."`.

## hl-node compatible responses

System transactions sit at the start of a block. In a block they are the
transactions with a zero gas price, and their receipts have a cumulative gas
used of zero. `hlnode.compliance` hides them:

- `system_tx_count(block)` counts them. It needs a block with full
  transactions; a block holding only hashes raises `TypeError`.
- `adjust_log(log, receipts)` shifts a log's transaction and log indices past
  them. It returns `None` when the log belongs to a system transaction, lacks
  its position fields, or the block's receipts are unknown.
- `adjust_logs(logs, receipts_by_block)` does the same for a batch. Receipts
  come from a mapping or a callable keyed by block number.
- `adjust_block(block, full)` removes them from a full block. With `full` the
  remaining transactions are kept with shifted indices; without it only their
  hashes are kept.
- `adjust_transaction_count(count, block)` subtracts them from a count and
  passes `None` through.

`hlnode.receipts` builds `ReceiptView` objects:

- `system_transactions(block)` returns the system transactions at their real
  positions.
- `system_transaction_receipts(block, receipts)` returns the receipts of the
  leading zero-gas transactions.
- `user_transaction_receipts(block, receipts)` returns the other receipts,
  renumbered as if the system transactions were absent. Their log indices are
  renumbered the same way.
- `adjust_transaction_receipt(block, receipts, tx_hash)` returns the renumbered
  receipt of one user transaction. It returns `None` if the hash is not in the
  block and raises `ValueError` for a system transaction.

## What this package does not do

It is a library, not a node. It has no command line, no JSON-RPC or WebSocket
server, no block storage or sync, and no EVM execution beyond the `BLOCKHASH`
rule above. The compliance and receipt functions work on block, transaction and
receipt objects you supply. Serving them over RPC, and reading blocks and
receipts from a store, is left to the application that uses them.

## Tests

```
pytest
```