"""HyperEVM node helpers: chain specs, head selection, the BLOCKHASH rule, RPC forwarding and hl-node compatible views."""

__version__ = "0.1.0"

__all__ = ["chainspec", "compliance", "consensus", "evm", "forwarders", "receipts"]