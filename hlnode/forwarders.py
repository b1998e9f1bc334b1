"""Forward transaction submission and calls to an upstream JSON-RPC node."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Protocol, Sequence

import httpx

INTERNAL_ERROR_CODE = -32603


class RpcError(Exception):
    """A JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class TransactionConfirmationTimeout(RpcError):
    """A submitted transaction had no receipt within the allowed time."""

    def __init__(self, tx_hash: bytes, duration: float) -> None:
        self.tx_hash = tx_hash
        self.duration = duration
        super().__init__(
            INTERNAL_ERROR_CODE,
            f"Transaction 0x{tx_hash.hex()} was added to the mempool "
            f"but wasn't confirmed within {duration}s.",
        )


def _to_hex(value: bytes | str) -> str:
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    return "0x" + bytes(value).hex()


def _from_hex(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        text = value[2:] if value.startswith(("0x", "0X")) else value
        if len(text) % 2:
            text = "0" + text
        return bytes.fromhex(text)
    raise ValueError(f"expected hex data, got {value!r}")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected a quantity, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith(("0x", "0X")) else int(value)
    raise ValueError(f"expected a quantity, got {value!r}")


class JsonRpcClient:
    """Minimal asynchronous JSON-RPC 2.0 client over HTTP."""

    def __init__(
        self,
        url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        parsed = httpx.URL(url)
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ValueError(f"invalid upstream RPC url: {url!r}")
        self.url = url
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def request(self, method: str, params: Sequence[Any] = ()) -> Any:
        """Call ``method`` and return its result; error objects raise RpcError."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params),
        }
        response = await self._http.post(self.url, json=payload)
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise ValueError("malformed JSON-RPC response")
        error = body.get("error")
        if error is not None:
            raise RpcError(
                int(error.get("code", INTERNAL_ERROR_CODE)),
                str(error.get("message", "")),
                error.get("data"),
            )
        if "result" not in body:
            raise ValueError("JSON-RPC response carries neither result nor error")
        return body["result"]

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> JsonRpcClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _client_for(upstream: str | JsonRpcClient) -> JsonRpcClient:
    return upstream if isinstance(upstream, JsonRpcClient) else JsonRpcClient(upstream)


async def _forward(
    client: JsonRpcClient, method: str, params: Sequence[Any], prefix: str
) -> Any:
    """Forward a request; upstream error objects pass through unchanged."""
    try:
        return await client.request(method, params)
    except RpcError:
        raise
    except Exception as exc:
        raise RpcError(INTERNAL_ERROR_CODE, f"{prefix}: {exc!r}") from exc


def is_latest(block_id: Any) -> bool:
    """Whether a block id refers to the latest block; a missing id does."""
    if block_id is None:
        return True
    if isinstance(block_id, str):
        return block_id == "latest"
    if isinstance(block_id, dict):
        return block_id.get("blockNumber") == "latest" and "blockHash" not in block_id
    return False


class EthForwarder:
    """Sends transactions to the upstream node instead of a local pool."""

    def __init__(
        self,
        upstream: str | JsonRpcClient,
        *,
        confirmation_timeout: float = 30.0,
        poll_interval: float = 1.0,
    ) -> None:
        self.client = _client_for(upstream)
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval

    async def send_raw_transaction(self, tx: bytes | str) -> bytes:
        """Submit a signed transaction upstream and return its hash."""
        result = await _forward(
            self.client,
            "eth_sendRawTransaction",
            [_to_hex(tx)],
            "Failed to send transaction",
        )
        return _from_hex(result)

    async def send_transaction(self, tx: dict[str, Any]) -> bytes:
        """Unsigned transactions are not accepted."""
        raise RpcError(INTERNAL_ERROR_CODE, "Unimplemented")

    async def send_raw_transaction_sync(self, tx: bytes | str) -> dict[str, Any]:
        """Submit a transaction and wait for its receipt."""
        tx_hash = await self.send_raw_transaction(tx)
        try:
            return await asyncio.wait_for(
                self._wait_for_receipt(tx_hash), self.confirmation_timeout
            )
        except asyncio.TimeoutError:
            raise TransactionConfirmationTimeout(
                tx_hash, self.confirmation_timeout
            ) from None

    async def _wait_for_receipt(self, tx_hash: bytes) -> dict[str, Any]:
        while True:
            receipt = await _forward(
                self.client,
                "eth_getTransactionReceipt",
                [_to_hex(tx_hash)],
                "Failed to get transaction receipt",
            )
            if receipt is not None:
                return receipt
            await asyncio.sleep(self.poll_interval)

    async def aclose(self) -> None:
        await self.client.aclose()


class LocalEthApi(Protocol):
    """Local execution used for calls against historical blocks."""

    async def call(
        self,
        request: dict[str, Any],
        block_id: Any,
        state_overrides: dict[str, Any] | None,
        block_overrides: dict[str, Any] | None,
    ) -> bytes | str: ...

    async def estimate_gas_at(
        self,
        request: dict[str, Any],
        block_id: Any,
        state_override: dict[str, Any] | None,
    ) -> int | str: ...


class CallForwarder:
    """Sends calls at the latest block upstream and older ones to the local node."""

    def __init__(self, upstream: str | JsonRpcClient, eth_api: LocalEthApi) -> None:
        self.client = _client_for(upstream)
        self.eth_api = eth_api

    async def call(
        self,
        request: dict[str, Any],
        block_id: Any = None,
        state_overrides: dict[str, Any] | None = None,
        block_overrides: dict[str, Any] | None = None,
    ) -> bytes:
        """Execute a message call without creating a transaction."""
        prefix = "Failed to call"
        if is_latest(block_id):
            result = await _forward(
                self.client,
                "eth_call",
                [request, block_id, state_overrides, block_overrides],
                prefix,
            )
        else:
            try:
                result = await self.eth_api.call(
                    request, block_id, state_overrides, block_overrides
                )
            except Exception as exc:
                raise RpcError(INTERNAL_ERROR_CODE, f"{prefix}: {exc!r}") from exc
        return _from_hex(result)

    async def estimate_gas(
        self,
        request: dict[str, Any],
        block_id: Any = None,
        state_override: dict[str, Any] | None = None,
    ) -> int:
        """Estimate the gas a transaction needs to complete."""
        prefix = "Failed to estimate gas"
        if is_latest(block_id):
            result = await _forward(
                self.client,
                "eth_estimateGas",
                [request, block_id, state_override],
                prefix,
            )
        else:
            try:
                result = await self.eth_api.estimate_gas_at(
                    request, block_id, state_override
                )
            except Exception as exc:
                raise RpcError(INTERNAL_ERROR_CODE, f"{prefix}: {exc!r}") from exc
        return _to_int(result)

    async def aclose(self) -> None:
        await self.client.aclose()