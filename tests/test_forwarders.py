import json

import httpx
import pytest
import respx

from hlnode.forwarders import (
    INTERNAL_ERROR_CODE,
    CallForwarder,
    EthForwarder,
    JsonRpcClient,
    RpcError,
    TransactionConfirmationTimeout,
    is_latest,
)

URL = "http://upstream.example.com/evm"
TX_HASH = bytes([0xAB]) * 32
RAW_TX = bytes([0x02, 0xF8, 0x01])


def _rpc(handler, calls=None):
    def side_effect(request):
        body = json.loads(request.content)
        if calls is not None:
            calls.append((body["method"], body["params"]))
        outcome = handler(body["method"], body["params"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **outcome})

    return side_effect


class FakeEthApi:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    async def call(self, request, block_id, state_overrides, block_overrides):
        self.calls.append(("call", request, block_id, state_overrides, block_overrides))
        if self.fail:
            raise RuntimeError("state unavailable")
        return b"\x01\x02"

    async def estimate_gas_at(self, request, block_id, state_override):
        self.calls.append(("estimate", request, block_id, state_override))
        if self.fail:
            raise RuntimeError("state unavailable")
        return 12345


@pytest.mark.parametrize(
    "block_id, expected",
    [
        (None, True),
        ("latest", True),
        ({"blockNumber": "latest"}, True),
        ("pending", False),
        ("0x10", False),
        ({"blockHash": "0x" + TX_HASH.hex()}, False),
    ],
)
def test_is_latest(block_id, expected):
    assert is_latest(block_id) is expected


def test_client_rejects_invalid_url():
    with pytest.raises(ValueError):
        JsonRpcClient("not a url")


@pytest.mark.asyncio
async def test_send_raw_transaction_forwards_hex():
    calls = []
    with respx.mock:
        respx.post(URL).mock(
            side_effect=_rpc(lambda m, p: {"result": "0x" + TX_HASH.hex()}, calls)
        )
        forwarder = EthForwarder(URL)
        result = await forwarder.send_raw_transaction(RAW_TX)
        await forwarder.aclose()
    assert result == TX_HASH
    assert calls == [("eth_sendRawTransaction", ["0x" + RAW_TX.hex()])]


@pytest.mark.asyncio
async def test_upstream_error_passes_through():
    error = {"code": 3, "message": "execution reverted", "data": "0x"}
    with respx.mock:
        respx.post(URL).mock(side_effect=_rpc(lambda m, p: {"error": error}))
        forwarder = EthForwarder(URL)
        with pytest.raises(RpcError) as info:
            await forwarder.send_raw_transaction(RAW_TX)
        await forwarder.aclose()
    assert info.value.code == 3
    assert info.value.message == "execution reverted"
    assert info.value.data == "0x"


@pytest.mark.asyncio
async def test_transport_error_is_wrapped():
    with respx.mock:
        respx.post(URL).mock(side_effect=httpx.ConnectError("refused"))
        forwarder = EthForwarder(URL)
        with pytest.raises(RpcError) as info:
            await forwarder.send_raw_transaction(RAW_TX)
        await forwarder.aclose()
    assert info.value.code == INTERNAL_ERROR_CODE
    assert info.value.message.startswith("Failed to send transaction: ")


@pytest.mark.asyncio
async def test_send_transaction_is_unimplemented():
    forwarder = EthForwarder(URL)
    with pytest.raises(RpcError) as info:
        await forwarder.send_transaction({"to": "0x" + "00" * 20})
    await forwarder.aclose()
    assert info.value.message == "Unimplemented"
    assert info.value.code == INTERNAL_ERROR_CODE


@pytest.mark.asyncio
async def test_send_raw_transaction_sync_polls_until_receipt():
    receipt = {"transactionHash": "0x" + TX_HASH.hex(), "status": "0x1"}
    polls = []

    def handler(method, params):
        if method == "eth_sendRawTransaction":
            return {"result": "0x" + TX_HASH.hex()}
        polls.append(params)
        return {"result": receipt if len(polls) >= 3 else None}

    with respx.mock:
        respx.post(URL).mock(side_effect=_rpc(handler))
        forwarder = EthForwarder(URL, poll_interval=0.001)
        result = await forwarder.send_raw_transaction_sync(RAW_TX)
        await forwarder.aclose()
    assert result == receipt
    assert len(polls) == 3
    assert all(p == ["0x" + TX_HASH.hex()] for p in polls)


@pytest.mark.asyncio
async def test_send_raw_transaction_sync_times_out():
    def handler(method, params):
        if method == "eth_sendRawTransaction":
            return {"result": "0x" + TX_HASH.hex()}
        return {"result": None}

    with respx.mock:
        respx.post(URL).mock(side_effect=_rpc(handler))
        forwarder = EthForwarder(URL, confirmation_timeout=0.05, poll_interval=0.005)
        with pytest.raises(TransactionConfirmationTimeout) as info:
            await forwarder.send_raw_transaction_sync(RAW_TX)
        await forwarder.aclose()
    assert info.value.tx_hash == TX_HASH
    assert info.value.duration == 0.05


@pytest.mark.asyncio
async def test_call_latest_goes_upstream():
    calls = []
    request = {"to": "0x" + "11" * 20, "data": "0x"}
    eth_api = FakeEthApi()
    with respx.mock:
        respx.post(URL).mock(side_effect=_rpc(lambda m, p: {"result": "0xbeef"}, calls))
        forwarder = CallForwarder(URL, eth_api)
        result = await forwarder.call(request)
        await forwarder.aclose()
    assert result == bytes.fromhex("beef")
    assert calls == [("eth_call", [request, None, None, None])]
    assert eth_api.calls == []


@pytest.mark.asyncio
async def test_call_historical_runs_locally():
    request = {"to": "0x" + "11" * 20}
    eth_api = FakeEthApi()
    with respx.mock:
        route = respx.post(URL).mock(side_effect=_rpc(lambda m, p: {"result": "0x"}))
        forwarder = CallForwarder(URL, eth_api)
        result = await forwarder.call(request, "0x10", {"a": 1}, {"b": 2})
        await forwarder.aclose()
    assert result == b"\x01\x02"
    assert not route.called
    assert eth_api.calls == [("call", request, "0x10", {"a": 1}, {"b": 2})]


@pytest.mark.asyncio
async def test_call_local_error_is_wrapped():
    forwarder = CallForwarder(URL, FakeEthApi(fail=True))
    with pytest.raises(RpcError) as info:
        await forwarder.call({}, "0x10")
    await forwarder.aclose()
    assert info.value.code == INTERNAL_ERROR_CODE
    assert info.value.message.startswith("Failed to call: ")


@pytest.mark.asyncio
async def test_estimate_gas_latest_goes_upstream():
    calls = []
    request = {"to": "0x" + "22" * 20}
    with respx.mock:
        respx.post(URL).mock(side_effect=_rpc(lambda m, p: {"result": "0x5208"}, calls))
        forwarder = CallForwarder(URL, FakeEthApi())
        result = await forwarder.estimate_gas(request, "latest")
        await forwarder.aclose()
    assert result == 21000
    assert calls == [("eth_estimateGas", [request, "latest", None])]


@pytest.mark.asyncio
async def test_estimate_gas_historical_runs_locally():
    eth_api = FakeEthApi()
    forwarder = CallForwarder(URL, eth_api)
    result = await forwarder.estimate_gas({}, {"blockNumber": "0x5"})
    await forwarder.aclose()
    assert result == 12345
    assert eth_api.calls == [("estimate", {}, {"blockNumber": "0x5"}, None)]


@pytest.mark.asyncio
async def test_estimate_gas_local_error_is_wrapped():
    forwarder = CallForwarder(URL, FakeEthApi(fail=True))
    with pytest.raises(RpcError) as info:
        await forwarder.estimate_gas({}, "0x1")
    await forwarder.aclose()
    assert info.value.message.startswith("Failed to estimate gas: ")