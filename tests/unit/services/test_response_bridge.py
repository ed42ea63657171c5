import asyncio
import json
import logging

import httpx
import pytest
from ajax_bridge.client import AjaxClient
from ajax_bridge.core.common.exceptions import (
    BodyDecodeError,
    HTTPStatusError,
    RequestAbortedError,
)
from ajax_bridge.core.config.app_config import BridgeConfig
from ajax_bridge.core.domain.body import BodyKind, DecodedBody
from ajax_bridge.core.services.response_bridge import (
    AbortableResponseHandle,
    BridgedResponse,
    HandleState,
)

from tests.mocks.fake_transport import FakeFetchResponse, FakeTransport

URL = "http://a.com/foo"


def json_response(payload, status: int = 200, **kwargs) -> FakeFetchResponse:
    return FakeFetchResponse(
        status,
        json.dumps(payload),
        headers={"content-type": "application/json", "x-request-id": "r-1"},
        **kwargs,
    )


async def wait_until(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition was never met")


@pytest.mark.asyncio
async def test_resolves_with_decoded_body_and_exposes_metadata() -> None:
    transport = FakeTransport(json_response({"test": 111}))
    handle = AjaxClient(transport=transport).ajax({"url": URL})

    assert await handle == {"test": 111}
    assert handle.state is HandleState.RESOLVED
    assert handle.status == 200
    assert handle.status_text == "OK"
    assert handle.get_response_header("X-Request-ID") == "r-1"
    assert handle.get_response_header("missing") is None
    assert transport.response.closed


@pytest.mark.asyncio
async def test_metadata_is_available_before_body_is_decoded() -> None:
    gate = asyncio.Event()
    response = json_response({"ok": True}, body_gate=gate)
    handle = AjaxClient(transport=FakeTransport(response)).ajax({"url": URL})

    assert handle.status is None
    assert handle.get_response_header("content-type") is None

    await wait_until(lambda: handle.state is HandleState.HEADERS_RECEIVED)
    assert handle.status == 200
    assert handle.get_response_header("content-type") == "application/json"
    assert not handle.done()

    gate.set()
    assert await handle == {"ok": True}


@pytest.mark.asyncio
async def test_success_callback_runs_before_handle_settles() -> None:
    events: list[tuple[str, object]] = []
    handle = None

    def on_success(value):
        events.append(("success", value))
        assert not handle.done()

    handle = AjaxClient(transport=FakeTransport(json_response([1]))).ajax(
        {"url": URL, "success": on_success}
    )
    handle.add_done_callback(lambda h: events.append(("settled", h.result())))

    await handle
    await asyncio.sleep(0)

    assert events == [("success", [1]), ("settled", [1])]


@pytest.mark.asyncio
async def test_async_callbacks_are_awaited() -> None:
    seen = []

    async def on_success(value):
        await asyncio.sleep(0)
        seen.append(value)

    handle = AjaxClient(transport=FakeTransport(json_response("x"))).ajax(
        {"url": URL, "success": on_success}
    )

    await handle
    assert seen == ["x"]


@pytest.mark.asyncio
async def test_http_failure_carries_decoded_error_body() -> None:
    received = []
    transport = FakeTransport(json_response({"error": "nope"}, status=404))
    handle = AjaxClient(transport=transport).ajax(
        {"url": URL, "error": lambda resp, text: received.append((resp, text))}
    )

    with pytest.raises(HTTPStatusError) as exc_info:
        await handle

    error = exc_info.value
    assert error.status_code == 404
    assert error.status_text == "Not Found"
    assert error.response.response_json == {"error": "nope"}
    assert received == [(error.response, "Not Found")]
    assert handle.state is HandleState.REJECTED


@pytest.mark.asyncio
async def test_failing_callback_does_not_change_outcome(caplog) -> None:
    def on_success(value):
        raise RuntimeError("boom")

    handle = AjaxClient(transport=FakeTransport(json_response({"a": 1}))).ajax(
        {"url": URL, "success": on_success}
    )

    with caplog.at_level(logging.WARNING):
        assert await handle == {"a": 1}
    assert "raised while settling" in caplog.text


@pytest.mark.asyncio
async def test_decode_failure_on_success_status() -> None:
    received = []
    response = FakeFetchResponse(
        200, "test", headers={"content-type": "application/json"}
    )
    handle = AjaxClient(transport=FakeTransport(response)).ajax(
        {"url": URL, "error": lambda resp, text: received.append((resp, text))}
    )

    with pytest.raises(BodyDecodeError) as exc_info:
        await handle

    assert exc_info.value.response is handle.response
    assert exc_info.value.response.body is None
    assert received == [(handle.response, "OK")]
    assert response.closed


@pytest.mark.asyncio
async def test_transport_failure_propagates_unchanged() -> None:
    received = []
    failure = httpx.ConnectError("connection refused")
    handle = AjaxClient(transport=FakeTransport(error=failure)).ajax(
        {"url": URL, "error": lambda err, text: received.append((err, text))}
    )

    with pytest.raises(httpx.ConnectError) as exc_info:
        await handle

    assert exc_info.value is failure
    assert received == [(failure, "error")]
    assert handle.status is None


@pytest.mark.asyncio
async def test_abort_before_settlement_rejects_with_cancellation() -> None:
    received = []
    gate = asyncio.Event()
    handle = AjaxClient(transport=FakeTransport(json_response({}), gate=gate)).ajax(
        {"url": URL, "error": lambda err, text: received.append((err, text))}
    )
    assert isinstance(handle, AbortableResponseHandle)

    await asyncio.sleep(0)
    handle.abort()

    with pytest.raises(RequestAbortedError) as exc_info:
        await handle

    error = exc_info.value
    assert error.kind == "aborted"
    assert error.status_code is None
    assert received == [(error, "abort")]


@pytest.mark.asyncio
async def test_abort_is_honoured_when_transport_ignores_signal() -> None:
    gate = asyncio.Event()
    transport = FakeTransport(json_response({}), gate=gate, honour_signal=False)
    handle = AjaxClient(transport=transport).ajax({"url": URL})

    await asyncio.sleep(0)
    handle.abort("user navigated away")
    gate.set()

    with pytest.raises(RequestAbortedError) as exc_info:
        await handle
    assert exc_info.value.reason == "user navigated away"
    assert transport.response.closed


@pytest.mark.asyncio
async def test_abort_after_settlement_is_a_noop() -> None:
    handle = AjaxClient(transport=FakeTransport(json_response({"a": 1}))).ajax(
        {"url": URL}
    )
    await handle

    handle.abort()

    assert handle.result() == {"a": 1}
    assert handle.state is HandleState.RESOLVED


@pytest.mark.asyncio
async def test_no_abort_without_cancellation_support() -> None:
    transport = FakeTransport(json_response({}), supports_cancellation=False)
    handle = AjaxClient(transport=transport).ajax({"url": URL})

    assert not hasattr(handle, "abort")
    await handle
    assert transport.calls[0].signal is None


@pytest.mark.asyncio
async def test_abort_disabled_by_config() -> None:
    client = AjaxClient(BridgeConfig(enable_abort=False), transport=FakeTransport())
    handle = client.ajax({"url": URL, "headers": {"Accept": "text/plain"}})

    assert not hasattr(handle, "abort")
    assert await handle == ""


@pytest.mark.asyncio
async def test_caller_signal_aborts_the_call() -> None:
    from ajax_bridge.core.services.abort import AbortController

    callers = AbortController()
    gate = asyncio.Event()
    handle = AjaxClient(transport=FakeTransport(json_response({}), gate=gate)).ajax(
        {"url": URL, "signal": callers.signal}
    )

    await asyncio.sleep(0)
    callers.abort()

    with pytest.raises(RequestAbortedError):
        await handle


@pytest.mark.asyncio
async def test_no_content_resolves_to_empty_string() -> None:
    response = FakeFetchResponse(204, headers={"content-type": "application/json"})
    handle = AjaxClient(transport=FakeTransport(response)).ajax({"url": URL})

    assert await handle == ""
    assert handle.response.body.kind is BodyKind.EMPTY


def test_bridged_body_is_write_once() -> None:
    bridged = BridgedResponse(200, "OK", httpx.Headers())
    bridged.set_body(DecodedBody(BodyKind.TEXT, "hi"))

    with pytest.raises(RuntimeError):
        bridged.set_body(DecodedBody(BodyKind.TEXT, "again"))
    assert bridged.value == "hi"
    assert bridged.response_text == "hi"
    assert bridged.response_json is None


def test_bridged_legacy_views() -> None:
    bridged = BridgedResponse(200, "OK", httpx.Headers())
    assert bridged.value == ""

    bridged.set_body(DecodedBody(BodyKind.JSON, {"a": 1}))
    assert bridged.response_json == {"a": 1}
    assert bridged.response_text == '{"a": 1}'
    assert bridged.response is None


@pytest.mark.asyncio
async def test_settled_calls_detach_from_shared_caller_signal() -> None:
    from ajax_bridge.core.services.abort import AbortController

    shared = AbortController()
    client = AjaxClient(transport=FakeTransport())

    for _ in range(50):
        await client.ajax(
            {"url": URL, "signal": shared.signal, "headers": {"Accept": "text/plain"}}
        )

    assert shared.signal._listeners == []
    assert not shared.signal.aborted


@pytest.mark.asyncio
async def test_rejected_call_detaches_from_caller_signal() -> None:
    from ajax_bridge.core.services.abort import AbortController

    shared = AbortController()
    handle = AjaxClient(transport=FakeTransport(json_response({}, status=500))).ajax(
        {"url": URL, "signal": shared.signal}
    )

    with pytest.raises(HTTPStatusError):
        await handle

    assert shared.signal._listeners == []
