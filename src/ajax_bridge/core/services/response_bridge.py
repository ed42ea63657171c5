"""
Legacy request handle on top of an async fetch call.

``ResponseHandle`` is what ``ajax()`` returns. It can be awaited for the
decoded body, and it exposes the synchronous accessors of a legacy request
object (``status``, ``status_text``, ``get_response_header``) which fill in
as soon as the response headers arrive.

Settlement order: the caller's ``success``/``error`` callback runs first,
then the handle resolves or rejects. A failing callback is logged and does
not change the outcome.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

import httpx

from ajax_bridge.core.common.exceptions import (
    BodyDecodeError,
    RequestAbortedError,
    ResponseError,
)
from ajax_bridge.core.common.logging import RequestTracer
from ajax_bridge.core.domain.body import BodyKind, DecodedBody
from ajax_bridge.core.domain.request import RequestDescriptor, TransportCallParameters
from ajax_bridge.core.interfaces.transport_interface import IFetchResponse, ITransport
from ajax_bridge.core.services.abort import AbortController
from ajax_bridge.core.services.body_parser import parse_body
from ajax_bridge.core.services.status_gate import check_status

logger = logging.getLogger(__name__)


class HandleState(str, Enum):
    PENDING = "pending"
    HEADERS_RECEIVED = "headers_received"
    BODY_DECODED = "body_decoded"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class BridgedResponse:
    """Transport metadata of a response together with its decoded body."""

    def __init__(
        self,
        status: int,
        status_text: str,
        headers: httpx.Headers,
        url: str = "",
        request_headers: httpx.Headers | None = None,
    ) -> None:
        self.status = status
        self.status_text = status_text
        self.headers = headers
        self.url = url
        self.request_headers = request_headers or httpx.Headers()
        self._body: DecodedBody | None = None

    @classmethod
    def from_fetch_response(
        cls, response: IFetchResponse, params: TransportCallParameters
    ) -> BridgedResponse:
        return cls(
            status=response.status,
            status_text=response.status_text,
            headers=response.headers,
            url=response.url,
            request_headers=params.headers,
        )

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def get_response_header(self, name: str) -> str | None:
        return self.headers.get(name)

    @property
    def body(self) -> DecodedBody | None:
        return self._body

    def set_body(self, body: DecodedBody) -> None:
        if self._body is not None:
            raise RuntimeError("Decoded body has already been set")
        self._body = body

    @property
    def response_json(self) -> Any:
        if self._body is not None and self._body.kind is BodyKind.JSON:
            return self._body.value
        return None

    @property
    def response_text(self) -> str | None:
        if self._body is None:
            return None
        if self._body.kind is BodyKind.TEXT:
            return self._body.value
        if self._body.kind is BodyKind.JSON:
            return json.dumps(self._body.value)
        return None

    @property
    def response(self) -> Any:
        """The binary, blob or form-data value, if that is what the body decoded to."""
        if self._body is not None and self._body.kind in (
            BodyKind.BINARY,
            BodyKind.BLOB,
            BodyKind.FORM_DATA,
        ):
            return self._body.value
        return None

    @property
    def value(self) -> Any:
        """The resolved body: structured data, else text, else binary/blob/form data, else ''."""
        if self._body is None or self._body.is_empty:
            return ""
        return self._body.value

    def __repr__(self) -> str:
        kind = self._body.kind.value if self._body is not None else None
        return f"<BridgedResponse {self.status} {self.status_text!r} body={kind}>"


class ResponseHandle:
    """Awaitable handle for one AJAX call.

    Must be created inside a running event loop; the call starts immediately.
    """

    def __init__(
        self,
        descriptor: RequestDescriptor,
        params: TransportCallParameters,
        transport: ITransport,
        *,
        tracer: RequestTracer | None = None,
        controller: AbortController | None = None,
    ) -> None:
        self.descriptor = descriptor
        self.params = params
        self._transport = transport
        self._controller = controller
        self._trace = tracer or RequestTracer(False)
        self._state = HandleState.PENDING
        self._bridged: BridgedResponse | None = None
        self._task: asyncio.Task[Any] = asyncio.get_running_loop().create_task(
            self._run()
        )

    # -- legacy request accessors -------------------------------------------

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def response(self) -> BridgedResponse | None:
        return self._bridged

    @property
    def status(self) -> int | None:
        return self._bridged.status if self._bridged is not None else None

    @property
    def status_text(self) -> str:
        return self._bridged.status_text if self._bridged is not None else ""

    @property
    def request_headers(self) -> httpx.Headers:
        return self.params.headers

    def get_response_header(self, name: str) -> str | None:
        if self._bridged is None:
            return None
        return self._bridged.get_response_header(name)

    # -- future-like surface ------------------------------------------------

    def __await__(self):
        return self._task.__await__()

    def done(self) -> bool:
        return self._task.done()

    def result(self) -> Any:
        return self._task.result()

    def exception(self) -> BaseException | None:
        return self._task.exception()

    def add_done_callback(self, callback: Callable[[ResponseHandle], Any]) -> None:
        self._task.add_done_callback(lambda _task: callback(self))

    # -- call lifecycle -----------------------------------------------------

    @property
    def _aborted(self) -> bool:
        return self._controller is not None and self._controller.signal.aborted

    async def _run(self) -> Any:
        try:
            return await self._settle()
        finally:
            if self._controller is not None:
                self._controller.release()

    async def _settle(self) -> Any:
        try:
            value = await self._execute()
        except Exception as exc:
            error = self._classify_failure(exc)
            self._trace("error", error_type=type(error).__name__, status=self.status)
            await self._invoke_error_callback(error)
            self._state = HandleState.REJECTED
            if error is exc:
                raise
            raise error from exc

        self._trace("success", status=self.status)
        await self._invoke_callback(self.descriptor.success, value)
        self._state = HandleState.RESOLVED
        return value

    async def _execute(self) -> Any:
        response = await self._transport.fetch(self.params)
        try:
            self._bridged = BridgedResponse.from_fetch_response(response, self.params)
            self._state = HandleState.HEADERS_RECEIVED
            self._trace("headers", status=response.status)

            try:
                body = await parse_body(response, self.descriptor, self.params.headers)
            except BodyDecodeError as exc:
                exc.response = self._bridged
                raise
            self._bridged.set_body(body)
            self._state = HandleState.BODY_DECODED
            self._trace(body.kind.value, status=response.status)

            # decoding is never interrupted, so a late abort is honoured here
            if self._aborted:
                raise RequestAbortedError(reason=self._controller.signal.reason)

            check_status(self._bridged)
            return self._bridged.value
        finally:
            await response.aclose()

    def _classify_failure(self, exc: Exception) -> Exception:
        if isinstance(exc, RequestAbortedError):
            return exc
        if self._aborted:
            return RequestAbortedError(reason=self._controller.signal.reason)
        return exc

    async def _invoke_error_callback(self, error: Exception) -> None:
        if self.descriptor.error is None:
            return
        if isinstance(error, ResponseError) and error.response is not None:
            await self._invoke_callback(
                self.descriptor.error, error.response, error.response.status_text
            )
        elif isinstance(error, RequestAbortedError):
            await self._invoke_callback(self.descriptor.error, error, "abort")
        else:
            await self._invoke_callback(self.descriptor.error, error, "error")

    async def _invoke_callback(
        self, callback: Callable[..., Any] | None, *args: Any
    ) -> None:
        if callback is None:
            return
        try:
            outcome = callback(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            if logger.isEnabledFor(logging.WARNING):
                logger.warning(
                    "Callback %r raised while settling %s %s",
                    callback,
                    self.params.method,
                    self.params.url,
                    exc_info=True,
                )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.params.method} {self.params.url} {self._state.value}>"


class AbortableResponseHandle(ResponseHandle):
    """Handle for transports that support cooperative cancellation."""

    def abort(self, reason: Any = None) -> None:
        """Cancel the call. Has no effect once the handle has settled."""
        if self.done() or self._controller is None:
            return
        self._trace("aborting")
        self._controller.abort(reason)
