from __future__ import annotations

import asyncio
import json as json_module
from typing import Any
from urllib.parse import parse_qsl

import httpx
from starlette.datastructures import ImmutableMultiDict

from ajax_bridge.core.common.exceptions import BodyAlreadyUsedError, RequestAbortedError
from ajax_bridge.core.domain.body import Blob
from ajax_bridge.core.domain.request import TransportCallParameters
from ajax_bridge.core.interfaces.transport_interface import IFetchResponse, ITransport


class FakeFetchResponse(IFetchResponse):
    """In-memory response that counts how often its body is read."""

    def __init__(
        self,
        status: int = 200,
        content: bytes | str = b"",
        headers: dict[str, str] | None = None,
        status_text: str | None = None,
        url: str = "http://a.com/foo",
        body_gate: asyncio.Event | None = None,
    ) -> None:
        self.status = status
        self.status_text = (
            status_text if status_text is not None else httpx.codes.get_reason_phrase(status)
        )
        self.headers = httpx.Headers(headers or {})
        self.url = url
        self.content = content.encode("utf-8") if isinstance(content, str) else content
        self.body_gate = body_gate
        self.read_count = 0
        self.closed = False
        self._body_used = False

    @property
    def body_used(self) -> bool:
        return self._body_used

    async def _consume(self) -> bytes:
        if self._body_used:
            raise BodyAlreadyUsedError()
        self._body_used = True
        self.read_count += 1
        if self.body_gate is not None:
            await self.body_gate.wait()
        return self.content

    async def json(self) -> Any:
        return json_module.loads(await self._consume())

    async def text(self) -> str:
        return (await self._consume()).decode("utf-8")

    async def array_buffer(self) -> bytes:
        return await self._consume()

    async def form_data(self) -> ImmutableMultiDict:
        content = (await self._consume()).decode("utf-8")
        return ImmutableMultiDict(parse_qsl(content, keep_blank_values=True))

    async def blob(self) -> Blob:
        return Blob(await self._consume(), self.headers.get("content-type", ""))

    async def aclose(self) -> None:
        self.closed = True


class FakeTransport(ITransport):
    """Transport returning canned responses.

    With ``gate`` set, ``fetch`` waits for it before answering. When
    ``honour_signal`` is true that wait is raced against the abort signal.
    """

    def __init__(
        self,
        response: FakeFetchResponse | None = None,
        *,
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
        supports_cancellation: bool = True,
        honour_signal: bool = True,
    ) -> None:
        self.response = response or FakeFetchResponse()
        self.error = error
        self.gate = gate
        self.supports_cancellation = supports_cancellation
        self.honour_signal = honour_signal
        self.calls: list[TransportCallParameters] = []

    async def fetch(self, params: TransportCallParameters) -> FakeFetchResponse:
        self.calls.append(params)
        if self.gate is not None:
            if self.honour_signal and params.signal is not None:
                waiters = {
                    asyncio.ensure_future(self.gate.wait()),
                    asyncio.ensure_future(params.signal.wait()),
                }
                _, pending = await asyncio.wait(
                    waiters, return_when=asyncio.FIRST_COMPLETED
                )
                for waiter in pending:
                    waiter.cancel()
                if params.signal.aborted:
                    raise RequestAbortedError(reason=params.signal.reason)
            else:
                await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.response
