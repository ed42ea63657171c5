"""
fetch()-shaped transport on top of ``httpx.AsyncClient``.

Requests are sent with ``stream=True`` so that ``fetch`` returns as soon as
the headers arrive and the body stays an unread stream owned by the
returned ``FetchResponse``.
"""

from __future__ import annotations

import asyncio
import base64
import contextlib
import hashlib
import json
import logging
import secrets
from collections.abc import AsyncGenerator
from typing import Any

import httpx
from starlette.datastructures import Headers as StarletteHeaders
from starlette.datastructures import ImmutableMultiDict, UploadFile
from starlette.formparsers import FormParser, MultiPartException, MultiPartParser

from ajax_bridge.core.common.exceptions import (
    BodyAlreadyUsedError,
    IntegrityError,
    RedirectNotAllowedError,
    RequestAbortedError,
)
from ajax_bridge.core.domain.body import Blob, MultipartForm
from ajax_bridge.core.domain.request import TransportCallParameters, TransportOptions
from ajax_bridge.core.interfaces.transport_interface import IFetchResponse, ITransport
from ajax_bridge.core.services.abort import AbortSignal
from ajax_bridge.core.services.body_classifier import is_form_urlencoded

logger = logging.getLogger(__name__)

_SRI_ALGORITHMS = {"sha256": hashlib.sha256, "sha384": hashlib.sha384, "sha512": hashlib.sha512}


def verify_integrity(content: bytes, integrity: str) -> bool:
    """Check ``content`` against Subresource Integrity metadata.

    Metadata without any supported algorithm is treated as satisfied.
    """
    supported = False
    for token in integrity.split():
        algorithm, _, expected = token.partition("-")
        hasher = _SRI_ALGORITHMS.get(algorithm.lower())
        if hasher is None or not expected:
            continue
        supported = True
        expected = expected.split("?", 1)[0]
        if base64.b64encode(hasher(content).digest()).decode("ascii") == expected:
            return True
    return not supported


class FetchResponse(IFetchResponse):
    """Single-consumption view over a streamed ``httpx.Response``."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._body_used = False
        self.status = response.status_code
        self.status_text = response.reason_phrase
        self.headers = response.headers
        self.url = str(response.url)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def body_used(self) -> bool:
        return self._body_used

    @property
    def raw(self) -> httpx.Response:
        return self._response

    async def _consume(self) -> bytes:
        if self._body_used:
            raise BodyAlreadyUsedError()
        self._body_used = True
        try:
            return await self._response.aread()
        finally:
            await self._response.aclose()

    async def json(self) -> Any:
        return json.loads(await self._consume())

    async def text(self) -> str:
        await self._consume()
        return self._response.text

    async def array_buffer(self) -> bytes:
        return await self._consume()

    async def blob(self) -> Blob:
        content = await self._consume()
        return Blob(content, self.headers.get("content-type", ""))

    async def form_data(self) -> ImmutableMultiDict:
        content = await self._consume()
        content_type = self.headers.get("content-type", "")
        headers = StarletteHeaders(headers={"content-type": content_type})

        async def stream() -> AsyncGenerator[bytes, None]:
            yield content
            yield b""

        parser: FormParser | MultiPartParser
        if is_form_urlencoded(content_type):
            parser = FormParser(headers, stream())
        else:
            parser = MultiPartParser(headers, stream())
        try:
            form = await parser.parse()
        except (MultiPartException, KeyError) as exc:
            raise ValueError(f"Malformed form data: {exc}") from exc

        fields: list[tuple[str, Any]] = []
        for name, value in form.multi_items():
            if isinstance(value, UploadFile):
                data = await value.read()
                fields.append(
                    (name, Blob(data, value.content_type or "", value.filename))
                )
            else:
                fields.append((name, value))
        await form.close()
        return ImmutableMultiDict(fields)

    async def aclose(self) -> None:
        await self._response.aclose()


class HttpxTransport(ITransport):
    """Transport backed by an ``httpx.AsyncClient``.

    When no client is given one is created and owned by the transport.
    """

    supports_cancellation = True

    def __init__(
        self, client: httpx.AsyncClient | None = None, timeout: float = 30.0
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient()
        self.timeout = timeout

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _apply_options(self, headers: httpx.Headers, options: TransportOptions) -> None:
        if options.cache in ("no-store",) and "cache-control" not in headers:
            headers["Cache-Control"] = "no-store"
        elif options.cache in ("no-cache", "reload") and "cache-control" not in headers:
            headers["Cache-Control"] = "no-cache"
            headers["Pragma"] = "no-cache"

        if (
            options.referrer
            and options.referrer != "about:client"
            and options.referrer_policy != "no-referrer"
            and "referer" not in headers
        ):
            headers["Referer"] = options.referrer

        if options.credentials == "omit":
            for name in ("cookie", "authorization"):
                if name in headers:
                    del headers[name]

    def build_request(self, params: TransportCallParameters) -> httpx.Request:
        headers = httpx.Headers(params.headers)
        self._apply_options(headers, params.options)

        body = params.body
        kwargs: dict[str, Any] = {}
        if isinstance(body, MultipartForm) and not len(body):
            # httpx treats files=[] as no body; send the closing boundary alone
            boundary = secrets.token_hex(16)
            headers["Content-Type"] = f"multipart/form-data; boundary={boundary}"
            kwargs["content"] = f"--{boundary}--\r\n".encode("ascii")
        elif isinstance(body, MultipartForm):
            kwargs["files"] = body.to_httpx_files()
        elif isinstance(body, (str, bytes, bytearray)):
            kwargs["content"] = body
        elif body is not None:
            kwargs["content"] = json.dumps(body).encode("utf-8")

        return self.client.build_request(
            params.method, params.url, headers=headers, timeout=self.timeout, **kwargs
        )

    async def fetch(self, params: TransportCallParameters) -> FetchResponse:
        request = self.build_request(params)
        follow_redirects = params.options.redirect in (None, "follow")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("fetch %s %s", request.method, request.url)

        response = await self._send(request, follow_redirects, params.signal)
        try:
            if params.options.redirect == "error" and response.is_redirect:
                raise RedirectNotAllowedError(
                    details={"location": response.headers.get("location")},
                    status_code=response.status_code,
                )
            if params.options.integrity:
                content = await response.aread()
                if not verify_integrity(content, params.options.integrity):
                    raise IntegrityError(details={"url": str(request.url)})
        except BaseException:
            await response.aclose()
            raise
        return FetchResponse(response)

    async def _send(
        self,
        request: httpx.Request,
        follow_redirects: bool,
        signal: AbortSignal | None,
    ) -> httpx.Response:
        if signal is None:
            return await self.client.send(
                request, stream=True, follow_redirects=follow_redirects
            )
        if signal.aborted:
            raise RequestAbortedError(reason=signal.reason)

        send = asyncio.ensure_future(
            self.client.send(request, stream=True, follow_redirects=follow_redirects)
        )
        aborted = asyncio.ensure_future(signal.wait())
        try:
            done, _ = await asyncio.wait(
                {send, aborted}, return_when=asyncio.FIRST_COMPLETED
            )
        except BaseException:
            send.cancel()
            raise
        finally:
            aborted.cancel()

        if send in done:
            return send.result()

        send.cancel()
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await send
        raise RequestAbortedError(reason=signal.reason)
