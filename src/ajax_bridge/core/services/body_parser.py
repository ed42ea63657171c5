"""
Body parsing cascade.

A response body is a single-use stream, so exactly one decoder may read it.
The decoders are tried in a fixed order and the first rule that accepts the
response wins:

1. blob, only when the caller opted in with ``use_blob``
2. JSON, also the default when nothing declares a type
3. text
4. binary buffer
5. form data

When none of them matches, the body is read as a blob anyway, so every
non-empty response ends up decoded as something. A 204 response is never
read.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping

from ajax_bridge.core.common.exceptions import BodyDecodeError
from ajax_bridge.core.domain.body import BodyKind, DecodedBody
from ajax_bridge.core.domain.request import RequestDescriptor
from ajax_bridge.core.interfaces.transport_interface import IFetchResponse
from ajax_bridge.core.services.body_classifier import (
    BINARY_RULE,
    BLOB_RULE,
    FORM_DATA_RULE,
    JSON_RULE,
    TEXT_RULE,
    BodyTypeRule,
    can_read_body,
)

logger = logging.getLogger(__name__)

HTTP_NO_CONTENT = 204

Decoder = Callable[[IFetchResponse], Awaitable[object]]


async def _read_blob(response: IFetchResponse) -> object:
    return await response.blob()


async def _read_json(response: IFetchResponse) -> object:
    return await response.json()


async def _read_text(response: IFetchResponse) -> object:
    return await response.text()


async def _read_binary(response: IFetchResponse) -> object:
    return await response.array_buffer()


async def _read_form_data(response: IFetchResponse) -> object:
    return await response.form_data()


CASCADE: tuple[tuple[BodyTypeRule, Decoder], ...] = (
    (BLOB_RULE, _read_blob),
    (JSON_RULE, _read_json),
    (TEXT_RULE, _read_text),
    (BINARY_RULE, _read_binary),
    (FORM_DATA_RULE, _read_form_data),
)


async def _decode(
    response: IFetchResponse, kind: BodyKind, decoder: Decoder
) -> DecodedBody:
    try:
        value = await decoder(response)
    except (ValueError, UnicodeDecodeError) as exc:
        raise BodyDecodeError(
            f"Invalid {kind.value} response body at {response.url}: {exc}",
            status_code=response.status,
            body_kind=kind.value,
            original_error=exc,
        ) from exc

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Decoded %s body (status %s)", kind.value, response.status)
    return DecodedBody(kind, value)


async def parse_body(
    response: IFetchResponse,
    descriptor: RequestDescriptor,
    request_headers: Mapping[str, str],
) -> DecodedBody:
    """Consume ``response``'s body once and return its decoded form.

    Raises:
        BodyDecodeError: If the matched decoder rejects the body.
    """
    if response.status == HTTP_NO_CONTENT:
        return DecodedBody.empty()

    for rule, decoder in CASCADE:
        if can_read_body(response, rule, descriptor, request_headers):
            return await _decode(response, rule.kind, decoder)

    if response.body_used:
        return DecodedBody.empty()
    return await _decode(response, BodyKind.BLOB, _read_blob)
