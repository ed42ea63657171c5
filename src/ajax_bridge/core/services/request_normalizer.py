"""
Turns a ``RequestDescriptor`` into the parameters handed to the transport.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx

from ajax_bridge.core.domain.body import MultipartForm
from ajax_bridge.core.domain.request import (
    RequestDescriptor,
    TransportCallParameters,
    TransportOptions,
)
from ajax_bridge.core.services.abort import AbortSignal
from ajax_bridge.core.services.body_classifier import JSON_MIME, is_form_urlencoded

logger = logging.getLogger(__name__)

# Characters left unescaped by encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"

PASSTHROUGH_OPTIONS = (
    "mode",
    "credentials",
    "cache",
    "redirect",
    "referrer",
    "referrer_policy",
    "integrity",
    "keepalive",
)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(item) for item in value)
    return str(value)


def encode_uri_component(value: Any) -> str:
    return quote(_stringify(value), safe=_URI_COMPONENT_SAFE)


def to_query_params(data: Mapping[str, Any]) -> str:
    """Encode key-value pairs as ``k=v&k2=v2``, skipping empty keys and None values."""
    pairs = []
    for key, value in data.items():
        if not key or value is None:
            continue
        pairs.append(f"{encode_uri_component(key)}={encode_uri_component(value)}")
    return "&".join(pairs)


def append_query(url: str, data: Mapping[str, Any]) -> str:
    query = to_query_params(data)
    if not query:
        return url
    return f"{url}{'&' if '?' in url else '?'}{query}"


def resolve_url(url: str, base_url: str = "") -> str:
    """Combine the base URL with a relative request URL.

    Absolute URLs are returned unchanged and protocol-relative ones take the
    base URL's scheme. Paths are appended to the base URL's path.
    """
    if not base_url or httpx.URL(url).is_absolute_url:
        return url
    if url.startswith("//"):
        return str(httpx.URL(base_url).join(url))
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def build_headers(
    descriptor: RequestDescriptor, default_headers: Mapping[str, str] | None = None
) -> httpx.Headers:
    headers = httpx.Headers(default_headers or {})
    for name, value in descriptor.headers.items():
        if value is None:
            continue
        headers[name] = _stringify(value)

    if "accept" not in headers:
        headers["Accept"] = JSON_MIME
    # Multipart bodies get their Content-Type, boundary included, from the transport
    if (
        descriptor.has_body
        and not isinstance(descriptor.data, MultipartForm)
        and "content-type" not in headers
    ):
        headers["Content-Type"] = JSON_MIME
    return headers


def select_body(data: Any, headers: httpx.Headers) -> Any:
    if data is None or isinstance(data, MultipartForm):
        return data
    if is_form_urlencoded(headers.get("content-type")) and isinstance(data, Mapping):
        return to_query_params(data)
    return data


def normalize_request(
    descriptor: RequestDescriptor,
    *,
    signal: AbortSignal | None = None,
    base_url: str = "",
    default_headers: Mapping[str, str] | None = None,
) -> TransportCallParameters:
    """Derive the transport call parameters for ``descriptor``.

    Read requests carry their mapping payload in the query string and never
    send a body. ``signal`` overrides the descriptor's own signal, which is
    how the per-call abort controller is threaded in.
    """
    url = resolve_url(descriptor.url, base_url)
    data = descriptor.data
    if descriptor.is_read and data is not None:
        if isinstance(data, Mapping):
            url = append_query(url, data)
        elif logger.isEnabledFor(logging.DEBUG):
            logger.debug("Dropping non-mapping payload of %s request", descriptor.method)
        data = None

    headers = build_headers(descriptor, default_headers)
    body = select_body(data, headers)

    options = TransportOptions(
        **{name: getattr(descriptor, name) for name in PASSTHROUGH_OPTIONS}
    )

    return TransportCallParameters(
        method=descriptor.method,
        url=url,
        headers=headers,
        body=body,
        signal=signal if signal is not None else descriptor.signal,
        options=options,
    )
