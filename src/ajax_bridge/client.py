"""
Entry point: ``ajax(options)`` backed by an async fetch transport.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ajax_bridge.core.common.exceptions import InvalidRequestError
from ajax_bridge.core.common.logging import RequestTracer
from ajax_bridge.core.config.app_config import BridgeConfig
from ajax_bridge.core.domain.request import RequestDescriptor
from ajax_bridge.core.interfaces.transport_interface import ITransport
from ajax_bridge.core.services.abort import create_abort_controller
from ajax_bridge.core.services.request_normalizer import normalize_request
from ajax_bridge.core.services.response_bridge import (
    AbortableResponseHandle,
    ResponseHandle,
)
from ajax_bridge.core.transport.httpx_transport import HttpxTransport


class AjaxClient:
    """Issues legacy-style AJAX calls over a fetch-shaped transport."""

    def __init__(
        self,
        config: BridgeConfig | Mapping[str, Any] | None = None,
        transport: ITransport | None = None,
    ) -> None:
        """Create a client; ``config`` may be a plain mapping of settings.

        Raises:
            ConfigurationError: If ``config`` is a mapping with invalid settings.
        """
        if config is None:
            config = BridgeConfig()
        elif not isinstance(config, BridgeConfig):
            config = BridgeConfig.from_mapping(config)
        self.config = config
        self.transport = transport or HttpxTransport(timeout=self.config.timeout)

    async def aclose(self) -> None:
        close = getattr(self.transport, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> AjaxClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _to_descriptor(
        self, options: RequestDescriptor | Mapping[str, Any]
    ) -> RequestDescriptor:
        if isinstance(options, RequestDescriptor):
            descriptor = options
        else:
            try:
                descriptor = RequestDescriptor.model_validate(dict(options))
            except ValidationError as exc:
                raise InvalidRequestError(
                    "Invalid request options", details={"errors": exc.errors()}
                ) from exc
        if descriptor.use_blob is None:
            descriptor = descriptor.model_copy(update={"use_blob": self.config.use_blob})
        return descriptor

    def ajax(self, options: RequestDescriptor | Mapping[str, Any]) -> ResponseHandle:
        """Start a call and return its handle.

        Must be called from inside a running event loop. The handle also has
        an ``abort()`` method when the transport supports cancellation.

        Raises:
            InvalidRequestError: If ``options`` do not describe a valid request.
        """
        descriptor = self._to_descriptor(options)
        controller = create_abort_controller(
            self.transport, self.config, descriptor.signal
        )
        params = normalize_request(
            descriptor,
            signal=controller.signal if controller is not None else None,
            base_url=self.config.base_url,
            default_headers=self.config.default_headers,
        )
        tracer = RequestTracer(self.config.debug, method=params.method, url=params.url)
        tracer("request", headers=dict(params.headers))

        if controller is not None:
            return AbortableResponseHandle(
                descriptor, params, self.transport, tracer=tracer, controller=controller
            )
        return ResponseHandle(descriptor, params, self.transport, tracer=tracer)

    def request(self, method: str, url: str, **options: Any) -> ResponseHandle:
        return self.ajax({**options, "method": method, "url": url})


_default_client: AjaxClient | None = None


def get_default_client() -> AjaxClient:
    """Return the process-wide client, creating it from the environment on first use."""
    global _default_client
    if _default_client is None:
        _default_client = AjaxClient(BridgeConfig.from_env())
    return _default_client


def set_default_client(client: AjaxClient | None) -> None:
    global _default_client
    _default_client = client


def ajax(options: RequestDescriptor | Mapping[str, Any]) -> ResponseHandle:
    """Module-level shortcut for ``get_default_client().ajax(options)``."""
    return get_default_client().ajax(options)
