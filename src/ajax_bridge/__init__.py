"""Legacy ``ajax(options)`` contract bridged onto an async fetch transport."""

from ajax_bridge.client import AjaxClient, ajax, get_default_client, set_default_client
from ajax_bridge.core.common.exceptions import (
    AjaxBridgeError,
    BodyAlreadyUsedError,
    BodyDecodeError,
    ConfigurationError,
    HTTPStatusError,
    IntegrityError,
    InvalidRequestError,
    RedirectNotAllowedError,
    RequestAbortedError,
)
from ajax_bridge.core.config.app_config import BridgeConfig
from ajax_bridge.core.domain.body import Blob, BodyKind, DecodedBody, MultipartForm
from ajax_bridge.core.domain.request import RequestDescriptor
from ajax_bridge.core.services.abort import AbortController, AbortSignal
from ajax_bridge.core.services.response_bridge import (
    AbortableResponseHandle,
    BridgedResponse,
    HandleState,
    ResponseHandle,
)

__version__ = "0.1.0"

__all__ = [
    "AbortController",
    "AbortSignal",
    "AbortableResponseHandle",
    "AjaxBridgeError",
    "AjaxClient",
    "Blob",
    "BodyAlreadyUsedError",
    "BodyDecodeError",
    "BodyKind",
    "BridgeConfig",
    "BridgedResponse",
    "ConfigurationError",
    "DecodedBody",
    "HTTPStatusError",
    "HandleState",
    "IntegrityError",
    "InvalidRequestError",
    "MultipartForm",
    "RedirectNotAllowedError",
    "RequestAbortedError",
    "RequestDescriptor",
    "ResponseHandle",
    "ajax",
    "get_default_client",
    "set_default_client",
]
