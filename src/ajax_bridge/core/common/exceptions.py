"""
Common exception classes for the AJAX bridge.

Every failure a ``ResponseHandle`` can settle with is represented here, except
network-level transport errors which are propagated as raised by httpx.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ajax_bridge.core.services.response_bridge import BridgedResponse


class AjaxBridgeError(Exception):
    """Base exception class for all AJAX bridge errors."""

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        *,
        status_code: int | None = None,
        **kwargs: Any,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
            status_code: HTTP status code of the response, if one was received
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.status_code = status_code
        # Attach any extra attributes provided for compatibility with callers/tests
        for key, value in (kwargs or {}).items():
            setattr(self, key, value)

    def to_dict(self) -> dict:
        error_dict: dict[str, Any] = {
            "message": self.message,
            "type": self.__class__.__name__,
            "details": self.details,
        }
        if self.status_code is not None:
            error_dict["status_code"] = self.status_code
        return {"error": error_dict}


class ConfigurationError(AjaxBridgeError):
    """Raised when the bridge configuration is invalid."""

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, details, **kwargs)


class InvalidRequestError(AjaxBridgeError):
    """Raised when a request descriptor cannot be normalized."""

    def __init__(
        self, message: str = "Invalid request", details: dict | None = None, **kwargs
    ):
        super().__init__(message, details, **kwargs)


class ResponseError(AjaxBridgeError):
    """Failure that carries the bridged response it was raised for."""

    def __init__(
        self,
        message: str,
        response: BridgedResponse | None = None,
        details: dict | None = None,
        **kwargs: Any,
    ):
        status_code = kwargs.pop(
            "status_code", response.status if response is not None else None
        )
        super().__init__(message, details, status_code=status_code, **kwargs)
        self.response = response

    @property
    def status_text(self) -> str:
        return self.response.status_text if self.response is not None else ""


class HTTPStatusError(ResponseError):
    """Raised when the response status is outside the 2xx range."""

    def __init__(
        self,
        response: BridgedResponse,
        message: str | None = None,
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(
            message
            or f"Request failed with status code {response.status} {response.status_text}".rstrip(),
            response,
            details,
            **kwargs,
        )


class BodyDecodeError(ResponseError):
    """Raised when a response body cannot be decoded as its matched kind."""

    def __init__(
        self,
        message: str = "Response body could not be decoded",
        response: BridgedResponse | None = None,
        details: dict | None = None,
        *,
        body_kind: str | None = None,
        original_error: BaseException | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, response, details, **kwargs)
        self.body_kind = body_kind
        self.original_error = original_error


class BodyAlreadyUsedError(AjaxBridgeError):
    """Raised on a second attempt to consume a single-use response body."""

    def __init__(
        self, message: str = "Body has already been consumed", details: dict | None = None
    ):
        super().__init__(message, details)


class RequestAbortedError(AjaxBridgeError):
    """Raised when a call is cancelled through its abort signal.

    Carries no status code; ``kind`` is always ``"aborted"``.
    """

    kind = "aborted"

    def __init__(
        self,
        message: str = "The operation was aborted",
        details: dict | None = None,
        *,
        reason: Any = None,
    ):
        super().__init__(message, details, status_code=None)
        self.reason = reason


class TransportPolicyError(AjaxBridgeError):
    """Raised when a response violates a fetch option such as redirect or integrity."""


class RedirectNotAllowedError(TransportPolicyError):
    def __init__(
        self,
        message: str = "Redirect was not allowed",
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, details, **kwargs)


class IntegrityError(TransportPolicyError):
    def __init__(
        self,
        message: str = "Response body does not match the integrity metadata",
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, details, **kwargs)
