from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import AliasChoices, ConfigDict, Field, field_validator

from ajax_bridge.core.interfaces.model_bases import DomainModel, InternalDTO
from ajax_bridge.core.services.abort import AbortSignal

HTTP_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})
READ_METHODS = frozenset({"GET", "HEAD"})
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class RequestDescriptor(DomainModel):
    """What a caller asks for, in the shape of legacy ``ajax(options)``.

    Legacy camelCase option names (``type``, ``dataType``, ``useBlob``,
    ``referrerPolicy``) are accepted alongside the snake_case ones and
    unknown options are ignored.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        arbitrary_types_allowed=True,
    )

    method: str = Field(default="GET", validation_alias=AliasChoices("method", "type"))
    url: str
    data: Any = None
    headers: dict[str, Any] = Field(default_factory=dict)
    success: Callable[..., Any] | None = None
    error: Callable[..., Any] | None = None

    data_type: str | None = Field(
        default=None, validation_alias=AliasChoices("data_type", "dataType")
    )
    use_blob: bool | None = Field(
        default=None, validation_alias=AliasChoices("use_blob", "useBlob")
    )

    # fetch() passthrough options
    mode: str | None = None
    credentials: str | None = None
    cache: str | None = None
    redirect: str | None = None
    referrer: str | None = None
    referrer_policy: str | None = Field(
        default=None, validation_alias=AliasChoices("referrer_policy", "referrerPolicy")
    )
    integrity: str | None = None
    keepalive: bool | None = None
    signal: AbortSignal | None = None

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, value: Any) -> str:
        method = str(value or "GET").upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {value!r}")
        return method

    @field_validator("url")
    @classmethod
    def _require_url(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("A URL is required")
        return value.strip()

    @field_validator("data_type", mode="before")
    @classmethod
    def _normalize_data_type(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value).lower()

    @property
    def is_read(self) -> bool:
        return self.method in READ_METHODS

    @property
    def has_body(self) -> bool:
        return self.method in BODY_METHODS


@dataclass(frozen=True)
class TransportOptions(InternalDTO):
    """The fetch options that are forwarded to the transport verbatim."""

    mode: str | None = None
    credentials: str | None = None
    cache: str | None = None
    redirect: str | None = None
    referrer: str | None = None
    referrer_policy: str | None = None
    integrity: str | None = None
    keepalive: bool | None = None


@dataclass(frozen=True)
class TransportCallParameters(InternalDTO):
    method: str
    url: str
    headers: httpx.Headers
    body: Any = None
    signal: AbortSignal | None = None
    options: TransportOptions = field(default_factory=TransportOptions)
