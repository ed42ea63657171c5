from abc import ABC, abstractmethod
from typing import Any

import httpx
from starlette.datastructures import ImmutableMultiDict

from ajax_bridge.core.domain.body import Blob
from ajax_bridge.core.domain.request import TransportCallParameters


class IFetchResponse(ABC):
    """
    A response whose headers have arrived but whose body is still an unread
    stream. Each body method consumes that stream and may be used once.
    """

    status: int
    status_text: str
    headers: httpx.Headers
    url: str

    @property
    @abstractmethod
    def body_used(self) -> bool:
        """True once any of the body methods has started consuming the stream."""

    @abstractmethod
    async def json(self) -> Any:
        """Read the body and parse it as JSON. Raises ValueError on malformed data."""

    @abstractmethod
    async def text(self) -> str:
        """Read the body as text using the response charset."""

    @abstractmethod
    async def array_buffer(self) -> bytes:
        """Read the raw body bytes."""

    @abstractmethod
    async def form_data(self) -> ImmutableMultiDict:
        """
        Read a ``multipart/form-data`` or urlencoded body into its fields.
        Raises ValueError when the body cannot be parsed as a form.
        """

    @abstractmethod
    async def blob(self) -> Blob:
        """Read the body as an opaque blob typed with the response content-type."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying connection. Safe to call more than once."""


class ITransport(ABC):
    """
    Interface for a fetch-shaped HTTP transport.
    """

    supports_cancellation: bool = False

    @abstractmethod
    async def fetch(self, params: TransportCallParameters) -> IFetchResponse:
        """
        Send a request and return as soon as the response headers arrive.

        Args:
            params: The normalized call parameters.

        Returns:
            The response with its body still unread.

        Raises:
            RequestAbortedError: If ``params.signal`` aborts before headers arrive.
        """
