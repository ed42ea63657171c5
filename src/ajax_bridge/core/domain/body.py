"""Body representations: what a response decodes to and what a request may carry."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ajax_bridge.core.interfaces.model_bases import InternalDTO


class BodyKind(str, Enum):
    """Variant tag of a decoded response body."""

    JSON = "json"
    TEXT = "text"
    BINARY = "binary"
    FORM_DATA = "form_data"
    BLOB = "blob"
    EMPTY = "empty"


@dataclass(frozen=True)
class Blob(InternalDTO):
    """Opaque binary payload together with its declared media type."""

    data: bytes
    type: str = ""
    name: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)

    def text(self, encoding: str = "utf-8") -> str:
        return self.data.decode(encoding)


@dataclass(frozen=True)
class DecodedBody(InternalDTO):
    """Tagged union holding exactly one decoded representation of a body."""

    kind: BodyKind
    value: Any = None

    @classmethod
    def empty(cls) -> DecodedBody:
        return cls(BodyKind.EMPTY, None)

    @property
    def is_empty(self) -> bool:
        return self.kind is BodyKind.EMPTY


@dataclass
class FormPart(InternalDTO):
    name: str
    value: str | bytes
    filename: str | None = None
    content_type: str | None = None


@dataclass
class MultipartForm(InternalDTO):
    """Ordered set of named fields sent as ``multipart/form-data``.

    The transport serializes it and chooses the boundary, so a request that
    carries one never declares its own Content-Type.
    """

    parts: list[FormPart] = field(default_factory=list)

    def append(
        self,
        name: str,
        value: str | bytes | Blob,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> None:
        if isinstance(value, Blob):
            content_type = content_type or value.type or None
            filename = filename or value.name
            value = value.data
        self.parts.append(FormPart(name, value, filename, content_type))

    def get(self, name: str) -> str | bytes | None:
        for part in self.parts:
            if part.name == name:
                return part.value
        return None

    def getlist(self, name: str) -> list[str | bytes]:
        return [part.value for part in self.parts if part.name == name]

    def __iter__(self) -> Iterator[tuple[str, str | bytes]]:
        return ((part.name, part.value) for part in self.parts)

    def __len__(self) -> int:
        return len(self.parts)

    def to_httpx_files(self) -> list[tuple[str, tuple[str | None, bytes, str | None]]]:
        """Render the parts in the shape accepted by httpx's ``files`` argument.

        Parts without a filename become plain form fields.
        """
        files = []
        for part in self.parts:
            content = part.value.encode("utf-8") if isinstance(part.value, str) else part.value
            files.append((part.name, (part.filename, content, part.content_type)))
        return files
