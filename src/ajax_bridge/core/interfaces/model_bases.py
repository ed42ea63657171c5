"""Nominal marker base classes for model standardization.

`DomainModel` is the base for Pydantic-validated, caller-facing models and
`InternalDTO` marks the dataclass records passed between bridge stages.
"""

from __future__ import annotations

from pydantic import BaseModel


class DomainModel(BaseModel):
    """Nominal marker for Pydantic-based domain models."""

    def __repr__(self) -> str:
        """Provide a concise, one-line summary of the object."""
        class_name = self.__class__.__name__

        method = getattr(self, "method", None)
        url = getattr(self, "url", None)
        if method and url:
            return f"<{class_name} {method} {url}>"
        if url:
            return f'<{class_name} url="{url}">'

        return f"<{class_name}>"


class InternalDTO:
    """Nominal marker for internal dataclass DTOs."""
