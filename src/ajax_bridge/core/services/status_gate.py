from __future__ import annotations

from typing import TYPE_CHECKING

from ajax_bridge.core.common.exceptions import HTTPStatusError

if TYPE_CHECKING:
    from ajax_bridge.core.services.response_bridge import BridgedResponse


def is_success_status(status: int) -> bool:
    return 200 <= status < 300


def check_status(response: BridgedResponse) -> BridgedResponse:
    """Pass a 2xx response through, raise ``HTTPStatusError`` for anything else.

    Runs after the body is decoded so error payloads reach the error handlers.
    """
    if is_success_status(response.status):
        return response
    raise HTTPStatusError(response)
