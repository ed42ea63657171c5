"""
Cooperative cancellation for in-flight AJAX calls.

An ``AbortController`` owns one ``AbortSignal``. The signal is threaded into
the transport call; transports that support cancellation race their network
send against it, and the response bridge checks it again once the body has
been decoded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ajax_bridge.core.config.app_config import BridgeConfig
    from ajax_bridge.core.interfaces.transport_interface import ITransport

logger = logging.getLogger(__name__)

AbortListener = Callable[[Any], None]


class AbortSignal:
    """Read-only view of an abort request."""

    def __init__(self) -> None:
        self._aborted = False
        self._reason: Any = None
        self._event = asyncio.Event()
        self._listeners: list[AbortListener] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Any:
        return self._reason

    def add_listener(self, listener: AbortListener) -> None:
        """Call ``listener(reason)`` once the signal aborts (immediately if it already has)."""
        if self._aborted:
            listener(self._reason)
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: AbortListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def wait(self) -> Any:
        """Suspend until the signal aborts and return the abort reason."""
        await self._event.wait()
        return self._reason

    def _trigger(self, reason: Any) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        self._event.set()
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener(reason)
            except Exception:
                if logger.isEnabledFor(logging.WARNING):
                    logger.warning("Abort listener raised", exc_info=True)


class AbortController:
    """Issues the abort request for its signal."""

    def __init__(self) -> None:
        self.signal = AbortSignal()
        self._followed: list[AbortSignal] = []

    def abort(self, reason: Any = None) -> None:
        self.signal._trigger(reason)

    def follow(self, signal: AbortSignal) -> None:
        """Abort this controller whenever ``signal`` aborts."""
        self._followed.append(signal)
        signal.add_listener(self.abort)

    def release(self) -> None:
        """Detach from every followed signal.

        Called once the call has settled so long-lived caller signals do not
        keep finished controllers alive.
        """
        followed, self._followed = self._followed, []
        for signal in followed:
            signal.remove_listener(self.abort)


def create_abort_controller(
    transport: ITransport,
    config: BridgeConfig,
    linked_signal: AbortSignal | None = None,
) -> AbortController | None:
    """Create the per-call controller, or None when cancellation is unavailable.

    A caller-supplied ``linked_signal`` is chained to the new controller so
    either side can cancel the call.
    """
    if not config.enable_abort or not getattr(transport, "supports_cancellation", False):
        return None
    controller = AbortController()
    if linked_signal is not None:
        controller.follow(linked_signal)
    return controller
