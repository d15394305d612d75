"""Checkout widget hosted in the visitor's browser."""

import asyncio
import logging
from collections import defaultdict
from typing import Any

from .checkout import CheckoutEvent, WidgetHandler

logger = logging.getLogger(__name__)


class RemoteCheckoutWidget:
    """
    Checkout widget driven over a browser connection.

    Commands (``init``, ``launch``, ``close``) are queued to the most recently
    connected browser stream, so a visitor with several tabs open gets one
    checkout. When that stream disconnects the previous one takes over. The
    browser reports widget events back through :meth:`dispatch`. The widget
    counts as available while at least one stream is connected.
    """

    def __init__(self) -> None:
        self._streams: list[asyncio.Queue] = []
        self._handlers: dict[str, list[WidgetHandler]] = defaultdict(list)

    @property
    def available(self) -> bool:
        return bool(self._streams)

    def connect(self) -> asyncio.Queue:
        """Register a browser stream and return its command queue."""
        queue: asyncio.Queue = asyncio.Queue()
        self._streams.append(queue)
        logger.info(f"Checkout stream connected ({len(self._streams)} active)")
        return queue

    def disconnect(self, queue: asyncio.Queue) -> None:
        """Remove a browser stream."""
        if queue in self._streams:
            self._streams.remove(queue)
            logger.info(f"Checkout stream disconnected ({len(self._streams)} active)")

    def _send(self, command: dict[str, Any]) -> None:
        if not self._streams:
            logger.warning(f"No checkout stream connected, dropping {command['command']} command")
            return
        self._streams[-1].put_nowait(command)

    def init(self, config: dict[str, Any]) -> None:
        self._send({"command": "init", "config": config})

    def launch(self) -> None:
        self._send({"command": "launch"})

    def close(self) -> None:
        self._send({"command": "close"})

    def on(self, event: str, handler: WidgetHandler) -> None:
        self._handlers[event].append(handler)

    def off(self, event: str, handler: WidgetHandler) -> None:
        if handler in self._handlers[event]:
            self._handlers[event].remove(handler)

    def dispatch(self, event: str, payload: Any = None) -> int:
        """
        Deliver an event reported by the browser to the subscribed handlers.

        Args:
            event: Widget event name (open, close, payment:complete, payment:error)
            payload: Event data forwarded by the browser

        Returns:
            Number of handlers called

        Raises:
            ValueError: If the event name is not a known widget event
        """
        try:
            CheckoutEvent(event)
        except ValueError as e:
            raise ValueError(f"Unknown checkout event: {event}") from e

        handlers = list(self._handlers.get(event, []))
        logger.debug(f"Dispatching checkout event {event} to {len(handlers)} handler(s)")
        for handler in handlers:
            handler(payload)
        return len(handlers)
