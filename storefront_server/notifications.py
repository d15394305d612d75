"""Single-slot notification state with auto-dismiss."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from .models import Notification, NotificationKind

logger = logging.getLogger(__name__)


class NotificationCenter:
    """
    Holds at most one notification.

    Posting replaces the visible notification and restarts the dismiss
    timer. When an event loop is running the timer is scheduled on it;
    expiry is also checked on read so the center behaves the same when
    used outside a loop.
    """

    def __init__(self, timeout: float = 5.0) -> None:
        """
        Initialize the notification center.

        Args:
            timeout: Seconds before a notification is dismissed automatically
        """
        self.timeout = timeout
        self._current: Optional[Notification] = None
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def current(self) -> Optional[Notification]:
        """The visible notification, or None."""
        if self._current is not None and datetime.now() >= self._current.expires_at:
            logger.debug(f"Notification {self._current.id} expired")
            self._clear()
        return self._current

    def post(self, kind: NotificationKind, message: str) -> Notification:
        """
        Show a notification, replacing any visible one.

        Args:
            kind: success, error or cancelled
            message: Text shown to the visitor

        Returns:
            The posted notification
        """
        self._cancel_timer()
        now = datetime.now()
        notification = Notification(
            kind=kind,
            message=message,
            created_at=now,
            expires_at=now + timedelta(seconds=self.timeout),
        )
        self._current = notification
        logger.info(f"Notification [{kind.value}]: {message}")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._timer = loop.call_later(self.timeout, self._expire, notification.id)

        return notification

    def dismiss(self, notification_id: Optional[str] = None) -> bool:
        """
        Clear the visible notification and cancel its timer.

        Args:
            notification_id: If given, only dismiss when it is still the visible one

        Returns:
            True if a notification was cleared
        """
        if self._current is None:
            return False
        if notification_id is not None and notification_id != self._current.id:
            logger.debug(f"Ignoring dismiss of stale notification {notification_id}")
            return False
        self._clear()
        return True

    def _expire(self, notification_id: str) -> None:
        if self._current is not None and self._current.id == notification_id:
            logger.debug(f"Notification {notification_id} timed out")
            self._current = None
        self._timer = None

    def _clear(self) -> None:
        self._cancel_timer()
        self._current = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
