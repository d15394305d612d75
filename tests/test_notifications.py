"""
Tests for the notification center.
"""

import asyncio
from datetime import datetime, timedelta

from storefront_server.models import NotificationKind
from storefront_server.notifications import NotificationCenter


class TestPostAndDismiss:
    """Tests for the single notification slot."""

    def test_post(self, notifications):
        notification = notifications.post(NotificationKind.SUCCESS, "Done")

        assert notifications.current is notification
        assert notification.kind == NotificationKind.SUCCESS
        assert notification.expires_at - notification.created_at == timedelta(seconds=5)

    def test_post_replaces_current(self, notifications):
        first = notifications.post(NotificationKind.ERROR, "First")
        second = notifications.post(NotificationKind.SUCCESS, "Second")

        assert notifications.current is second
        assert notifications.current.id != first.id

    def test_dismiss(self, notifications):
        notifications.post(NotificationKind.ERROR, "Oops")

        assert notifications.dismiss() is True
        assert notifications.current is None
        assert notifications.dismiss() is False

    def test_dismiss_stale_id_is_ignored(self, notifications):
        """Dismissing an old notification never clears a newer one."""
        old = notifications.post(NotificationKind.ERROR, "Old")
        new = notifications.post(NotificationKind.SUCCESS, "New")

        assert notifications.dismiss(old.id) is False
        assert notifications.current is new
        assert notifications.dismiss(new.id) is True


class TestExpiry:
    """Tests for automatic dismissal."""

    def test_timer_dismisses_in_event_loop(self):
        center = NotificationCenter(timeout=0.05)

        async def scenario():
            center.post(NotificationKind.SUCCESS, "Done")
            assert center._current is not None
            await asyncio.sleep(0.1)
            return center._current

        assert asyncio.run(scenario()) is None

    def test_repost_restarts_timer(self):
        center = NotificationCenter(timeout=0.2)

        async def scenario():
            center.post(NotificationKind.ERROR, "First")
            await asyncio.sleep(0.12)
            second = center.post(NotificationKind.SUCCESS, "Second")
            await asyncio.sleep(0.12)
            # first timer would have fired by now; second is still visible
            assert center._current is second
            await asyncio.sleep(0.2)
            return center._current

        assert asyncio.run(scenario()) is None

    def test_dismiss_cancels_timer(self):
        center = NotificationCenter(timeout=0.05)

        async def scenario():
            center.post(NotificationKind.SUCCESS, "Done")
            center.dismiss()
            return center._timer

        assert asyncio.run(scenario()) is None

    def test_expiry_checked_on_read_without_loop(self, notifications):
        notification = notifications.post(NotificationKind.CANCELLED, "Cancelled")
        notification.expires_at = datetime.now() - timedelta(seconds=1)

        assert notifications.current is None
