"""
Tests for the checkout bridge.

The widget is replaced by FakeCheckoutWidget from conftest.
"""

import pytest

from storefront_server.checkout import CheckoutBridge, CheckoutEvent
from storefront_server.config import CheckoutColor, CheckoutConfig
from storefront_server.errors import IntegrationError
from storefront_server.models import CheckoutOutcome

from conftest import FakeCheckoutWidget

EVENTS = [event.value for event in CheckoutEvent]


@pytest.fixture
def outcomes(bridge):
    received = []
    bridge.add_listener(lambda outcome, payload: received.append((outcome, payload)))
    return received


class TestSubscriptions:
    """Tests for widget event registration."""

    def test_subscribes_once_on_construction(self, bridge, widget):
        for event in EVENTS:
            assert widget.subscriber_count(event) == 1

    def test_repeated_launches_do_not_resubscribe(self, bridge, widget):
        bridge.launch_checkout("basket-1")
        bridge.launch_checkout("basket-2")
        bridge.launch_checkout("basket-3")

        for event in EVENTS:
            assert widget.subscriber_count(event) == 1

    def test_detach_unsubscribes(self, bridge, widget):
        bridge.detach()
        for event in EVENTS:
            assert widget.subscriber_count(event) == 0

    def test_subscribes_on_launch_when_widget_set_later(self):
        bridge = CheckoutBridge(None)
        widget = FakeCheckoutWidget()
        bridge.widget = widget

        bridge.launch_checkout("basket-1")
        bridge.launch_checkout("basket-2")

        for event in EVENTS:
            assert widget.subscriber_count(event) == 1


class TestLaunch:
    """Tests for launching the widget."""

    def test_launch_initializes_then_launches(self, widget):
        config = CheckoutConfig(
            theme="light",
            colors=[CheckoutColor(name="primary", color="#000000")],
            locale="en_US",
        )
        bridge = CheckoutBridge(widget, config)

        assert bridge.launch_checkout("basket-1") is True

        assert widget.calls == [
            (
                "init",
                {
                    "ident": "basket-1",
                    "theme": "light",
                    "colors": [{"name": "primary", "color": "#000000"}],
                    "locale": "en_US",
                },
            ),
            ("launch",),
        ]

    def test_default_appearance(self, bridge, widget):
        bridge.launch_checkout("basket-1")
        config = widget.calls[0][1]

        assert config["theme"] == "dark"
        assert config["locale"] == "es_ES"
        assert config["colors"][0] == {"name": "primary", "color": "#228B22"}

    def test_empty_ident_is_noop(self, bridge, widget, caplog):
        assert bridge.launch_checkout("") is False
        assert widget.calls == []
        assert "Basket ident is required" in caplog.text

    def test_missing_widget_raises(self):
        bridge = CheckoutBridge(None)
        with pytest.raises(IntegrationError):
            bridge.launch_checkout("basket-1")

    def test_unavailable_widget_raises(self):
        widget = FakeCheckoutWidget(available=False)
        bridge = CheckoutBridge(widget)

        with pytest.raises(IntegrationError):
            bridge.launch_checkout("basket-1")
        assert widget.calls == []

    def test_close_checkout(self, bridge, widget):
        bridge.close_checkout()
        assert widget.calls == [("close",)]


class TestOutcomes:
    """Tests for translating widget events into outcomes."""

    def test_payment_complete(self, bridge, widget, outcomes):
        bridge.launch_checkout("basket-1")
        widget.emit("payment:complete", {"transaction": "tx-1"})

        assert outcomes == [(CheckoutOutcome.COMPLETE, {"transaction": "tx-1"})]

    def test_payment_error(self, bridge, widget, outcomes):
        bridge.launch_checkout("basket-1")
        widget.emit("payment:error")

        assert outcomes == [(CheckoutOutcome.ERROR, None)]

    def test_close_without_payment_is_cancelled(self, bridge, widget, outcomes):
        bridge.launch_checkout("basket-1")
        widget.emit("open")
        widget.emit("close")

        assert outcomes == [(CheckoutOutcome.CANCELLED, None)]

    def test_close_after_complete_is_not_cancelled(self, bridge, widget, outcomes):
        bridge.launch_checkout("basket-1")
        widget.emit("payment:complete")
        widget.emit("close")

        assert outcomes == [(CheckoutOutcome.COMPLETE, None)]

    def test_close_after_error_is_not_cancelled(self, bridge, widget, outcomes):
        bridge.launch_checkout("basket-1")
        widget.emit("payment:error")
        widget.emit("close")

        assert [outcome for outcome, _ in outcomes] == [CheckoutOutcome.ERROR]

    def test_close_before_any_launch_is_ignored(self, bridge, widget, outcomes):
        widget.emit("close")
        assert outcomes == []

    def test_new_launch_rearms_cancel(self, bridge, widget, outcomes):
        bridge.launch_checkout("basket-1")
        widget.emit("payment:complete")
        bridge.launch_checkout("basket-2")
        widget.emit("close")

        assert [outcome for outcome, _ in outcomes] == [
            CheckoutOutcome.COMPLETE,
            CheckoutOutcome.CANCELLED,
        ]
