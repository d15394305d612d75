"""Bridge between the storefront and the external checkout widget."""

import logging
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from .config import CheckoutConfig
from .errors import IntegrationError
from .models import CheckoutOutcome

logger = logging.getLogger(__name__)


class CheckoutEvent(str, Enum):
    """Events emitted by the checkout widget."""

    OPEN = "open"
    CLOSE = "close"
    PAYMENT_COMPLETE = "payment:complete"
    PAYMENT_ERROR = "payment:error"


WidgetHandler = Callable[[Any], None]
OutcomeHandler = Callable[[CheckoutOutcome, Any], None]


class CheckoutWidget(Protocol):
    """Capability exposed by the checkout widget."""

    @property
    def available(self) -> bool: ...

    def init(self, config: dict[str, Any]) -> None: ...

    def launch(self) -> None: ...

    def close(self) -> None: ...

    def on(self, event: str, handler: WidgetHandler) -> None: ...

    def off(self, event: str, handler: WidgetHandler) -> None: ...


class CheckoutBridge:
    """
    Drives the checkout widget and translates its events into outcomes.

    Widget events are subscribed exactly once per bridge, however many
    times checkout is launched. ``payment:complete`` and ``payment:error``
    report Complete and Error; a ``close`` that was not preceded by one of
    those since the last launch reports Cancelled.
    """

    def __init__(self, widget: Optional[CheckoutWidget], config: Optional[CheckoutConfig] = None) -> None:
        """
        Initialize the bridge.

        Args:
            widget: Checkout widget capability, or None if it could not be loaded
            config: Theme, colors and locale passed to the widget
        """
        self.widget = widget
        self.config = config or CheckoutConfig()
        self._listeners: list[OutcomeHandler] = []
        self._subscribed = False
        self._settled = True
        self._handlers: dict[str, WidgetHandler] = {
            CheckoutEvent.OPEN.value: self._on_open,
            CheckoutEvent.CLOSE.value: self._on_close,
            CheckoutEvent.PAYMENT_COMPLETE.value: self._on_payment_complete,
            CheckoutEvent.PAYMENT_ERROR.value: self._on_payment_error,
        }
        self._subscribe()

    def add_listener(self, handler: OutcomeHandler) -> None:
        """Register a handler for checkout outcomes."""
        self._listeners.append(handler)

    def _subscribe(self) -> None:
        if self._subscribed or self.widget is None:
            return
        for event, handler in self._handlers.items():
            self.widget.on(event, handler)
        self._subscribed = True
        logger.debug("Subscribed to checkout widget events")

    def detach(self) -> None:
        """Unsubscribe from all widget events."""
        if not self._subscribed or self.widget is None:
            return
        for event, handler in self._handlers.items():
            self.widget.off(event, handler)
        self._subscribed = False

    def launch_checkout(self, basket_ident: str) -> bool:
        """
        Initialize and launch the checkout widget for a basket.

        Args:
            basket_ident: The basket identifier from the commerce platform

        Returns:
            True if the widget was launched, False if the ident was empty

        Raises:
            IntegrationError: If the checkout widget is not available
        """
        if not basket_ident:
            logger.error("Basket ident is required to launch checkout")
            return False

        if self.widget is None or not self.widget.available:
            raise IntegrationError("Checkout widget is not available")

        self._subscribe()
        self._settled = False
        self.widget.init(
            {
                "ident": basket_ident,
                "theme": self.config.theme,
                "colors": [color.model_dump() for color in self.config.colors],
                "locale": self.config.locale,
            }
        )
        self.widget.launch()
        logger.info(f"Launched checkout for basket {basket_ident}")
        return True

    def close_checkout(self) -> None:
        """Close the checkout widget programmatically."""
        if self.widget is not None:
            self.widget.close()

    def _emit(self, outcome: CheckoutOutcome, payload: Any) -> None:
        for listener in list(self._listeners):
            listener(outcome, payload)

    def _on_open(self, payload: Any = None) -> None:
        logger.info("Checkout opened")

    def _on_close(self, payload: Any = None) -> None:
        if self._settled:
            logger.debug("Checkout closed after payment outcome")
            return
        self._settled = True
        logger.info("Checkout closed without payment")
        self._emit(CheckoutOutcome.CANCELLED, payload)

    def _on_payment_complete(self, payload: Any = None) -> None:
        self._settled = True
        logger.info("Checkout payment complete")
        self._emit(CheckoutOutcome.COMPLETE, payload)

    def _on_payment_error(self, payload: Any = None) -> None:
        self._settled = True
        logger.warning(f"Checkout payment error: {payload}")
        self._emit(CheckoutOutcome.ERROR, payload)
