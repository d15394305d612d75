"""Single-flight purchase coordination."""

import logging
from typing import Any, Optional

from .checkout import CheckoutBridge
from .commerce_client import CommerceClient
from .errors import CommerceError, IntegrationError, NetworkError, ResponseError
from .models import Basket, CheckoutOutcome, NotificationKind, PurchaseState
from .notifications import NotificationCenter

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Purchase complete! Thank you for your support."
CANCELLED_MESSAGE = "Checkout was cancelled."
PAYMENT_ERROR_MESSAGE = "The payment could not be completed. Please try again."
BASKET_ERROR_MESSAGE = "Could not start the purchase"


class PurchaseCoordinator:
    """
    Runs one purchase at a time: create basket, add package, launch checkout.

    While a purchase is in flight (from basket creation until the checkout
    widget reports a terminal outcome) further purchase requests are
    ignored. Every terminal outcome releases the lock and posts one
    notification.
    """

    def __init__(
        self,
        client: CommerceClient,
        bridge: CheckoutBridge,
        notifications: NotificationCenter,
        complete_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> None:
        self.client = client
        self.bridge = bridge
        self.notifications = notifications
        self.complete_url = complete_url
        self.cancel_url = cancel_url

        self._state = PurchaseState.IDLE
        self._lock: Optional[int] = None
        self._basket: Optional[Basket] = None

        bridge.add_listener(self.handle_outcome)

    @property
    def state(self) -> PurchaseState:
        return self._state

    @property
    def in_flight(self) -> Optional[int]:
        """Package id holding the purchase lock, or None."""
        return self._lock

    @property
    def basket(self) -> Optional[Basket]:
        """Basket of the current attempt."""
        return self._basket

    def is_purchasing(self, package_id: int) -> bool:
        return self._lock == package_id

    async def purchase(self, package_id: int) -> bool:
        """
        Start a purchase of one unit of a package.

        Args:
            package_id: Package to buy

        Returns:
            True if the sequence reached checkout, False if it was ignored or failed
        """
        if self._lock is not None:
            logger.info(
                f"Ignoring purchase of package {package_id}: "
                f"package {self._lock} is already in flight"
            )
            return False

        self._lock = package_id
        self._state = PurchaseState.CREATING_BASKET
        logger.info(f"Starting purchase of package {package_id}")

        try:
            basket = await self.client.create_basket(
                complete_url=self.complete_url, cancel_url=self.cancel_url
            )
            self._basket = basket
            self._state = PurchaseState.ADDING_PACKAGE
            updated = await self.client.add_package(basket.ident, package_id, quantity=1)
        except CommerceError as e:
            logger.error(f"Purchase of package {package_id} failed: {e}")
            self._finish(NotificationKind.ERROR, self._failure_message(e))
            return False
        except Exception as e:
            logger.error(f"Unexpected error purchasing package {package_id}: {e}", exc_info=True)
            self._finish(NotificationKind.ERROR, self._failure_message(e))
            return False

        self._basket = updated
        self._state = PurchaseState.AWAITING_CHECKOUT

        try:
            self.bridge.launch_checkout(basket.ident)
        except IntegrationError as e:
            # lock stays held until a widget event arrives
            logger.error(f"Could not launch checkout for basket {basket.ident}: {e}")
        return True

    def handle_outcome(self, outcome: CheckoutOutcome, payload: Any = None) -> None:
        """React to a terminal outcome reported by the checkout bridge."""
        if self._state != PurchaseState.AWAITING_CHECKOUT:
            logger.debug(f"Ignoring checkout outcome {outcome.value} in state {self._state.value}")
            return

        logger.info(f"Purchase of package {self._lock} finished: {outcome.value}")
        if outcome == CheckoutOutcome.COMPLETE:
            self._finish(NotificationKind.SUCCESS, SUCCESS_MESSAGE)
        elif outcome == CheckoutOutcome.ERROR:
            self._finish(NotificationKind.ERROR, PAYMENT_ERROR_MESSAGE)
        else:
            self._finish(NotificationKind.CANCELLED, CANCELLED_MESSAGE)

    def _finish(self, kind: NotificationKind, message: str) -> None:
        self._state = PurchaseState.IDLE
        self._lock = None
        self._basket = None
        self.notifications.post(kind, message)

    @staticmethod
    def _failure_message(error: Exception) -> str:
        if isinstance(error, ResponseError):
            return f"{BASKET_ERROR_MESSAGE}: {error.message}"
        if isinstance(error, NetworkError):
            return f"{BASKET_ERROR_MESSAGE}: connection error"
        return f"{BASKET_ERROR_MESSAGE}: unexpected error"
