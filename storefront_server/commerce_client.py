"""Commerce platform API client."""

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .errors import ClientError, NetworkError, ServerError
from .models import AuthLink, Basket, Category, Package, SidebarModule, Webstore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# status reported for success responses whose payload has the wrong shape
BAD_PAYLOAD_STATUS = 502


class CommerceClient:
    """Client for the commerce platform's headless API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the commerce client.

        Args:
            base_url: API base URL (e.g. http://localhost:4000/api)
            timeout: Request timeout in seconds; a stalled call raises NetworkError
            transport: Optional httpx transport, used to substitute the platform in tests
        """
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Perform a request and return the decoded payload.

        The ``{"data": ...}`` envelope is unwrapped when present.

        Raises:
            NetworkError: If no response was received
            ClientError: On a 4xx response
            ServerError: On a 5xx response or an undecodable body
        """
        logger.debug(f"[API] {method} {path}")
        try:
            response = await self.client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            logger.error(f"[API] Timeout on {method} {path}")
            raise NetworkError(f"Request timed out: {method} {path}") from e
        except httpx.RequestError as e:
            logger.error(f"[API] Network error on {method} {path}: {e}")
            raise NetworkError(f"Connection error: {e}") from e

        status = response.status_code
        if status >= 400:
            message = self._error_message(response)
            if status >= 500:
                logger.error(f"[API] Server error {status}: {message}")
                raise ServerError(status, message)
            if status == 404:
                logger.error(f"[API] Not found: {path}")
            else:
                logger.error(f"[API] Error {status}: {message}")
            raise ClientError(status, message)

        if not response.content:
            return None

        try:
            payload = response.json()
        except ValueError as e:
            raise ServerError(status, f"Invalid JSON response from {path}") from e

        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract an error message from an error response."""
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            for key in ("error", "message", "detail"):
                if data.get(key):
                    return str(data[key])
        return response.reason_phrase or f"HTTP {response.status_code}"

    @staticmethod
    def _parse(model: type[ModelT], data: Any, path: str) -> ModelT:
        """
        Validate a payload against a model.

        Raises:
            ServerError: If the payload does not have the expected shape
        """
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"[API] Unexpected {model.__name__} payload from {path}: {e}")
            raise ServerError(
                BAD_PAYLOAD_STATUS, f"Unexpected response from {path}"
            ) from e

    @classmethod
    def _parse_list(cls, model: type[ModelT], data: Any, path: str) -> list[ModelT]:
        """Validate a list payload; a missing body is an empty list."""
        if data is None:
            return []
        if not isinstance(data, list):
            logger.error(f"[API] Expected a list from {path}, got {type(data).__name__}")
            raise ServerError(BAD_PAYLOAD_STATUS, f"Unexpected response from {path}")
        return [cls._parse(model, item, path) for item in data]

    # Webstore

    async def get_webstore(self) -> Webstore:
        """Fetch webstore information."""
        data = await self._request("GET", "/webstore")
        return self._parse(Webstore, data, "/webstore")

    async def get_pages(self) -> list[dict[str, Any]]:
        """Fetch the webstore's custom pages."""
        data = await self._request("GET", "/pages")
        if data is None:
            return []
        if not isinstance(data, list):
            raise ServerError(BAD_PAYLOAD_STATUS, "Unexpected response from /pages")
        return data

    async def get_sidebar(self) -> list[SidebarModule]:
        """Fetch sidebar modules (top customers, recent purchases, ...)."""
        data = await self._request("GET", "/sidebar")
        return self._parse_list(SidebarModule, data, "/sidebar")

    # Categories & packages

    async def list_categories(self, include_packages: bool = False) -> list[Category]:
        """
        Fetch all categories.

        Args:
            include_packages: Whether to embed packages in each category

        Returns:
            Categories in platform order
        """
        params = {"includePackages": "true"} if include_packages else None
        data = await self._request("GET", "/categories", params=params)
        return self._parse_list(Category, data, "/categories")

    async def get_category(self, category_id: int, include_packages: bool = False) -> Category:
        """Fetch a single category."""
        params = {"includePackages": "true"} if include_packages else None
        data = await self._request("GET", f"/categories/{category_id}", params=params)
        return self._parse(Category, data, f"/categories/{category_id}")

    async def list_packages(self) -> list[Package]:
        """Fetch all packages."""
        data = await self._request("GET", "/packages")
        return self._parse_list(Package, data, "/packages")

    async def get_package(self, package_id: int) -> Package:
        """Fetch a single package."""
        data = await self._request("GET", f"/packages/{package_id}")
        return self._parse(Package, data, f"/packages/{package_id}")

    # Baskets

    async def create_basket(
        self, complete_url: Optional[str] = None, cancel_url: Optional[str] = None
    ) -> Basket:
        """
        Create a new, empty basket.

        Args:
            complete_url: Where the platform sends the visitor after paying
            cancel_url: Where the platform sends the visitor after cancelling

        Returns:
            The created basket, carrying its ident
        """
        body: dict[str, Any] = {}
        if complete_url:
            body["complete_url"] = complete_url
        if cancel_url:
            body["cancel_url"] = cancel_url
        data = await self._request("POST", "/baskets", json=body)
        basket = self._parse(Basket, data, "/baskets")
        logger.info(f"Created basket {basket.ident}")
        return basket

    async def get_basket(self, basket_ident: str) -> Basket:
        """Fetch basket details."""
        data = await self._request("GET", f"/baskets/{basket_ident}")
        return self._parse(Basket, data, f"/baskets/{basket_ident}")

    async def get_basket_auth_links(
        self, basket_ident: str, return_url: Optional[str] = None
    ) -> list[AuthLink]:
        """Fetch the login links for a basket."""
        params = {"returnUrl": return_url} if return_url else None
        data = await self._request("GET", f"/baskets/{basket_ident}/auth", params=params)
        return self._parse_list(AuthLink, data, f"/baskets/{basket_ident}/auth")

    async def add_package(self, basket_ident: str, package_id: int, quantity: int = 1) -> Basket:
        """
        Add a package to a basket.

        Args:
            basket_ident: Basket identifier
            package_id: Package to add
            quantity: Quantity to add (default: 1)

        Returns:
            The updated basket
        """
        logger.info(f"Adding package {package_id} to basket {basket_ident} (qty: {quantity})")
        data = await self._request(
            "POST",
            f"/baskets/{basket_ident}/packages",
            json={"package_id": package_id, "quantity": quantity},
        )
        return self._parse(Basket, data, f"/baskets/{basket_ident}/packages")

    async def remove_package(self, basket_ident: str, package_id: int) -> Basket:
        """Remove a package from a basket."""
        data = await self._request(
            "POST",
            f"/baskets/{basket_ident}/packages/remove",
            json={"package_id": package_id},
        )
        return self._parse(Basket, data, f"/baskets/{basket_ident}/packages/remove")

    async def update_package_quantity(
        self, basket_ident: str, package_id: int, quantity: int
    ) -> bool:
        """
        Set the quantity of a package already in the basket.

        Returns:
            True if the platform accepted the update
        """
        data = await self._request(
            "PUT",
            f"/baskets/{basket_ident}/packages/{package_id}",
            json={"quantity": quantity},
        )
        if isinstance(data, dict):
            return bool(data.get("success", True))
        return True

    # Promotions

    async def apply_coupon(self, basket_ident: str, coupon_code: str) -> Basket:
        data = await self._request(
            "POST", f"/baskets/{basket_ident}/coupons", json={"coupon_code": coupon_code}
        )
        return self._parse(Basket, data, f"/baskets/{basket_ident}/coupons")

    async def remove_coupon(self, basket_ident: str) -> Basket:
        data = await self._request("POST", f"/baskets/{basket_ident}/coupons/remove")
        return self._parse(Basket, data, f"/baskets/{basket_ident}/coupons/remove")

    async def apply_gift_card(self, basket_ident: str, card_number: str) -> Basket:
        data = await self._request(
            "POST", f"/baskets/{basket_ident}/giftcards", json={"card_number": card_number}
        )
        return self._parse(Basket, data, f"/baskets/{basket_ident}/giftcards")

    async def remove_gift_card(self, basket_ident: str) -> Basket:
        data = await self._request("POST", f"/baskets/{basket_ident}/giftcards/remove")
        return self._parse(Basket, data, f"/baskets/{basket_ident}/giftcards/remove")

    async def apply_creator_code(self, basket_ident: str, creator_code: str) -> Basket:
        data = await self._request(
            "POST",
            f"/baskets/{basket_ident}/creator-codes",
            json={"creator_code": creator_code},
        )
        return self._parse(Basket, data, f"/baskets/{basket_ident}/creator-codes")

    async def remove_creator_code(self, basket_ident: str) -> Basket:
        data = await self._request("POST", f"/baskets/{basket_ident}/creator-codes/remove")
        return self._parse(Basket, data, f"/baskets/{basket_ident}/creator-codes/remove")
