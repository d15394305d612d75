"""
Shared pytest fixtures for the storefront tests.

The commerce platform is replaced by an ``httpx.MockTransport`` backed by
in-memory data, and the checkout widget by a recording test double.
"""

import json
from collections import defaultdict
from typing import Any, Optional, Union

import httpx
import pytest

from storefront_server.checkout import CheckoutBridge
from storefront_server.commerce_client import CommerceClient
from storefront_server.config import CheckoutConfig, StorefrontConfig
from storefront_server.notifications import NotificationCenter
from storefront_server.purchase import PurchaseCoordinator

API_URL = "http://platform.test/api"


class FakePlatform:
    """In-memory commerce platform answering the client's REST calls."""

    def __init__(self) -> None:
        self.categories: list[dict[str, Any]] = [
            {"id": 1, "name": "Rangos", "description": "", "order": 0},
            {"id": 2, "name": "Kits", "description": "", "order": 0},
        ]
        self.packages: list[dict[str, Any]] = [
            {
                "id": 10,
                "name": "Rango VIP",
                "description": "<p>Acceso <strong>VIP</strong> al servidor</p>",
                "type": "single",
                "base_price": 10.0,
                "sales_price": 7.5,
                "currency": "USD",
                "category": {"id": 1, "name": "Rangos"},
            },
            {
                "id": 20,
                "name": "Kit Inicial",
                "description": "Herramientas básicas",
                "type": "single",
                "base_price": 5.0,
                "sales_price": None,
                "currency": "USD",
                "category": {"id": 2, "name": "Kits"},
            },
        ]
        self.failures: dict[tuple[str, str], Union[tuple[int, dict], Exception]] = {}
        self.requests: list[httpx.Request] = []
        self.baskets_created = 0

    def fail(
        self,
        method: str,
        path: str,
        status: Optional[int] = None,
        error: Optional[Exception] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> None:
        """Make a route fail with a status code or a transport exception."""
        if error is not None:
            self.failures[(method, path)] = error
        else:
            self.failures[(method, path)] = (status, body or {"error": "boom"})

    def recover(self) -> None:
        self.failures.clear()

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and r.url.path == "/api" + path
        ]

    def _basket(self, ident: str, package_id: Optional[int] = None) -> dict[str, Any]:
        packages = []
        if package_id is not None:
            packages.append(
                {"id": package_id, "name": f"Package {package_id}", "in_basket": {"quantity": 1, "price": 7.5}}
            )
        return {
            "ident": ident,
            "complete": False,
            "base_price": 7.5 if packages else 0,
            "total_price": 7.5 if packages else 0,
            "currency": "USD",
            "packages": packages,
            "links": {"checkout": f"https://checkout.test/{ident}"},
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api")
        failure = self.failures.get((request.method, path))
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            status, body = failure
            return httpx.Response(status, json=body)

        if request.method == "GET" and path == "/categories":
            return httpx.Response(200, json={"data": self.categories})
        if request.method == "GET" and path == "/packages":
            return httpx.Response(200, json={"data": self.packages})
        if request.method == "POST" and path == "/baskets":
            self.baskets_created += 1
            return httpx.Response(200, json={"data": self._basket(f"basket-{self.baskets_created}")})
        if request.method == "POST" and path.startswith("/baskets/") and path.endswith("/packages"):
            ident = path.split("/")[2]
            body = json.loads(request.content)
            # add-package answers without the data envelope
            return httpx.Response(200, json=self._basket(ident, body["package_id"]))
        return httpx.Response(404, json={"error": f"No route for {request.method} {path}"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeCheckoutWidget:
    """Test double for the checkout widget capability."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.calls: list[tuple] = []
        self.handlers: dict[str, list] = defaultdict(list)

    def init(self, config: dict[str, Any]) -> None:
        self.calls.append(("init", config))

    def launch(self) -> None:
        self.calls.append(("launch",))

    def close(self) -> None:
        self.calls.append(("close",))

    def on(self, event: str, handler) -> None:
        self.handlers[event].append(handler)

    def off(self, event: str, handler) -> None:
        self.handlers[event].remove(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        for handler in list(self.handlers[event]):
            handler(payload)

    def subscriber_count(self, event: str) -> int:
        return len(self.handlers[event])


@pytest.fixture
def platform() -> FakePlatform:
    """Fresh fake commerce platform for each test."""
    return FakePlatform()


@pytest.fixture
def client(platform: FakePlatform) -> CommerceClient:
    return CommerceClient(API_URL, timeout=5.0, transport=platform.transport)


@pytest.fixture
def widget() -> FakeCheckoutWidget:
    return FakeCheckoutWidget()


@pytest.fixture
def notifications() -> NotificationCenter:
    return NotificationCenter(timeout=5.0)


@pytest.fixture
def bridge(widget: FakeCheckoutWidget) -> CheckoutBridge:
    return CheckoutBridge(widget, CheckoutConfig())


@pytest.fixture
def coordinator(
    client: CommerceClient, bridge: CheckoutBridge, notifications: NotificationCenter
) -> PurchaseCoordinator:
    return PurchaseCoordinator(client, bridge, notifications)


@pytest.fixture
def config() -> StorefrontConfig:
    return StorefrontConfig(api_url=API_URL, support_url="https://discord.test/invite")
