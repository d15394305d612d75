"""Storefront session state consumed by the view layer."""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel, Field

from .catalog import Catalog, CatalogResolver, PackageView, load_catalog
from .checkout import CheckoutBridge, CheckoutWidget
from .commerce_client import CommerceClient
from .config import StorefrontConfig
from .errors import CatalogUnavailable, CommerceError
from .models import Category, Notification, NotificationKind, Package
from .notifications import NotificationCenter
from .purchase import PurchaseCoordinator

logger = logging.getLogger(__name__)

CATALOG_ERROR_MESSAGE = "Failed to load store items"


class CategorySummary(BaseModel):
    id: int
    name: str
    slug: str
    path: str


class CategoryView(BaseModel):
    """What a category page shows, or where it redirects."""

    category: Optional[CategorySummary] = None
    packages: list[PackageView] = Field(default_factory=list)
    redirect_to: Optional[str] = None
    replace: bool = False


class Storefront:
    """
    Composes catalog, purchase and notification state for one session.

    Example:
        storefront = build_storefront(StorefrontConfig.from_env(), widget=widget)
        await storefront.load_catalog()
        view = storefront.browse("rangos")
        await storefront.purchase(view.packages[0].id)
    """

    def __init__(
        self,
        client: CommerceClient,
        resolver: CatalogResolver,
        coordinator: PurchaseCoordinator,
        notifications: NotificationCenter,
        support_url: Optional[str] = None,
    ) -> None:
        self.client = client
        self.resolver = resolver
        self.coordinator = coordinator
        self.notifications = notifications
        self.support_url = support_url

        self.catalog: Optional[Catalog] = None
        self.catalog_error: Optional[str] = None
        self.selected_package_id: Optional[int] = None

    async def load_catalog(self) -> Optional[Catalog]:
        """
        Load (or reload) the catalog.

        On failure the previous catalog is dropped, a page-level error is
        recorded and an error notification is posted. There is no automatic
        retry; call :meth:`retry_catalog`.

        Returns:
            The loaded catalog, or None on failure
        """
        try:
            catalog = await load_catalog(self.client)
        except CommerceError as e:
            logger.error(f"Catalog load failed: {e}")
            self._catalog_failed()
            return None
        except Exception as e:
            logger.error(f"Unexpected error loading catalog: {e}", exc_info=True)
            self._catalog_failed()
            return None

        self.catalog = catalog
        self.catalog_error = None
        return catalog

    def _catalog_failed(self) -> None:
        self.catalog = None
        self.catalog_error = CATALOG_ERROR_MESSAGE
        self.notifications.post(NotificationKind.ERROR, CATALOG_ERROR_MESSAGE)

    async def retry_catalog(self) -> Optional[Catalog]:
        """Manual retry after a failed catalog load."""
        logger.info("Retrying catalog load")
        return await self.load_catalog()

    def _require_catalog(self) -> Catalog:
        if self.catalog is None:
            raise CatalogUnavailable(self.catalog_error or "Catalog not loaded")
        return self.catalog

    @property
    def categories(self) -> list[Category]:
        return self._require_catalog().categories

    def summarize(self, category: Category) -> CategorySummary:
        path = self.resolver.category_path(category)
        return CategorySummary(
            id=category.id,
            name=category.name,
            slug=path.rsplit("/", 1)[-1],
            path=path,
        )

    def browse(self, slug: Optional[str]) -> CategoryView:
        """
        Resolve a category route and list its packages.

        Raises:
            CatalogUnavailable: If the catalog is in its error state
        """
        catalog = self._require_catalog()
        route = self.resolver.route(slug, catalog.categories)
        if route.redirect_to is not None:
            return CategoryView(redirect_to=route.redirect_to, replace=route.replace)
        if route.category is None:
            return CategoryView()

        return CategoryView(
            category=self.summarize(route.category),
            packages=[
                PackageView.from_package(
                    package, purchasing=self.coordinator.is_purchasing(package.id)
                )
                for package in catalog.packages_in(route.category)
            ],
        )

    def find_package(self, package_id: int) -> Optional[Package]:
        return self._require_catalog().find_package(package_id)

    def view_details(self, package_id: int) -> Optional[PackageView]:
        """Select a package for the detail view."""
        package = self.find_package(package_id)
        if package is None:
            return None
        self.selected_package_id = package_id
        return PackageView.from_package(
            package, purchasing=self.coordinator.is_purchasing(package_id)
        )

    def close_details(self) -> None:
        self.selected_package_id = None

    async def purchase(self, package_id: int) -> bool:
        """Start a purchase; ignored while another one is in flight."""
        return await self.coordinator.purchase(package_id)

    @property
    def notification(self) -> Optional[Notification]:
        return self.notifications.current

    def dismiss_notification(self, notification_id: Optional[str] = None) -> bool:
        return self.notifications.dismiss(notification_id)

    async def close(self) -> None:
        await self.client.close()


def build_storefront(
    config: StorefrontConfig,
    widget: Optional[CheckoutWidget] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Storefront:
    """
    Wire the storefront components together.

    Args:
        config: Storefront configuration
        widget: Checkout widget capability; purchases cannot launch checkout without one
        transport: Optional httpx transport for the commerce client

    Returns:
        A storefront with no catalog loaded yet
    """
    client = CommerceClient(config.api_url, timeout=config.request_timeout, transport=transport)
    notifications = NotificationCenter(timeout=config.notification_timeout)
    bridge = CheckoutBridge(widget, config.checkout)
    coordinator = PurchaseCoordinator(
        client,
        bridge,
        notifications,
        complete_url=config.complete_url,
        cancel_url=config.cancel_url,
    )
    return Storefront(
        client,
        CatalogResolver(config.route_prefix),
        coordinator,
        notifications,
        support_url=config.support_url,
    )
