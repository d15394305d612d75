"""Catalog loading and category slug resolution."""

import asyncio
import logging
import re
import unicodedata
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from .commerce_client import CommerceClient
from .errors import ResolutionMiss
from .models import Category, Package

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """
    Derive the URL slug for a category name.

    Diacritics are stripped, the result is lowercased, runs of anything
    other than ``[a-z0-9]`` become a single ``-`` and leading/trailing
    separators are trimmed.
    """
    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub("-", stripped.lower()).strip("-")


class Catalog(BaseModel):
    """Categories and packages from one catalog load."""

    categories: list[Category] = Field(default_factory=list)
    packages: list[Package] = Field(default_factory=list)

    def packages_in(self, category: Category) -> list[Package]:
        """Packages owned by the given category, in catalog order."""
        return [
            package
            for package in self.packages
            if package.category is not None and package.category.id == category.id
        ]

    def find_package(self, package_id: int) -> Optional[Package]:
        for package in self.packages:
            if package.id == package_id:
                return package
        return None


async def load_catalog(client: CommerceClient) -> Catalog:
    """
    Fetch packages and categories concurrently.

    Categories are ordered by their ordering hint; ties keep platform order.
    A failure in either fetch fails the whole load.
    """
    packages, categories = await asyncio.gather(
        client.list_packages(),
        client.list_categories(),
    )
    categories = sorted(categories, key=lambda category: category.order)
    logger.info(f"Loaded catalog: {len(categories)} categories, {len(packages)} packages")
    return Catalog(categories=categories, packages=packages)


@dataclass
class CategoryRoute:
    """Outcome of resolving a category route."""

    category: Optional[Category] = None
    redirect_to: Optional[str] = None
    replace: bool = False


class CatalogResolver:
    """Maps category slugs from the URL to catalog categories."""

    def __init__(self, route_prefix: str = "/tienda") -> None:
        self.route_prefix = "/" + route_prefix.strip("/")

    def category_path(self, category: Category) -> str:
        """Route path for a category, e.g. ``/tienda/rangos``."""
        return f"{self.route_prefix}/{slugify(category.name)}"

    def resolve(self, slug: Optional[str], categories: list[Category]) -> Category:
        """
        Find the category whose derived slug equals ``slug``.

        Slugs are recomputed from the category names on every call. When two
        categories normalize to the same slug, the first one wins.

        Raises:
            ResolutionMiss: If no category matches
        """
        if slug:
            for category in categories:
                if slugify(category.name) == slug:
                    return category
        raise ResolutionMiss(slug)

    def route(self, slug: Optional[str], categories: list[Category]) -> CategoryRoute:
        """
        Resolve a slug, redirecting to the first category on a miss.

        The redirect replaces the history entry so back-navigation does not
        revisit the invalid slug. An empty catalog never redirects.
        """
        try:
            return CategoryRoute(category=self.resolve(slug, categories))
        except ResolutionMiss:
            if not categories:
                logger.debug(f"No categories to resolve {slug!r} against")
                return CategoryRoute()
            target = self.category_path(categories[0])
            logger.info(f"Unknown category slug {slug!r}, redirecting to {target}")
            return CategoryRoute(redirect_to=target, replace=True)


class PackageView(BaseModel):
    """Package as presented on a product card or detail view."""

    id: int
    name: str
    description: str
    description_preview: str
    display_price: Decimal
    base_price: Decimal
    has_discount: bool
    discount_badge: Optional[str] = None
    currency: str
    image: Optional[str] = None
    category_name: Optional[str] = None
    purchasing: bool = False

    @classmethod
    def from_package(cls, package: Package, purchasing: bool = False) -> "PackageView":
        return cls(
            id=package.id,
            name=package.name,
            description=package.description,
            description_preview=package.description_preview,
            display_price=package.display_price,
            base_price=package.base_price,
            has_discount=package.has_discount,
            discount_badge=package.discount_badge,
            currency=package.currency,
            image=package.image,
            category_name=package.category.name if package.category else None,
            purchasing=purchasing,
        )
