"""Data models for commerce platform entities and storefront state."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field


class CategoryRef(BaseModel):
    """Owning category as embedded in a package."""

    id: int
    name: str


class Package(BaseModel):
    """Represents a purchasable package from the catalog."""

    id: int = Field(description="Package ID")
    name: str = Field(description="Package name")
    description: str = Field(default="", description="Rich-text (HTML) description")
    type: Optional[str] = Field(None, description="Package type (single, subscription, ...)")
    base_price: Decimal = Field(description="Base price")
    sales_price: Optional[Decimal] = Field(None, description="Sale price if discounted")
    total_price: Optional[Decimal] = Field(None, description="Price including tax")
    currency: str = Field(description="ISO currency code")
    discount: Decimal = Field(default=Decimal("0"), description="Platform-reported discount")
    image: Optional[str] = Field(None, description="Package image URL")
    disable_quantity: bool = False
    disable_gifting: bool = False
    expiration_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    category: Optional[CategoryRef] = Field(None, description="Owning category")

    @property
    def has_discount(self) -> bool:
        """A sale price only counts when it is strictly below the base price."""
        return self.sales_price is not None and self.sales_price < self.base_price

    @property
    def display_price(self) -> Decimal:
        if self.has_discount:
            return self.sales_price
        return self.base_price

    @property
    def discount_percent(self) -> int:
        if not self.has_discount or self.base_price <= 0:
            return 0
        ratio = (Decimal("1") - self.sales_price / self.base_price) * 100
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @property
    def discount_badge(self) -> Optional[str]:
        """Badge text such as ``-25%``, or None when there is no discount."""
        if not self.has_discount:
            return None
        return f"-{self.discount_percent}%"

    @property
    def description_preview(self) -> str:
        """Description with markup stripped, for card previews."""
        if not self.description:
            return ""
        soup = BeautifulSoup(self.description, "lxml")
        return soup.get_text(" ", strip=True)


class Category(BaseModel):
    """Represents a catalog category."""

    id: int = Field(description="Category ID")
    name: str = Field(description="Display name")
    description: str = Field(default="", description="Category description")
    order: int = Field(default=0, description="Ordering hint")
    packages: list[Package] = Field(
        default_factory=list, description="Packages, only when requested"
    )


class BasketLine(BaseModel):
    """Quantity and price of a package inside a basket."""

    quantity: int = Field(default=1, ge=0)
    price: Decimal = Decimal("0")
    gift_username_id: Optional[int] = None


class BasketPackage(BaseModel):
    """A package contained in a basket."""

    id: int
    name: str = ""
    description: str = ""
    in_basket: BasketLine = Field(default_factory=BasketLine)


class Basket(BaseModel):
    """Server-side basket identified by an opaque ident."""

    ident: str = Field(min_length=1, description="Basket identifier issued by the platform")
    id: Optional[int] = None
    complete: bool = False
    country: Optional[str] = None
    username: Optional[str] = None
    cancel_url: Optional[str] = None
    complete_url: Optional[str] = None
    base_price: Decimal = Decimal("0")
    sales_tax: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")
    currency: str = ""
    packages: list[BasketPackage] = Field(default_factory=list)
    coupons: list[Any] = Field(default_factory=list)
    giftcards: list[Any] = Field(default_factory=list)
    creator_code: Optional[str] = None
    links: dict[str, str] = Field(default_factory=dict)

    @property
    def checkout_url(self) -> Optional[str]:
        return self.links.get("checkout")

    def quantity_of(self, package_id: int) -> int:
        """Quantity of a package in the basket (0 if absent)."""
        for line in self.packages:
            if line.id == package_id:
                return line.in_basket.quantity
        return 0


class AuthLink(BaseModel):
    """Login link offered by the platform for a basket."""

    name: str
    url: str


class Webstore(BaseModel):
    """Webstore information."""

    id: int
    name: str
    description: str = ""
    webstore_url: Optional[str] = None
    currency: str = ""
    lang: str = ""
    logo: Optional[str] = None


class SidebarModule(BaseModel):
    """Sidebar widget such as top customers or recent purchases."""

    id: int
    type: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    data: dict[str, Any] = Field(default_factory=dict)


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"


class Notification(BaseModel):
    """Transient outcome message shown to the visitor."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    kind: NotificationKind
    message: str
    created_at: datetime = Field(default_factory=datetime.now)
    expires_at: datetime


class CheckoutOutcome(str, Enum):
    """Terminal outcome reported by the checkout widget."""

    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"


class PurchaseState(str, Enum):
    IDLE = "idle"
    CREATING_BASKET = "creating_basket"
    ADDING_PACKAGE = "adding_package"
    AWAITING_CHECKOUT = "awaiting_checkout"
