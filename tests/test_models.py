"""
Tests for the data models.

These tests verify price presentation and basket helpers.
"""

from decimal import Decimal

import pytest

from storefront_server.models import Basket, Package


def make_package(**overrides) -> Package:
    data = {
        "id": 1,
        "name": "Rango VIP",
        "description": "",
        "base_price": "10.00",
        "currency": "USD",
    }
    data.update(overrides)
    return Package.model_validate(data)


class TestPackagePricing:
    """Tests for display price and discount badge."""

    def test_sale_price_is_displayed(self):
        """A sale price below the base price becomes the display price."""
        package = make_package(sales_price="7.50")

        assert package.has_discount is True
        assert package.display_price == Decimal("7.50")
        assert package.discount_percent == 25
        assert package.discount_badge == "-25%"

    def test_no_sale_price(self):
        package = make_package()

        assert package.has_discount is False
        assert package.display_price == Decimal("10.00")
        assert package.discount_percent == 0
        assert package.discount_badge is None

    def test_sale_price_not_below_base_is_ignored(self):
        """A sale price equal to or above the base price is not a discount."""
        package = make_package(sales_price="10.00")

        assert package.has_discount is False
        assert package.display_price == Decimal("10.00")
        assert package.discount_badge is None

    @pytest.mark.parametrize(
        "base, sale, expected",
        [
            ("3.00", "2.00", 33),
            ("8.00", "7.00", 13),  # 12.5 rounds half up
            ("19.99", "9.99", 50),
        ],
    )
    def test_discount_percent_rounding(self, base, sale, expected):
        package = make_package(base_price=base, sales_price=sale)
        assert package.discount_percent == expected

    def test_prices_accept_json_numbers(self):
        package = make_package(base_price=10.0, sales_price=7.5)
        assert package.display_price == Decimal("7.5")


class TestDescriptionPreview:
    """Tests for stripping markup from rich-text descriptions."""

    def test_strips_tags(self):
        package = make_package(description="<p>Acceso <strong>VIP</strong></p><p>Para siempre</p>")
        assert package.description_preview == "Acceso VIP Para siempre"

    def test_plain_text_is_kept(self):
        package = make_package(description="Herramientas básicas")
        assert package.description_preview == "Herramientas básicas"

    def test_empty_description(self):
        assert make_package(description="").description_preview == ""


class TestBasket:
    """Tests for the basket model."""

    def test_parse_platform_basket(self):
        basket = Basket.model_validate(
            {
                "ident": "abc123",
                "total_price": 7.5,
                "currency": "USD",
                "packages": [
                    {"id": 10, "name": "Rango VIP", "in_basket": {"quantity": 2, "price": 7.5}}
                ],
                "links": {"checkout": "https://checkout.test/abc123"},
            }
        )

        assert basket.ident == "abc123"
        assert basket.checkout_url == "https://checkout.test/abc123"
        assert basket.quantity_of(10) == 2
        assert basket.quantity_of(99) == 0

    def test_missing_links(self):
        basket = Basket(ident="abc123")
        assert basket.checkout_url is None
        assert basket.packages == []
