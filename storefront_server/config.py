"""Configuration loaded from environment variables."""

import json
import logging
import os
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class CheckoutColor(BaseModel):
    """Named color override for the checkout widget."""

    name: str
    color: str


def _default_colors() -> list[CheckoutColor]:
    return [
        CheckoutColor(name="primary", color="#228B22"),
        CheckoutColor(name="secondary", color="#10B981"),
    ]


class CheckoutConfig(BaseModel):
    """Appearance settings passed to the checkout widget on init."""

    theme: Literal["light", "dark", "auto"] = "dark"
    colors: list[CheckoutColor] = Field(default_factory=_default_colors)
    locale: str = "es_ES"


class StorefrontConfig(BaseModel):
    """Storefront settings."""

    api_url: str = Field(default="http://localhost:4000/api", description="Commerce API base URL")
    request_timeout: float = Field(default=15.0, gt=0, description="Request timeout in seconds")
    support_url: Optional[str] = Field(None, description="Support/community contact link")
    route_prefix: str = Field(default="/tienda", description="Category route prefix")
    notification_timeout: float = Field(default=5.0, gt=0, description="Notification lifetime in seconds")
    complete_url: Optional[str] = Field(None, description="Redirect after a completed checkout")
    cancel_url: Optional[str] = Field(None, description="Redirect after a cancelled checkout")
    checkout: CheckoutConfig = Field(default_factory=CheckoutConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "StorefrontConfig":
        """
        Build the configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ

        Returns:
            The parsed configuration

        Raises:
            ValueError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ

        values: dict = {}
        mapping = {
            "STOREFRONT_API_URL": "api_url",
            "STOREFRONT_REQUEST_TIMEOUT": "request_timeout",
            "STOREFRONT_SUPPORT_URL": "support_url",
            "STOREFRONT_ROUTE_PREFIX": "route_prefix",
            "STOREFRONT_NOTIFICATION_TIMEOUT": "notification_timeout",
            "STOREFRONT_COMPLETE_URL": "complete_url",
            "STOREFRONT_CANCEL_URL": "cancel_url",
            "STOREFRONT_LOG_LEVEL": "log_level",
        }
        for var, field_name in mapping.items():
            if env.get(var):
                values[field_name] = env[var]

        checkout: dict = {}
        if env.get("STOREFRONT_CHECKOUT_THEME"):
            checkout["theme"] = env["STOREFRONT_CHECKOUT_THEME"]
        if env.get("STOREFRONT_CHECKOUT_LOCALE"):
            checkout["locale"] = env["STOREFRONT_CHECKOUT_LOCALE"]
        if env.get("STOREFRONT_CHECKOUT_COLORS"):
            try:
                checkout["colors"] = json.loads(env["STOREFRONT_CHECKOUT_COLORS"])
            except json.JSONDecodeError as e:
                raise ValueError(f"STOREFRONT_CHECKOUT_COLORS is not valid JSON: {e}") from e
        if checkout:
            values["checkout"] = checkout

        try:
            config = cls(**values)
        except ValidationError as e:
            raise ValueError(f"Invalid storefront configuration: {e}") from e

        config.api_url = config.api_url.rstrip("/")
        config.route_prefix = "/" + config.route_prefix.strip("/")
        logger.debug(f"Loaded configuration for API {config.api_url}")
        return config
