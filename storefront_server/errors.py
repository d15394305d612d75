"""Exceptions raised by the storefront components."""

from typing import Optional


class StorefrontError(Exception):
    """Base class for storefront errors."""


class CommerceError(StorefrontError):
    """A call to the commerce platform failed."""


class NetworkError(CommerceError):
    """No response was received (connection failure or timeout)."""


class ResponseError(CommerceError):
    """The platform answered with an error status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class ClientError(ResponseError):
    """4xx response: the request was rejected."""


class ServerError(ResponseError):
    """5xx response, or a malformed success response."""


class IntegrationError(StorefrontError):
    """The checkout widget is not available."""


class ResolutionMiss(StorefrontError):
    """A category slug did not match any category in the catalog."""

    def __init__(self, slug: Optional[str]) -> None:
        super().__init__(f"No category matches slug {slug!r}")
        self.slug = slug


class CatalogUnavailable(StorefrontError):
    """The catalog failed to load and has not been retried successfully."""
