"""HTTP server exposing the storefront state and checkout stream."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import RedirectResponse, StreamingResponse
from pydantic import BaseModel

from . import __version__
from .config import StorefrontConfig
from .errors import CatalogUnavailable
from .storefront import Storefront, build_storefront
from .widget import RemoteCheckoutWidget

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("storefront-http-server")

KEEPALIVE_SECONDS = 30


# Request models
class PurchaseRequest(BaseModel):
    package_id: int


class CheckoutEventRequest(BaseModel):
    event: str
    payload: Optional[dict[str, Any]] = None


def _storefront(request: Request) -> Storefront:
    return request.app.state.storefront


def _catalog_unavailable(e: CatalogUnavailable) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={"error": str(e), "retry": "POST /catalog/retry"},
    )


def create_app(
    config: Optional[StorefrontConfig] = None,
    widget: Optional[RemoteCheckoutWidget] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Storefront configuration. Defaults to the environment
        widget: Browser-driven checkout widget. Defaults to a new one
        transport: Optional httpx transport for the commerce client

    Returns:
        The configured application
    """
    config = config or StorefrontConfig.from_env()
    logging.getLogger().setLevel(config.log_level.upper())
    prefix = config.route_prefix

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown."""
        logger.info("Starting Storefront HTTP Server...")
        app.state.config = config
        app.state.widget = widget or RemoteCheckoutWidget()
        app.state.storefront = build_storefront(config, widget=app.state.widget, transport=transport)
        await app.state.storefront.load_catalog()

        yield

        logger.info("Shutting down Storefront HTTP Server...")
        await app.state.storefront.close()

    app = FastAPI(
        title="Storefront Server",
        description="Catalog browsing and checkout orchestration for the storefront",
        version=__version__,
        lifespan=lifespan,
    )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "Storefront Server",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "config": "/config",
                "catalog": {
                    "categories": "GET /categories",
                    "category": f"GET {prefix}/{{slug}}",
                    "package": "GET /packages/{id}",
                    "retry": "POST /catalog/retry",
                },
                "purchase": {"start": "POST /purchase", "status": "GET /purchase/status"},
                "notification": {"get": "GET /notification", "dismiss": "DELETE /notification"},
                "checkout": {"stream": "GET /checkout/stream", "events": "POST /checkout/events"},
            },
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        storefront = _storefront(request)
        return {
            "status": "healthy",
            "catalog_loaded": storefront.catalog is not None,
            "checkout_connected": request.app.state.widget.available,
        }

    @app.get("/config")
    async def get_config(request: Request):
        """Public settings for the view layer."""
        return {
            "support_url": config.support_url,
            "route_prefix": prefix,
            "checkout": config.checkout.model_dump(),
        }

    # Catalog endpoints
    @app.get("/categories")
    async def list_categories(request: Request):
        """List categories in catalog order."""
        storefront = _storefront(request)
        try:
            categories = [storefront.summarize(c).model_dump() for c in storefront.categories]
        except CatalogUnavailable as e:
            raise _catalog_unavailable(e)
        return {"count": len(categories), "categories": categories}

    async def _category_page(request: Request, slug: Optional[str]):
        storefront = _storefront(request)
        try:
            view = storefront.browse(slug)
        except CatalogUnavailable as e:
            raise _catalog_unavailable(e)
        if view.redirect_to is not None:
            return RedirectResponse(url=view.redirect_to, status_code=307)
        return view.model_dump(mode="json")

    @app.get(prefix)
    async def store_index(request: Request):
        """Redirect to the first category."""
        return await _category_page(request, None)

    @app.get(prefix + "/{slug}")
    async def store_category(slug: str, request: Request):
        """Category page: the category and its packages."""
        return await _category_page(request, slug)

    @app.get("/packages/{package_id}")
    async def package_details(package_id: int, request: Request):
        """Package detail view."""
        storefront = _storefront(request)
        try:
            view = storefront.view_details(package_id)
        except CatalogUnavailable as e:
            raise _catalog_unavailable(e)
        if view is None:
            raise HTTPException(status_code=404, detail=f"Package {package_id} not found")
        return view.model_dump(mode="json")

    @app.post("/catalog/retry")
    async def retry_catalog(request: Request):
        """Reload the catalog after a failure."""
        storefront = _storefront(request)
        catalog = await storefront.retry_catalog()
        if catalog is None:
            raise HTTPException(status_code=503, detail={"error": storefront.catalog_error})
        return {
            "success": True,
            "categories": len(catalog.categories),
            "packages": len(catalog.packages),
        }

    # Purchase endpoints
    @app.post("/purchase")
    async def purchase(body: PurchaseRequest, request: Request):
        """Start the purchase of one package."""
        storefront = _storefront(request)
        try:
            if storefront.find_package(body.package_id) is None:
                raise HTTPException(status_code=404, detail=f"Package {body.package_id} not found")

            in_flight = storefront.coordinator.in_flight
            if in_flight is not None:
                raise HTTPException(
                    status_code=409,
                    detail=f"A purchase is already in progress for package {in_flight}",
                )

            started = await storefront.purchase(body.package_id)
            notification = storefront.notification
            return {
                "success": started,
                "state": storefront.coordinator.state.value,
                "notification": notification.model_dump(mode="json") if notification else None,
            }
        except CatalogUnavailable as e:
            raise _catalog_unavailable(e)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Purchase error: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))

    @app.get("/purchase/status")
    async def purchase_status(request: Request):
        """Current purchase state."""
        coordinator = _storefront(request).coordinator
        basket = coordinator.basket
        return {
            "state": coordinator.state.value,
            "package_id": coordinator.in_flight,
            "basket_ident": basket.ident if basket else None,
            "checkout_url": basket.checkout_url if basket else None,
        }

    # Notification endpoints
    @app.get("/notification")
    async def get_notification(request: Request):
        """The visible notification, if any."""
        notification = _storefront(request).notification
        return {"notification": notification.model_dump(mode="json") if notification else None}

    @app.delete("/notification")
    async def dismiss_notification(request: Request, id: Optional[str] = None):
        """Dismiss the visible notification."""
        dismissed = _storefront(request).dismiss_notification(id)
        return {"dismissed": dismissed}

    # Checkout widget endpoints
    @app.post("/checkout/events")
    async def checkout_event(body: CheckoutEventRequest, request: Request):
        """Receive an event reported by the browser-hosted checkout widget."""
        widget: RemoteCheckoutWidget = request.app.state.widget
        try:
            handled = widget.dispatch(body.event, body.payload)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        coordinator = _storefront(request).coordinator
        return {"handled": handled, "state": coordinator.state.value}

    @app.get("/checkout/stream")
    async def checkout_stream(request: Request):
        """
        Server-Sent Events stream of checkout widget commands.

        The browser runs the widget and applies each ``init``, ``launch`` and
        ``close`` command it receives here, then reports widget events to
        ``POST /checkout/events``.
        """
        widget: RemoteCheckoutWidget = request.app.state.widget
        queue = widget.connect()

        async def event_stream():
            """Forward widget commands, with keepalive pings."""
            try:
                while True:
                    if await request.is_disconnected():
                        logger.info("Checkout stream client disconnected")
                        break
                    try:
                        command = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                    except asyncio.TimeoutError:
                        yield ": ping\n\n"
                        continue
                    yield f"event: checkout\ndata: {json.dumps(command)}\n\n"
            except asyncio.CancelledError:
                logger.info("Checkout stream cancelled")
            finally:
                widget.disconnect(queue)

        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    return app


def run_http_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the HTTP server."""
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port, log_level="info")


if __name__ == "__main__":
    run_http_server()
