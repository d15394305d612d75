"""MCP Server for browsing the storefront catalog."""

import asyncio
import logging
from typing import Any, Optional

from mcp.server import Server
from mcp.types import TextContent, Tool

from .catalog import PackageView
from .config import StorefrontConfig
from .errors import CatalogUnavailable
from .storefront import Storefront, build_storefront

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("storefront-mcp-server")

# Initialize server
app = Server("storefront-mcp-server")

# Global state
storefront: Storefront


def _format_package(index: int, package: PackageView) -> list[str]:
    lines = [f"\n{index}. {package.name}", f"   ID: {package.id}"]
    if package.has_discount:
        lines.append(
            f"   Price: {package.display_price} {package.currency} "
            f"(was {package.base_price}, {package.discount_badge})"
        )
    else:
        lines.append(f"   Price: {package.display_price} {package.currency}")
    if package.description_preview:
        lines.append(f"   {package.description_preview}")
    return lines


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="storefront_list_categories",
            description="List the store categories with their slugs",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_browse_category",
            description="List the packages of a category by slug. Unknown slugs fall back to the first category.",
            inputSchema={
                "type": "object",
                "properties": {
                    "slug": {
                        "type": "string",
                        "description": "Category slug, e.g. 'rangos'",
                    },
                },
            },
        ),
        Tool(
            name="storefront_package_details",
            description="Get the details of a package",
            inputSchema={
                "type": "object",
                "properties": {
                    "package_id": {
                        "type": "integer",
                        "description": "Package ID",
                    },
                },
                "required": ["package_id"],
            },
        ),
        Tool(
            name="storefront_get_notification",
            description="Get the current storefront notification, if any",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_retry_catalog",
            description="Reload the catalog from the commerce platform",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    try:
        if name == "storefront_list_categories":
            categories = storefront.categories
            if not categories:
                return [TextContent(type="text", text="The store has no categories")]

            result_lines = [f"Found {len(categories)} categor{'y' if len(categories) == 1 else 'ies'}:\n"]
            for i, category in enumerate(categories, 1):
                summary = storefront.summarize(category)
                result_lines.append(f"{i}. {summary.name} (slug: {summary.slug})")
            return [TextContent(type="text", text="\n".join(result_lines))]

        elif name == "storefront_browse_category":
            slug: Optional[str] = arguments.get("slug")
            view = storefront.browse(slug)
            if view.redirect_to is not None:
                # follow the redirect the way a browser would
                view = storefront.browse(view.redirect_to.rsplit("/", 1)[-1])
            if view.category is None:
                return [TextContent(type="text", text="The store has no categories")]
            if not view.packages:
                return [TextContent(type="text", text=f"No items available in {view.category.name}")]

            result_lines = [f"{view.category.name} ({len(view.packages)} package(s)):"]
            for i, package in enumerate(view.packages, 1):
                result_lines.extend(_format_package(i, package))
            return [TextContent(type="text", text="\n".join(result_lines))]

        elif name == "storefront_package_details":
            package_id = int(arguments["package_id"])
            package = storefront.view_details(package_id)
            if package is None:
                return [TextContent(type="text", text=f"Package {package_id} not found")]

            result_lines = _format_package(1, package)[1:]
            result_lines.insert(0, package.name)
            if package.category_name:
                result_lines.append(f"   Category: {package.category_name}")
            if storefront.support_url:
                result_lines.append(f"\nSupport: {storefront.support_url}")
            return [TextContent(type="text", text="\n".join(result_lines))]

        elif name == "storefront_get_notification":
            notification = storefront.notification
            if notification is None:
                return [TextContent(type="text", text="No notification")]
            return [TextContent(type="text", text=f"[{notification.kind.value}] {notification.message}")]

        elif name == "storefront_retry_catalog":
            catalog = await storefront.retry_catalog()
            if catalog is None:
                return [TextContent(type="text", text=f"Error: {storefront.catalog_error}")]
            return [
                TextContent(
                    type="text",
                    text=f"Catalog loaded: {len(catalog.categories)} categories, {len(catalog.packages)} packages",
                )
            ]

        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

    except CatalogUnavailable as e:
        return [TextContent(type="text", text=f"Error: {e}. Use storefront_retry_catalog to try again.")]
    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        return [
            TextContent(
                type="text",
                text=f"Error: {str(e)}",
            )
        ]


async def main() -> None:
    """Main entry point for the MCP server."""
    global storefront

    config = StorefrontConfig.from_env()
    logging.getLogger().setLevel(config.log_level.upper())

    # Purchases need the browser-hosted checkout widget, so no widget here
    storefront = build_storefront(config)
    await storefront.load_catalog()

    logger.info("Starting Storefront MCP Server...")

    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        await storefront.close()


if __name__ == "__main__":
    asyncio.run(main())
