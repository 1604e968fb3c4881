import json
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

from mcp.server.fastmcp import FastMCP, Context

from pizza_order.api import DominosOrderApi
from pizza_order.config import PizzaOrderConfig, load_config
from pizza_order.state import ServerState
from pizza_order.tools import cart, order, pizzas, store

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(server: FastMCP):
    """Initialize server state, config and the ordering API client on startup."""
    logger.info("Starting pizza order MCP server...")

    try:
        config = load_config()
        logger.info("Config loaded successfully")
    except FileNotFoundError as e:
        logger.error(str(e))
        raise

    state = ServerState()
    state.order_api = DominosOrderApi(
        base_url=config.api.base_url,
        timeout=config.api.timeout_seconds,
        log_payloads=config.api.log_payloads,
    )

    yield {"config": config, "state": state}

    logger.info("Shutting down pizza order MCP server")


mcp = FastMCP("Pizza Order MCP Server", lifespan=lifespan)


def _get_deps(ctx) -> tuple[ServerState, PizzaOrderConfig]:
    """Extract state and config from the MCP context."""
    state = ctx.request_context.lifespan_context["state"]
    config = ctx.request_context.lifespan_context["config"]
    return state, config


# --- Store Tools ---


@mcp.tool()
async def tool_find_nearby_stores(
    ctx: Context,
    street: str = "",
    city: str = "",
    region: str = "",
    postal_code: str = "",
    order_type: str = "",
) -> str:
    """Find Domino's stores near a given address. Returns stores sorted by distance
    and selects the closest open one. Should be called first, before building an order.
    All address fields are optional; omit them to use your address from config.
    order_type is Delivery or Carryout (default: your configured preference)."""
    state, config = _get_deps(ctx)
    result = await store.find_nearby_stores(
        state, config, street, city, region, postal_code, order_type
    )
    return json.dumps(result)


@mcp.tool()
async def tool_select_store(ctx: Context, store_id: str) -> str:
    """Select a store by its number (from find_nearby_stores).
    Switching stores discards the order in progress."""
    state, config = _get_deps(ctx)
    result = await store.select_store(state, config, store_id)
    return json.dumps(result)


# --- Pizza Tools ---


@mcp.tool()
async def tool_validate_pizza(ctx: Context, pizza: dict) -> str:
    """Check a pizza against the menu rules (crust availability, topping limits, ...)
    without saving or ordering it. Returns every problem found.
    Pizza documents use this shape:
    {"Size": "Large", "Crust": "HandTossed", "Cheese": "=", "Sauce": "=Tomato",
     "Toppings": ["A=Pepperoni", "L^Bacon"], "Bake": "Normal", "Cut": "Pie",
     "Oregano": false, "GarlicCrust": false, "Quantity": 1}
    Amounts: '-' light, '=' normal, '^' extra, '_' none. Cheese is one amount, two
    amounts (left and right halves) or '_' for no cheese. Sauce is an amount plus
    Tomato, Marinara, HoneyBBQ, GarlicParmesan, Alfredo or Ranch, or null.
    Toppings are a location (A all, L left, R right), an amount and a topping name."""
    state, config = _get_deps(ctx)
    result = await pizzas.validate_pizza(state, config, pizza)
    return json.dumps(result)


@mcp.tool()
async def tool_save_pizza(ctx: Context, name: str, pizza: dict) -> str:
    """Validate a pizza and save it under a name for later orders.
    Same document format as validate_pizza. Saving under an existing name replaces that pizza."""
    state, config = _get_deps(ctx)
    result = await pizzas.save_pizza(state, config, name, pizza)
    return json.dumps(result)


@mcp.tool()
async def tool_list_pizzas(ctx: Context) -> str:
    """List saved pizzas with their documents and a readable summary."""
    state, config = _get_deps(ctx)
    result = await pizzas.list_pizzas(state, config)
    return json.dumps(result)


@mcp.tool()
async def tool_delete_pizza(ctx: Context, name: str) -> str:
    """Delete a saved pizza by name."""
    state, config = _get_deps(ctx)
    result = await pizzas.delete_pizza(state, config, name)
    return json.dumps(result)


# --- Cart Tools ---


@mcp.tool()
async def tool_get_cart(ctx: Context) -> str:
    """View the order in progress: pizzas, coupons and the last priced total."""
    state, config = _get_deps(ctx)
    result = await cart.get_cart(state, config)
    return json.dumps(result)


@mcp.tool()
async def tool_add_pizza(
    ctx: Context,
    pizza: Optional[dict] = None,
    name: str = "",
) -> str:
    """Add a pizza to the order. Pass either a pizza document (same format as
    validate_pizza) or the name of a saved pizza. The store validates the order
    after every pizza; call get_summary again afterwards for an updated price."""
    state, config = _get_deps(ctx)
    result = await cart.add_pizza(state, config, pizza, name)
    return json.dumps(result)


@mcp.tool()
async def tool_add_coupon(ctx: Context, code: str) -> str:
    """Add a coupon code to the order. Coupons are checked when the order is priced."""
    state, config = _get_deps(ctx)
    result = await cart.add_coupon(state, config, code)
    return json.dumps(result)


@mcp.tool()
async def tool_remove_coupon(ctx: Context, code: str) -> str:
    """Remove a coupon code from the order."""
    state, config = _get_deps(ctx)
    result = await cart.remove_coupon(state, config, code)
    return json.dumps(result)


@mcp.tool()
async def tool_clear_cart(ctx: Context) -> str:
    """Discard the order in progress. The selected store is kept."""
    state, config = _get_deps(ctx)
    result = await cart.clear_cart(state, config)
    return json.dumps(result)


# --- Order Tools ---


@mcp.tool()
async def tool_get_summary(ctx: Context) -> str:
    """Price the order and summarize it: pizzas, coupons, delivery or carryout
    details, customer, payment, total and estimated wait.
    Does NOT place the order. Use this before place_order to show the user what they'll pay."""
    state, config = _get_deps(ctx)
    result = await order.get_summary(state, config)
    return json.dumps(result)


@mcp.tool()
async def tool_place_order(ctx: Context, confirm_order: str) -> str:
    """PLACES A REAL ORDER AND CHARGES YOUR CARD. Requires explicit confirmation.
    Call get_summary first and show the user the total.
    The confirm_order parameter must be exactly 'YES_PLACE_MY_ORDER' to proceed."""
    state, config = _get_deps(ctx)
    result = await order.place_order(state, config, confirm_order)
    return json.dumps(result)


if __name__ == "__main__":
    # Environment variables win over the config file.
    settings = load_config().server
    logging.getLogger().setLevel(os.environ.get("LOG_LEVEL", settings.log_level).upper())
    mcp.settings.host = os.environ.get("HOST", settings.host)
    mcp.settings.port = int(os.environ.get("PORT", settings.port))
    logger.info(f"Starting MCP server on {mcp.settings.host}:{mcp.settings.port}")
    mcp.run(transport="streamable-http")
