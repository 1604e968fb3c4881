import logging
from typing import Any, Optional

from pizza_order.api import OrderApiError
from pizza_order.cart import CartBusyError, CartState, DominosCart
from pizza_order.config import PizzaOrderConfig
from pizza_order.models import Coupon
from pizza_order.result import Failure, Success
from pizza_order.state import ServerState
from pizza_order.summary import summarize_order_info, summarize_pizza
from pizza_order.tools.pizzas import resolve_pizza
from pizza_order.validation import validate_order_info

logger = logging.getLogger(__name__)


def _open_cart(state: ServerState, config: PizzaOrderConfig) -> Optional[dict[str, Any]]:
    """Start a cart session if none is open. Returns an error result, or None on success."""
    if state.cart is not None:
        return None

    state.store_id = state.store_id or config.preferences.preferred_store_id
    if not state.store_id:
        return {
            "success": False,
            "error": "No store selected. Call find_nearby_stores first.",
            "code": "NO_STORE",
        }
    if state.order_api is None:
        return {"success": False, "error": "Ordering API is not available.", "code": "NO_API"}

    match validate_order_info(config.to_order_info(state.store_id)):
        case Success(value=order_info):
            state.cart = DominosCart(state.order_api, order_info)
            state.cart_pizzas = []
            logger.info("Opened cart session for store %s", state.store_id)
            return None
        case Failure(error=errors):
            return {
                "success": False,
                "error": "Order preferences in config are not valid.",
                "errors": [{"path": e.path, "message": e.message} for e in errors],
                "code": "INVALID_ORDER_INFO",
            }
        case result:
            raise AssertionError(f"Invalid Result! {result}")


async def get_cart(
    state: ServerState,
    config: PizzaOrderConfig,
) -> dict[str, Any]:
    """View the current cart session: pizzas, products, coupons and last price."""
    cart = state.cart
    if cart is None:
        return {
            "success": True,
            "store_id": state.store_id,
            "state": CartState.Empty.value,
            "pizzas": [],
            "coupons": [],
            "item_count": 0,
        }

    return {
        "success": True,
        "store_id": state.store_id,
        "state": cart.state.value,
        "order_id": cart.order_id,
        "order_info": summarize_order_info(cart.order_info),
        "pizzas": [
            {"cart_index": i, "summary": summarize_pizza(p)}
            for i, p in enumerate(state.cart_pizzas)
        ],
        "products": [p.model_dump(mode="json") for p in cart.products],
        "coupons": [c.code for c in cart.coupons],
        "total": cart.current_total or None,
        "wait_time": cart.wait_time,
        "item_count": len(cart.products),
    }


async def add_pizza(
    state: ServerState,
    config: PizzaOrderConfig,
    pizza: Optional[dict] = None,
    name: str = "",
) -> dict[str, Any]:
    """Validate a pizza (document or saved name) and add it to the order."""
    try:
        match resolve_pizza(state, pizza, name):
            case Success(value=valid):
                pass
            case Failure(error=errors):
                return {
                    "success": False,
                    "error": "Pizza is not valid.",
                    "errors": [{"path": e.path, "message": e.message} for e in errors],
                    "code": "INVALID_PIZZA",
                }
            case result:
                raise AssertionError(f"Invalid Result! {result}")

        error = _open_cart(state, config)
        if error:
            return error

        match state.cart.add_pizza(valid):
            case Success(value=added):
                state.cart_pizzas.append(valid)
                return {
                    "success": True,
                    "order_id": added.order_id,
                    "product_count": added.product_count,
                    "pizza": summarize_pizza(valid),
                }
            case Failure(error=message):
                return {"success": False, "error": message, "code": "ADD_FAILED"}
            case result:
                raise AssertionError(f"Invalid Result! {result}")

    except CartBusyError as e:
        return {"success": False, "error": str(e), "code": "CART_BUSY"}
    except OrderApiError as e:
        logger.error("Ordering API error while adding pizza: %s", e)
        return {"success": False, "error": str(e), "code": "API_ERROR"}
    except Exception as e:
        logger.exception("Error adding pizza")
        return {"success": False, "error": str(e), "code": "ADD_FAILED"}


async def add_coupon(
    state: ServerState,
    config: PizzaOrderConfig,
    code: str,
) -> dict[str, Any]:
    """Attach a coupon code to the order. It is checked when the order is priced."""
    try:
        if not code.strip():
            return {"success": False, "error": "Coupon code is required.", "code": "NO_COUPON"}

        error = _open_cart(state, config)
        if error:
            return error

        state.cart.add_coupon(Coupon(code.strip()))
        return {"success": True, "coupons": [c.code for c in state.cart.coupons]}

    except CartBusyError as e:
        return {"success": False, "error": str(e), "code": "CART_BUSY"}
    except Exception as e:
        logger.exception("Error adding coupon")
        return {"success": False, "error": str(e), "code": "COUPON_FAILED"}


async def remove_coupon(
    state: ServerState,
    config: PizzaOrderConfig,
    code: str,
) -> dict[str, Any]:
    """Detach a coupon code from the order."""
    try:
        if state.cart is None:
            return {"success": False, "error": "No order in progress.", "code": "NO_CART"}

        state.cart.remove_coupon(Coupon(code.strip()))
        return {"success": True, "coupons": [c.code for c in state.cart.coupons]}

    except CartBusyError as e:
        return {"success": False, "error": str(e), "code": "CART_BUSY"}
    except Exception as e:
        logger.exception("Error removing coupon")
        return {"success": False, "error": str(e), "code": "COUPON_FAILED"}


async def clear_cart(
    state: ServerState,
    config: PizzaOrderConfig,
) -> dict[str, Any]:
    """Discard the current order. The selected store is kept."""
    state.close_cart()
    return {"success": True, "message": "Cart cleared."}
