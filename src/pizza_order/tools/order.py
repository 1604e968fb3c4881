import json
import logging
import os
from datetime import datetime, timezone
from typing import Any

from pizza_order.api import OrderApiError
from pizza_order.cart import CartBusyError
from pizza_order.config import PizzaOrderConfig
from pizza_order.models import PayWithCard
from pizza_order.result import Failure, Success
from pizza_order.state import ServerState
from pizza_order.summary import (
    summarize_order_info,
    summarize_payment,
    summarize_personal_info,
    summarize_pizza,
)
from pizza_order.validation import ValidPayment, validate_payment, validate_personal_info

logger = logging.getLogger(__name__)

LOG_PATH = os.environ.get("LOG_PATH", "/data/orders.log")
CONFIRMATION = "YES_PLACE_MY_ORDER"


def _audit_log(message: str) -> None:
    """Append an entry to the audit log."""
    try:
        log_dir = os.path.dirname(LOG_PATH)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        with open(LOG_PATH, "a") as f:
            f.write(f"{timestamp} | {message}\n")
    except OSError as e:
        logger.warning("Failed to write audit log: %s", e)


def _payment_kind(payment: ValidPayment) -> str:
    # Never the card number.
    if isinstance(payment.info, PayWithCard):
        return payment.info.card_type
    return "PayAtStore"


def _errors(errors) -> list[dict[str, str]]:
    return [{"path": e.path, "message": e.message} for e in errors]


async def get_summary(
    state: ServerState,
    config: PizzaOrderConfig,
) -> dict[str, Any]:
    """Price the current order and summarize everything that would be placed."""
    try:
        if state.cart is None:
            return {
                "success": False,
                "error": "Cart is empty. Add pizzas first.",
                "code": "EMPTY_CART",
            }

        match state.cart.get_summary():
            case Success(value=summary):
                return {
                    "success": True,
                    "order_id": state.cart.order_id,
                    "total": summary.total_price,
                    "wait_time": summary.wait_time,
                    "pizzas": [summarize_pizza(p) for p in state.cart_pizzas],
                    "coupons": [c.code for c in state.cart.coupons],
                    "order_info": summarize_order_info(state.cart.order_info),
                    "customer": summarize_personal_info(config.to_personal_info()),
                    "payment": summarize_payment(config.to_payment()),
                }
            case Failure(error=message):
                return {"success": False, "error": message, "code": "PRICE_FAILED"}
            case result:
                raise AssertionError(f"Invalid Result! {result}")

    except CartBusyError as e:
        return {"success": False, "error": str(e), "code": "CART_BUSY"}
    except OrderApiError as e:
        logger.error("Ordering API error while pricing: %s", e)
        return {"success": False, "error": str(e), "code": "API_ERROR"}
    except Exception as e:
        logger.exception("Error pricing order")
        return {"success": False, "error": str(e), "code": "PRICE_FAILED"}


async def place_order(
    state: ServerState,
    config: PizzaOrderConfig,
    confirm_order: str,
) -> dict[str, Any]:
    """Place a real order. Requires confirm_order='YES_PLACE_MY_ORDER'."""
    dry_run = os.environ.get("DRY_RUN", "false").lower() in ("true", "1", "yes")

    # Layer 1: Confirmation check
    if config.preferences.confirm_before_order and confirm_order != CONFIRMATION:
        _audit_log("PLACE_ORDER | ABORTED | reason=NOT_CONFIRMED")
        return {
            "success": False,
            "error": f"Order not confirmed. Pass confirm_order='{CONFIRMATION}' to proceed.",
            "code": "NOT_CONFIRMED",
        }

    cart = state.cart
    if cart is None or not state.cart_pizzas:
        _audit_log("PLACE_ORDER | ABORTED | reason=EMPTY_CART")
        return {
            "success": False,
            "error": "Cart is empty. Add pizzas first.",
            "code": "EMPTY_CART",
        }

    # Layer 2: Customer and payment details from config
    match validate_personal_info(config.to_personal_info()):
        case Success(value=personal_info):
            pass
        case Failure(error=errors):
            _audit_log("PLACE_ORDER | ABORTED | reason=INVALID_CUSTOMER")
            return {
                "success": False,
                "error": "Customer details in config are not valid.",
                "errors": _errors(errors),
                "code": "INVALID_CUSTOMER",
            }
        case result:
            raise AssertionError(f"Invalid Result! {result}")

    match validate_payment(config.to_payment()):
        case Success(value=payment):
            pass
        case Failure(error=errors):
            _audit_log("PLACE_ORDER | ABORTED | reason=INVALID_PAYMENT")
            return {
                "success": False,
                "error": "Payment details in config are not valid.",
                "errors": _errors(errors),
                "code": "INVALID_PAYMENT",
            }
        case result:
            raise AssertionError(f"Invalid Result! {result}")

    try:
        # Price the order to get the total the card will be charged
        match cart.get_summary():
            case Success(value=summary):
                total = summary.total_price
            case Failure(error=message):
                _audit_log(f"PLACE_ORDER | ABORTED | reason=PRICE_FAILED | detail={message}")
                return {"success": False, "error": message, "code": "PRICE_FAILED"}
            case result:
                raise AssertionError(f"Invalid Result! {result}")

        # Layer 3: Max amount check
        max_amount = config.preferences.max_order_amount
        if max_amount and total > max_amount:
            _audit_log(
                f"PLACE_ORDER | ABORTED | reason=OVER_MAX | total={total} | max={max_amount}"
            )
            return {
                "success": False,
                "error": f"Order total ${total:.2f} exceeds max ${max_amount:.2f}",
                "code": "OVER_MAX",
            }

        item_summary = [
            f"{p.size.name} {p.crust.name} x{p.quantity}" for p in state.cart_pizzas
        ]
        details = (
            f"store={cart.order_info.store_id} | items={json.dumps(item_summary)} | "
            f"total={total} | payment={_payment_kind(payment)}"
        )

        # Layer 4: Dry run
        if dry_run:
            _audit_log(f"PLACE_ORDER | DRY_RUN | {details}")
            state.close_cart()
            return {
                "success": True,
                "order_id": "DRY_RUN_NO_ORDER",
                "dry_run": True,
                "total_charged": total,
                "message": "DRY RUN: order was NOT placed. Set DRY_RUN=false to place real orders.",
            }

        order_id = cart.order_id
        match cart.place_order(personal_info, payment):
            case Success(value=message):
                _audit_log(f"PLACE_ORDER | CONFIRMED | {details} | order_id={order_id}")
                state.close_cart()
                return {
                    "success": True,
                    "order_id": order_id,
                    "total_charged": total,
                    "wait_time": summary.wait_time,
                    "message": message,
                }
            case Failure(error=message):
                _audit_log(f"PLACE_ORDER | REJECTED | {details} | order_id={order_id}")
                return {"success": False, "error": message, "code": "PLACE_REJECTED"}
            case result:
                raise AssertionError(f"Invalid Result! {result}")

    except CartBusyError as e:
        return {"success": False, "error": str(e), "code": "CART_BUSY"}
    except Exception as e:
        logger.exception("Error placing order")
        _audit_log(f"PLACE_ORDER | ERROR | reason={type(e).__name__}")
        return {"success": False, "error": str(e), "code": "PLACE_FAILED"}
