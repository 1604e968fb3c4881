import logging
from typing import Any

from pizzapi import Address as PizzaAddress

from pizza_order.config import PizzaOrderConfig
from pizza_order.state import ServerState

logger = logging.getLogger(__name__)

MAX_STORES = 5


def _make_address(
    street: str, city: str, region: str, postal_code: str, country: str = "us"
) -> PizzaAddress:
    return PizzaAddress(street, city, region, postal_code, country=country)


def _store_summary(data: dict[str, Any], fallback_id: Any, order_type: str) -> dict[str, Any]:
    allowed = data.get("AllowDeliveryOrders" if order_type == "Delivery" else "AllowCarryoutOrders")
    wait = data.get("ServiceMethodEstimatedWaitMinutes", {}).get(order_type, {})
    return {
        "store_id": str(data.get("StoreID", fallback_id)),
        "address": data.get("AddressDescription", "").strip(),
        "phone": data.get("Phone", ""),
        "is_open": bool(data.get("IsOnlineNow", False) and allowed),
        "wait_minutes_min": wait.get("Min"),
        "wait_minutes_max": wait.get("Max"),
    }


async def find_nearby_stores(
    state: ServerState,
    config: PizzaOrderConfig,
    street: str = "",
    city: str = "",
    region: str = "",
    postal_code: str = "",
    order_type: str = "",
) -> dict[str, Any]:
    """Find Domino's stores near a given address. Returns stores sorted by distance."""
    try:
        order_type = order_type or config.preferences.order_type
        address = _make_address(
            street or config.address.street,
            city or config.address.city,
            region or config.address.region,
            postal_code or config.address.postal_code,
            config.address.country,
        )
        results = address.nearby_stores(service=order_type)

        stores = [_store_summary(s.data, s.id, order_type) for s in results[:MAX_STORES]]

        # Auto-select closest open store
        for store in stores:
            if store["is_open"]:
                if store["store_id"] != state.store_id and state.cart is not None:
                    logger.info("Store changed, discarding open cart session")
                    state.close_cart()
                state.store_id = store["store_id"]
                state.store_info = store
                state.save()
                break

        return {"success": True, "stores": stores, "selected_store_id": state.store_id}

    except Exception as e:
        logger.exception("Error finding nearby stores")
        return {"success": False, "error": str(e), "code": "STORE_LOOKUP_FAILED"}


async def select_store(
    state: ServerState,
    config: PizzaOrderConfig,
    store_id: str,
) -> dict[str, Any]:
    """Choose the store the next order goes to. An open cart for another store is discarded."""
    try:
        store_id = store_id.strip()
        if not store_id.isdigit():
            return {
                "success": False,
                "error": f"'{store_id}' is not a valid store number.",
                "code": "INVALID_STORE",
            }

        discarded = state.cart is not None and store_id != state.store_id
        if discarded:
            state.close_cart()
        if store_id != state.store_id:
            state.store_info = {}
        state.store_id = store_id
        state.save()
        return {"success": True, "store_id": store_id, "cart_discarded": discarded}

    except Exception as e:
        logger.exception("Error selecting store")
        return {"success": False, "error": str(e), "code": "SELECT_STORE_FAILED"}
