import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional

from pizza_order.api import OrderApi
from pizza_order.cart import DominosCart
from pizza_order.models import Pizza
from pizza_order.serialization import dumps, pizza_from_dict, pizza_to_dict
from pizza_order.validation import ValidPizza

logger = logging.getLogger(__name__)

STATE_PATH = os.environ.get("PIZZA_STATE_PATH", "/tmp/pizza_order_state.json")


@dataclass
class ServerState:
    path: str = STATE_PATH
    pizzas: dict[str, Pizza] = field(default_factory=dict)
    store_id: Optional[str] = None
    store_info: dict[str, Any] = field(default_factory=dict)
    order_api: Optional[OrderApi] = None
    # The open cart session and the pizzas added to it, in order.
    cart: Optional[DominosCart] = None
    cart_pizzas: list[ValidPizza] = field(default_factory=list)

    def __post_init__(self):
        self._load()

    def _load(self):
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
            pizzas = {name: pizza_from_dict(p) for name, p in data.get("pizzas", {}).items()}
        except (OSError, ValueError, AttributeError) as e:
            # DecodeError and JSONDecodeError are both ValueErrors.
            logger.warning("Ignoring unreadable state file %s: %s", self.path, e)
            return
        self.store_id = data.get("store_id")
        self.pizzas = pizzas
        logger.info("Loaded %d saved pizza(s) from %s", len(pizzas), self.path)

    def save(self):
        data = {
            "store_id": self.store_id,
            "pizzas": {name: pizza_to_dict(p) for name, p in self.pizzas.items()},
        }
        with open(self.path, "w") as f:
            f.write(dumps(data))

    def close_cart(self):
        self.cart = None
        self.cart_pizzas = []
