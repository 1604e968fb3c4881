"""Shared pytest fixtures and test helpers for pizza_order tests."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from pizza_order import api
from pizza_order.config import PizzaOrderConfig
from pizza_order.models import (
    Address,
    AddressType,
    Amount,
    Bake,
    Carryout,
    Crust,
    Cut,
    Delivery,
    Later,
    Location,
    NoCheese,
    Now,
    OrderInfo,
    PayAtStore,
    PayWithCard,
    PersonalInfo,
    PickupLocation,
    Pizza,
    Sauce,
    SauceType,
    SideCheese,
    FullCheese,
    Size,
    Topping,
    ToppingType,
)
from pizza_order.state import ServerState
from pizza_order.validation import (
    ensure_valid_order_info,
    ensure_valid_payment,
    ensure_valid_personal_info,
)

DATA_DIR = Path(__file__).parent / "data"


def read_data(name: str) -> str:
    return (DATA_DIR / name).read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Domain values
# ---------------------------------------------------------------------------

T = ToppingType

LARGE_PEP = Pizza(
    Size.Large,
    Crust.HandTossed,
    sauce=Sauce(SauceType.Tomato),
    toppings=(Topping(T.Pepperoni),),
)

COMPLEX = Pizza(
    Size.Medium,
    Crust.HandmadePan,
    cheese=SideCheese(Amount.Light, Amount.Extra),
    sauce=Sauce(SauceType.HoneyBBQ, Amount.Extra),
    toppings=(
        Topping(T.Pepperoni),
        Topping(T.Bacon, Location.Left, Amount.Extra),
        Topping(T.Mushrooms, Location.Right, Amount.Light),
        Topping(T.Spinach),
    ),
    bake=Bake.WellDone,
    cut=Cut.Square,
    quantity=2,
)

SMALL_THIN = Pizza(
    Size.Small,
    Crust.Thin,
    cheese=NoCheese(),
    sauce=Sauce(SauceType.Marinara),
    toppings=(
        Topping(T.Pepperoni),
        *(
            Topping(t, Location.Left, Amount.Light)
            for t in (
                T.Ham,
                T.Beef,
                T.Salami,
                T.ItalianSausage,
                T.PremiumChicken,
                T.Bacon,
                T.PhillySteak,
                T.HotBuffaloSauce,
                T.JalapenoPeppers,
            )
        ),
        *(
            Topping(t, Location.Right, Amount.Extra)
            for t in (T.Onions, T.BananaPeppers, T.DicedTomatoes, T.BlackOlives)
        ),
        Topping(T.ShreddedProvoloneCheese, Location.Right),
    ),
    oregano=True,
)

SMALL_HAND_TOSSED = Pizza(
    Size.Small,
    Crust.HandTossed,
    sauce=Sauce(SauceType.Tomato),
    bake=Bake.WellDone,
    garlic_crust=True,
)

XL_PIZZA = Pizza(
    Size.XL,
    Crust.Brooklyn,
    cheese=FullCheese(Amount.Light),
    sauce=Sauce(SauceType.Tomato),
    toppings=tuple(
        Topping(t, amount=Amount.Light)
        for t in (
            T.Mushrooms,
            T.Pineapple,
            T.CheddarCheese,
            T.GreenPeppers,
            T.Spinach,
            T.FetaCheese,
            T.ShreddedParmesanAsiago,
        )
    ),
    cut=Cut.Uncut,
    quantity=25,
)

# (pizza, fixture file)
VALID_PIZZAS = [
    (LARGE_PEP, "LargePep.json"),
    (COMPLEX, "Complex.json"),
    (SMALL_THIN, "SmallThin.json"),
    (SMALL_HAND_TOSSED, "SmallHandTossed.json"),
    (XL_PIZZA, "XLPizza.json"),
]

HOUSE = Address(
    street_address="1234 Main St",
    city="ACity",
    state="NY",
    zip_code="12345",
    address_type=AddressType.House,
    name="My House",
)

BUSINESS = Address(
    street_address="1234 Main St",
    city="ACity",
    state="NY",
    zip_code="12345",
    address_type=AddressType.Business,
    name="The Business",
    apt=123,
)

# (order info, fixture file)
VALID_ORDER_INFOS = [
    (OrderInfo("1", Carryout(PickupLocation.InStore), Now()), "CarryoutNow.json"),
    (OrderInfo("2", Delivery(HOUSE), Now()), "DeliveryNow.json"),
    (OrderInfo("3", Delivery(BUSINESS), Later(datetime(2021, 10, 30, 21, 30))), "DeliveryLater.json"),
    (
        OrderInfo("4", Carryout(PickupLocation.DriveThru), Later(datetime(2021, 10, 31, 21, 30))),
        "CarryoutLater.json",
    ),
]

CARD = PayWithCard("4111111111111111", "01/28", "123", "12345")

VALID_PAYMENTS = [
    (CARD, "PayWithCard.json"),
    (PayAtStore(), "PayAtStore.json"),
]

PERSONAL_INFO = PersonalInfo("Test", "Testington", "test@gmail.org", "000-123-1234")


# ---------------------------------------------------------------------------
# Fake ordering API
# ---------------------------------------------------------------------------


def _as_server_writes_it(product: dict[str, Any]) -> dict[str, Any]:
    """Reformat a product the way the live API echoes it back.

    Default cheese and base sauce are left out and amounts come back as
    decimals, so only normalization makes the two sides comparable.
    """
    options = {}
    for code, value in (product.get("Options") or {}).items():
        if code in ("C", "X") and value == {"1/1": "1"}:
            continue
        if isinstance(value, dict):
            value = {side: str(float(amount)) for side, amount in value.items()}
        options[code] = value
    return {**product, "Options": options}


class FakeOrderApi:
    """In-memory OrderApi that records every request it receives."""

    def __init__(self, order_id: str = "O1", total: float = 16.50, wait: str = "10-15"):
        self.order_id = order_id
        self.total = total
        self.wait = wait
        self.coupon_status = 0
        self.place_status = 0
        self.place_status_items: list[dict[str, Any]] = []
        self.priced_order_id: Optional[str] = None
        # Applied to the priced product list (wire dicts) before it is returned.
        self.priced_products_hook: Optional[Callable[[list[dict]], list[dict]]] = None
        self.error: Optional[api.OrderApiError] = None
        self.requests: list[tuple[str, Any]] = []

    def _record(self, operation: str, request: Any) -> dict[str, Any]:
        self.requests.append((operation, request))
        if self.error is not None:
            raise self.error
        return request.model_dump(mode="json")

    def requests_for(self, operation: str) -> list[Any]:
        return [r for op, r in self.requests if op == operation]

    def validate_order(self, request: api.ValidateRequest) -> api.ValidateResponse:
        body = self._record("validate-order", request)
        order = body["Order"]
        order["OrderID"] = self.order_id
        order["Products"] = [_as_server_writes_it(p) for p in order["Products"]]
        return api.ValidateResponse.model_validate(body)

    def price_order(self, request: api.PriceRequest) -> api.PriceResponse:
        body = self._record("price-order", request)
        products = [_as_server_writes_it(p) for p in body["Order"]["Products"]]
        if self.priced_products_hook is not None:
            products = self.priced_products_hook(products)
        return api.PriceResponse.model_validate(
            {
                "Order": {
                    "OrderID": self.priced_order_id or body["Order"]["OrderID"],
                    "Products": products,
                    "Amounts": {"Payment": self.total, "Customer": self.total},
                    "EstimatedWaitMinutes": self.wait,
                    "Coupons": [
                        {"Code": c["Code"], "Status": self.coupon_status}
                        for c in body["Order"]["Coupons"]
                    ],
                }
            }
        )

    def place_order(self, request: api.PlaceRequest) -> api.PlaceResponse:
        body = self._record("place-order", request)
        return api.PlaceResponse.model_validate(
            {
                "Order": body["Order"],
                "Status": self.place_status,
                "StatusItems": self.place_status_items,
            }
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_api() -> FakeOrderApi:
    return FakeOrderApi()


@pytest.fixture
def carryout_info():
    return ensure_valid_order_info(VALID_ORDER_INFOS[0][0])


@pytest.fixture
def delivery_later_info():
    return ensure_valid_order_info(VALID_ORDER_INFOS[2][0])


@pytest.fixture
def personal_info():
    return ensure_valid_personal_info(PERSONAL_INFO)


@pytest.fixture
def card_payment():
    return ensure_valid_payment(CARD)


@pytest.fixture
def config_data() -> dict[str, Any]:
    """Raw config document as it would appear in config.json."""
    return {
        "customer": {
            "first_name": "Test",
            "last_name": "Testington",
            "email": "test@gmail.org",
            "phone": "000-123-1234",
        },
        "address": {
            "street": "1234 Main St",
            "city": "ACity",
            "region": "NY",
            "postal_code": "12345",
        },
        "payment": {
            "card_number": "4111111111111111",
            "expiration": "01/28",
            "cvv": "123",
            "billing_postal_code": "12345",
        },
        "preferences": {"order_type": "Carryout", "max_order_amount": 50.0},
    }


@pytest.fixture
def config(config_data: dict[str, Any]) -> PizzaOrderConfig:
    return PizzaOrderConfig(**config_data)


@pytest.fixture
def server_state(tmp_path: Path, fake_api: FakeOrderApi) -> ServerState:
    """Server state backed by a temp state file and the fake ordering API."""
    state = ServerState(path=str(tmp_path / "state.json"))
    state.order_api = fake_api
    return state
