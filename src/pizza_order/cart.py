"""Cart session driving validate → price → place against the ordering API.

The server is authoritative for product shape: after every validate call
the local product list is replaced by the server's, and before a price is
accepted the server's priced products must match the local ones.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterator, Optional

from pizza_order import api
from pizza_order.models import (
    Address,
    Carryout,
    Coupon,
    Delivery,
    Later,
    Now,
    PayAtStore,
    PayWithCard,
)
from pizza_order.products import normalize_products, to_product
from pizza_order.result import Failure, Result, Success
from pizza_order.validation import ValidOrderInfo, ValidPayment, ValidPersonalInfo, ValidPizza

logger = logging.getLogger(__name__)

FUTURE_ORDER_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

CART_EMPTY = "Cart is empty."
ALREADY_PLACED = "Order was already placed."
ORDER_ID_MISMATCH = "Order ID mismatch."
PRODUCT_COUNT_MISMATCH = "Product count mismatch."
PRODUCT_MISMATCH = "Product mismatch."
COUPON_NOT_FULFILLED = "Coupon not fulfilled."
ORDER_PLACED = "Order was placed."


class CartState(Enum):
    Empty = "Empty"
    Building = "Building"
    Priced = "Priced"
    Placed = "Placed"


@dataclass(frozen=True)
class AddPizzaSuccess:
    product_count: int
    order_id: str


@dataclass(frozen=True)
class SummarySuccess:
    total_price: float
    wait_time: str


class CartBusyError(RuntimeError):
    """A cart call was made while another call on the same session was running."""


def next_quarter_hour(when: datetime) -> datetime:
    # A time already on a boundary moves a full 15 minutes forward.
    return when + timedelta(minutes=15 - when.minute % 15)


def to_order_address(address: Address) -> api.OrderAddress:
    street_number, _, street_name = address.street_address.partition(" ")
    return api.OrderAddress(
        City=address.city,
        PostalCode=address.zip_code,
        Region=address.state,
        Street=address.street_address,
        StreetName=street_name,
        StreetNumber=street_number,
        Type=address.address_type.name,
        UnitNumber=None if address.apt is None else str(address.apt),
        UnitType=None if address.apt is None else "APT",
    )


class DominosCart:
    """One order attempt. Not shareable: concurrent calls raise CartBusyError."""

    def __init__(self, order_api: api.OrderApi, order_info: ValidOrderInfo):
        if not isinstance(order_info, ValidOrderInfo):
            raise TypeError("DominosCart needs validated order info")
        self._api = order_api
        self._order_info = order_info
        self._lock = threading.Lock()
        self._coupons: dict[Coupon, None] = {}
        self._products: list[api.Product] = []
        self._order_id: Optional[str] = None
        self._current_total: float = 0
        self._wait_time: Optional[str] = None
        self._placed = False

    @property
    def order_info(self) -> ValidOrderInfo:
        return self._order_info

    @property
    def products(self) -> list[api.Product]:
        return list(self._products)

    @property
    def order_id(self) -> Optional[str]:
        return self._order_id

    @property
    def current_total(self) -> float:
        return self._current_total

    @property
    def wait_time(self) -> Optional[str]:
        return self._wait_time

    @property
    def coupons(self) -> list[Coupon]:
        return list(self._coupons)

    @property
    def state(self) -> CartState:
        if self._placed:
            return CartState.Placed
        if not self._products:
            return CartState.Empty
        if self._current_total:
            return CartState.Priced
        return CartState.Building

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise CartBusyError("Cart session is already handling a request.")
        try:
            yield
        finally:
            self._lock.release()

    def add_coupon(self, coupon: Coupon) -> None:
        with self._exclusive():
            self._clear_price()
            self._coupons[coupon] = None

    def remove_coupon(self, coupon: Coupon) -> None:
        with self._exclusive():
            self._clear_price()
            self._coupons.pop(coupon, None)

    def add_pizza(self, pizza: ValidPizza) -> Result[AddPizzaSuccess, str]:
        if not isinstance(pizza, ValidPizza):
            raise TypeError("Only validated pizzas can be added to the cart")
        with self._exclusive():
            if self._placed:
                return Failure(ALREADY_PLACED)

            # Unpriced from here on, even if the call below fails.
            self._clear_price()
            products = self._products + [to_product(pizza, len(self._products) + 1)]
            request = api.ValidateRequest(
                Order=api.WireOrder(
                    Address=self._address(),
                    OrderID=self._order_id or "",
                    Products=products,
                    ServiceMethod=self._order_info.service_method.name,
                    StoreID=self._order_info.store_id,
                    FutureOrderTime=self._future_order_time(),
                )
            )
            response = self._api.validate_order(request)

            self._order_id = response.Order.OrderID
            self._products = normalize_products(response.Order.Products)
            logger.info(
                "Pizza added to order %s, %d product(s)", self._order_id, len(self._products)
            )
            return Success(AddPizzaSuccess(len(self._products), self._order_id))

    def get_summary(self) -> Result[SummarySuccess, str]:
        with self._exclusive():
            if self._placed:
                return Failure(ALREADY_PLACED)
            if not self._products or self._order_id is None:
                return Failure(CART_EMPTY)

            # A failed or interrupted re-price must not leave an old total behind.
            self._clear_price()
            request = api.PriceRequest(
                Order=api.WireOrder(
                    Address=self._address(),
                    OrderID=self._order_id,
                    Products=self._products,
                    ServiceMethod=self._order_info.service_method.name,
                    StoreID=self._order_info.store_id,
                    Coupons=[api.Coupon(Code=c.code) for c in self._coupons],
                    FutureOrderTime=self._future_order_time(),
                )
            )
            response = self._api.price_order(request)
            priced = response.Order

            if priced.OrderID != self._order_id:
                return self._mismatch(ORDER_ID_MISMATCH)
            if len(priced.Products) != len(self._products):
                return self._mismatch(PRODUCT_COUNT_MISMATCH)
            if normalize_products(priced.Products) != self._products:
                return self._mismatch(PRODUCT_MISMATCH)
            if any(c.Status != 0 for c in priced.Coupons):
                return self._mismatch(COUPON_NOT_FULFILLED)

            self._current_total = priced.Amounts.Payment
            self._wait_time = f"{priced.EstimatedWaitMinutes} minutes"
            logger.info("Order %s priced at %.2f", self._order_id, self._current_total)
            return Success(SummarySuccess(self._current_total, self._wait_time))

    def place_order(
        self, personal_info: ValidPersonalInfo, payment: ValidPayment
    ) -> Result[str, str]:
        if not isinstance(personal_info, ValidPersonalInfo):
            raise TypeError("place_order needs validated personal info")
        if not isinstance(payment, ValidPayment):
            raise TypeError("place_order needs a validated payment")
        with self._exclusive():
            if self._placed:
                return Failure(ALREADY_PLACED)
            if not self._products or self._order_id is None or not self._current_total:
                return Failure(CART_EMPTY)

            request = api.PlaceRequest(
                Order=api.WirePlaceOrder(
                    Address=self._address(),
                    Coupons=[api.Coupon(Code=c.code) for c in self._coupons],
                    Email=personal_info.email,
                    FirstName=personal_info.first_name,
                    LastName=personal_info.last_name,
                    Phone=personal_info.phone,
                    OrderID=self._order_id,
                    Payments=self._payments(payment),
                    Products=self._products,
                    ServiceMethod=self._detailed_service_method(),
                    StoreID=self._order_info.store_id,
                    FutureOrderTime=self._future_order_time(),
                )
            )
            response = self._api.place_order(request)

            if response.Status == -1:
                items = response.StatusItems or response.Order.StatusItems
                message = "\n".join(str(item) for item in items)
                logger.warning("Order %s was rejected: %s", self._order_id, message)
                return Failure(message)

            self._placed = True
            logger.info("Order %s placed", self._order_id)
            return Success(ORDER_PLACED)

    def _clear_price(self) -> None:
        self._current_total = 0
        self._wait_time = None

    def _mismatch(self, message: str) -> Failure[str]:
        logger.warning("Price check failed for order %s: %s", self._order_id, message)
        return Failure(message)

    def _address(self) -> Optional[api.OrderAddress]:
        match self._order_info.service_method:
            case Delivery(address=address):
                return to_order_address(address)
            case Carryout():
                return None
            case method:
                raise AssertionError(f"Invalid ServiceMethod! {method}")

    def _future_order_time(self) -> Optional[str]:
        match self._order_info.timing:
            case Now():
                return None
            case Later(when=when):
                return next_quarter_hour(when).strftime(FUTURE_ORDER_TIME_FORMAT)
            case timing:
                raise AssertionError(f"Invalid OrderTiming! {timing}")

    def _detailed_service_method(self) -> str:
        match self._order_info.service_method:
            case Delivery():
                return "Delivery"
            case Carryout(location=location):
                return location.name
            case method:
                raise AssertionError(f"Invalid ServiceMethod! {method}")

    def _payments(self, payment: ValidPayment) -> list[api.OrderPayment]:
        match payment.info:
            case PayAtStore():
                return []
            case PayWithCard() as card:
                return [
                    api.OrderPayment(
                        Amount=self._current_total,
                        CardType=card.card_type,
                        Expiration=card.expiration,
                        Number=card.card_number,
                        PostalCode=card.billing_zip,
                        SecurityCode=card.security_code,
                        Type="CreditCard",
                    )
                ]
            case info:
                raise AssertionError(f"Invalid Payment! {info}")
