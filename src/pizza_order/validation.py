"""Business rules for pizzas, order info, payments and personal info.

Each ``validate_*`` function checks an unvalidated value and either promotes
it to its validated twin or returns every violated rule as a FieldError.
The validated classes refuse direct construction; ``_promote`` is the only
way in.
"""

import logging
import re
from dataclasses import fields
from datetime import datetime
from enum import Enum
from typing import Any, Optional, TypeVar

from pydantic import validate_email
from pydantic_core import PydanticCustomError

from pizza_order.models import (
    Address,
    AddressType,
    Amount,
    Bake,
    Carryout,
    Crust,
    Cut,
    Delivery,
    FullCheese,
    Later,
    Location,
    NoCheese,
    Now,
    Order,
    OrderInfo,
    PayAtStore,
    PaymentInfo,
    PayWithCard,
    PersonalInfo,
    PickupLocation,
    Pizza,
    SauceType,
    SideCheese,
    Size,
    ToppingType,
)
from pizza_order.result import Failure, FieldError, Result, Success, ValidationError

logger = logging.getLogger(__name__)

MAX_TOPPINGS_PER_SIDE = 10
MIN_QUANTITY = 1
MAX_QUANTITY = 25

ALLOWED_CRUSTS: dict[Size, frozenset[Crust]] = {
    Size.Small: frozenset({Crust.HandTossed, Crust.Thin, Crust.GlutenFree}),
    Size.Medium: frozenset({Crust.HandTossed, Crust.Thin, Crust.HandmadePan}),
    Size.Large: frozenset({Crust.HandTossed, Crust.Thin, Crust.Brooklyn}),
    Size.XL: frozenset({Crust.Brooklyn}),
}

STREET_ADDRESS_RE = re.compile(r"^\d+ ")
STATE_RE = re.compile(r"^[A-Z]{2}$")
STORE_ID_RE = re.compile(r"^[0-9]+\Z")
ZIP_RE = re.compile(r"^\d{5}$")
PHONE_RE = re.compile(r"^\d{3}-\d{3}-\d{4}$")
EXPIRATION_RE = re.compile(r"^(\d{2})/(\d{2})$")
SECURITY_CODE_RE = re.compile(r"^\d{3}$")
CARD_NUMBER_RE = re.compile(r"^\d{13,19}$")

_V = TypeVar("_V")


class _Validated:
    """Mixin for validated twins: construction is only possible via _promote."""

    __slots__ = ()

    def __init__(self, *args: Any, **kwargs: Any):
        raise TypeError(
            f"{type(self).__name__} can only be produced by validation; "
            "build the unvalidated value and validate it instead."
        )


class ValidPizza(_Validated, Pizza):
    pass


class ValidOrderInfo(_Validated, OrderInfo):
    pass


class ValidPersonalInfo(_Validated, PersonalInfo):
    pass


class ValidPayment(_Validated):
    """A payment whose card details (if any) passed validation."""

    __slots__ = ("info",)

    info: PaymentInfo

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("ValidPayment is immutable")

    def __eq__(self, other: object) -> bool:
        # Equal to the payment it was validated from.
        if isinstance(other, ValidPayment):
            other = other.info
        if not isinstance(other, PaymentInfo):
            return NotImplemented
        return self.info == other

    def __hash__(self) -> int:
        return hash(self.info)

    def __repr__(self) -> str:
        return f"ValidPayment({self.info!r})"


class ValidOrder(_Validated, Order):
    pass


def _promote(cls: type[_V], value: Any) -> _V:
    promoted = object.__new__(cls)
    for f in fields(value):
        object.__setattr__(promoted, f.name, getattr(value, f.name))
    return promoted


def _promote_payment(info: PaymentInfo) -> ValidPayment:
    payment = object.__new__(ValidPayment)
    object.__setattr__(payment, "info", info)
    return payment


def _require(value: Any, expected: type, what: str) -> None:
    if not isinstance(value, expected):
        raise TypeError(f"{what} must be a {expected.__name__}, got {type(value).__name__}")


class _Errors:
    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self.items: list[FieldError] = []

    def add(self, path: str, message: str) -> None:
        self.items.append(FieldError(self.prefix + path, message))

    def extend(self, errors: list[FieldError], prefix: str) -> None:
        self.items.extend(FieldError(prefix + e.path, e.message) for e in errors)

    def enum(self, path: str, value: Any, enum_type: type[Enum]) -> bool:
        if isinstance(value, enum_type):
            return True
        self.add(path, f"'{value}' is not a valid {enum_type.__name__}.")
        return False


# --- Pizza ---


def validate_pizza(pizza: Pizza) -> Result[ValidPizza, list[FieldError]]:
    _require(pizza, Pizza, "pizza")
    errors = _Errors()

    size_ok = errors.enum("Size", pizza.size, Size)
    crust_ok = errors.enum("Crust", pizza.crust, Crust)
    bake_ok = errors.enum("Bake", pizza.bake, Bake)
    errors.enum("Cut", pizza.cut, Cut)

    match pizza.cheese:
        case FullCheese(amount=amount):
            errors.enum("Cheese.Amount", amount, Amount)
        case SideCheese(left=left, right=right):
            if left is not None:
                errors.enum("Cheese.Left", left, Amount)
            if right is not None:
                errors.enum("Cheese.Right", right, Amount)
        case NoCheese():
            pass
        case _:
            errors.add("Cheese", f"'{pizza.cheese}' is not a valid Cheese.")

    if pizza.sauce is not None:
        errors.enum("Sauce.Amount", pizza.sauce.amount, Amount)
        errors.enum("Sauce.SauceType", pizza.sauce.sauce_type, SauceType)

    toppings_ok = []
    for i, topping in enumerate(pizza.toppings):
        type_ok = errors.enum(f"Toppings[{i}].ToppingType", topping.topping_type, ToppingType)
        location_ok = errors.enum(f"Toppings[{i}].Location", topping.location, Location)
        amount_ok = errors.enum(f"Toppings[{i}].Amount", topping.amount, Amount)
        toppings_ok.append(type_ok and location_ok and amount_ok)

    if size_ok and crust_ok and pizza.crust not in ALLOWED_CRUSTS[pizza.size]:
        errors.add("Crust", f"{pizza.crust.name} crust is not available for {pizza.size.name} pizzas.")

    if crust_ok:
        _check_crust_rules(pizza, errors, bake_ok)

    valid_toppings = [t for t, ok in zip(pizza.toppings, toppings_ok) if ok]
    for side in (Location.Left, Location.Right):
        weight = sum(
            2 if t.amount == Amount.Extra else 1
            for t in valid_toppings
            if t.location in (Location.All, side)
        )
        if not 0 <= weight <= MAX_TOPPINGS_PER_SIDE:
            errors.add(
                "Toppings",
                f"The {side.name.lower()} side can hold at most {MAX_TOPPINGS_PER_SIDE} toppings "
                f"(extra counts double), got {weight}.",
            )
    topping_types = [t.topping_type for t in pizza.toppings]
    if len(set(topping_types)) != len(topping_types):
        errors.add("Toppings", "Each topping may only appear once.")

    if (
        not isinstance(pizza.quantity, int)
        or isinstance(pizza.quantity, bool)
        or not MIN_QUANTITY <= pizza.quantity <= MAX_QUANTITY
    ):
        errors.add("Quantity", f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}.")

    if errors.items:
        return Failure(errors.items)
    return Success(_promote(ValidPizza, pizza))


def _check_crust_rules(pizza: Pizza, errors: _Errors, bake_ok: bool) -> None:
    crust = pizza.crust
    if crust == Crust.HandTossed and pizza.oregano:
        errors.add("Oregano", "Hand tossed pizzas can't have oregano.")

    if crust == Crust.Thin:
        if pizza.garlic_crust:
            errors.add("GarlicCrust", "Thin crust pizzas can't have garlic crust.")
        if bake_ok and pizza.bake != Bake.Normal:
            errors.add("Bake", "Thin crust pizzas must have a normal bake.")

    if crust in (Crust.HandmadePan, Crust.Brooklyn, Crust.GlutenFree):
        if pizza.garlic_crust:
            errors.add("GarlicCrust", f"{crust.name} pizzas can't have garlic crust.")
        if pizza.oregano:
            errors.add("Oregano", f"{crust.name} pizzas can't have oregano.")

    if crust in (Crust.HandmadePan, Crust.Brooklyn):
        match pizza.cheese:
            case NoCheese():
                errors.add("Cheese", f"{crust.name} pizzas need cheese.")
            case SideCheese(left=left, right=right):
                if left is None:
                    errors.add("Cheese.Left", f"{crust.name} pizzas need cheese on both sides.")
                if right is None:
                    errors.add("Cheese.Right", f"{crust.name} pizzas need cheese on both sides.")

    if (
        crust == Crust.HandmadePan
        and pizza.sauce is not None
        and pizza.sauce.sauce_type == SauceType.Marinara
    ):
        errors.add("Sauce.SauceType", "Handmade pan pizzas can't have marinara sauce.")


# --- Order info ---


def validate_order_info(order_info: OrderInfo) -> Result[ValidOrderInfo, list[FieldError]]:
    _require(order_info, OrderInfo, "order_info")
    errors = _Errors()

    if not _is_store_number(order_info.store_id):
        errors.add("StoreId", f"'{order_info.store_id}' is not a valid store number.")

    match order_info.service_method:
        case Carryout(location=location):
            errors.enum("ServiceMethod.Location", location, PickupLocation)
        case Delivery(address=address):
            _check_address(address, errors)
        case _:
            errors.add("ServiceMethod", "Service method must be Delivery or Carryout.")

    match order_info.timing:
        case Now():
            pass
        case Later(when=when) if isinstance(when, datetime):
            pass
        case _:
            errors.add("Timing", "Timing must be now or a date and time.")

    if errors.items:
        return Failure(errors.items)
    return Success(_promote(ValidOrderInfo, order_info))


def _check_address(address: Address, errors: _Errors) -> None:
    prefix = "ServiceMethod.Address."
    if not isinstance(address, Address):
        errors.add("ServiceMethod.Address", "Delivery needs an address.")
        return
    if not STREET_ADDRESS_RE.match(address.street_address or ""):
        errors.add(prefix + "StreetAddress", "Street address must start with a house number.")
    errors.enum(prefix + "AddressType", address.address_type, AddressType)
    if address.apt is not None and (not isinstance(address.apt, int) or address.apt < 0):
        errors.add(prefix + "Apt", "Apartment number can't be negative.")
    if not STATE_RE.match(address.state or ""):
        errors.add(prefix + "State", "State must be a two letter abbreviation.")
    if not ZIP_RE.match(address.zip_code or ""):
        errors.add(prefix + "ZipCode", "Zip code must be five digits.")


def _is_store_number(value: Any) -> bool:
    return isinstance(value, str) and STORE_ID_RE.match(value) is not None


# --- Payment ---


def validate_payment(payment: PaymentInfo) -> Result[ValidPayment, list[FieldError]]:
    if isinstance(payment, ValidPayment):
        return Success(payment)
    _require(payment, PaymentInfo, "payment")
    errors = _Errors("PaymentInfo.")

    match payment:
        case PayAtStore():
            pass
        case PayWithCard():
            if not luhn_valid(payment.card_number):
                errors.add("CardNumber", "Card number is not valid.")
            if not _expiration_valid(payment.expiration):
                errors.add("Expiration", "Expiration must be MM/YY.")
            if not SECURITY_CODE_RE.match(payment.security_code or ""):
                errors.add("SecurityCode", "Security code must be three digits.")
            if not ZIP_RE.match(payment.billing_zip or ""):
                errors.add("BillingZip", "Billing zip code must be five digits.")
        case _:
            raise AssertionError(f"Invalid PaymentInfo! {payment}")

    if errors.items:
        return Failure(errors.items)
    return Success(_promote_payment(payment))


def luhn_valid(card_number: str) -> bool:
    number = str(card_number or "")
    if not CARD_NUMBER_RE.match(number):
        return False
    total = 0
    for i, digit in enumerate(int(c) for c in reversed(number)):
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def _expiration_valid(expiration: Optional[str]) -> bool:
    match = EXPIRATION_RE.match(expiration or "")
    return bool(match) and 1 <= int(match.group(1)) <= 12


# --- Personal info ---


def validate_personal_info(info: PersonalInfo) -> Result[ValidPersonalInfo, list[FieldError]]:
    _require(info, PersonalInfo, "personal_info")
    errors = _Errors()

    if not (info.first_name or "").strip():
        errors.add("FirstName", "First name is required.")
    if not (info.last_name or "").strip():
        errors.add("LastName", "Last name is required.")
    try:
        validate_email(info.email or "")
    except PydanticCustomError as e:
        errors.add("Email", f"'{info.email}' is not a valid email address ({e.message()}).")
    if not PHONE_RE.match(info.phone or ""):
        errors.add("Phone", "Phone must look like 555-123-4567.")

    if errors.items:
        return Failure(errors.items)
    return Success(_promote(ValidPersonalInfo, info))


# --- Order ---


def validate_order(order: Order) -> Result[ValidOrder, list[FieldError]]:
    _require(order, Order, "order")
    errors = _Errors()

    if not order.pizzas:
        errors.add("Pizzas", "An order needs at least one pizza.")

    pizzas = []
    for i, pizza in enumerate(order.pizzas):
        match validate_pizza(pizza):
            case Success(value=valid):
                pizzas.append(valid)
            case Failure(error=es):
                errors.extend(es, f"Pizzas[{i}].")

    order_info = None
    match validate_order_info(order.order_info):
        case Success(value=valid):
            order_info = valid
        case Failure(error=es):
            errors.extend(es, "OrderInfo.")

    payment = None
    match validate_payment(order.payment):
        case Success(value=valid):
            payment = valid
        case Failure(error=es):
            errors.extend(es, "Payment.")

    if errors.items:
        return Failure(errors.items)
    validated = Order(
        pizzas=tuple(pizzas),
        order_info=order_info,
        payment=payment,
        coupons=frozenset(order.coupons),
    )
    return Success(_promote(ValidOrder, validated))


# --- Raising helpers ---


def _unwrap(result: Result[_V, list[FieldError]], what: str) -> _V:
    match result:
        case Success(value=value):
            return value
        case Failure(error=es):
            logger.debug("Invalid %s: %s", what, es)
            raise ValidationError(es)
        case _:
            raise AssertionError(f"Invalid Result! {result}")


def ensure_valid_pizza(pizza: Pizza) -> ValidPizza:
    return _unwrap(validate_pizza(pizza), "pizza")


def ensure_valid_order_info(order_info: OrderInfo) -> ValidOrderInfo:
    return _unwrap(validate_order_info(order_info), "order info")


def ensure_valid_payment(payment: PaymentInfo) -> ValidPayment:
    return _unwrap(validate_payment(payment), "payment")


def ensure_valid_personal_info(info: PersonalInfo) -> ValidPersonalInfo:
    return _unwrap(validate_personal_info(info), "personal info")


def ensure_valid_order(order: Order) -> ValidOrder:
    return _unwrap(validate_order(order), "order")
