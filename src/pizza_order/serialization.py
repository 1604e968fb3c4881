"""Compact text grammar for pizzas and JSON documents for saved entities.

Amounts are one character (``-`` light, ``=`` normal, ``^`` extra, ``_``
none), locations are the first letter of their name, and every other enum
is written by member name. A pizza document looks like::

    {
      "Size": "Large",
      "Crust": "HandTossed",
      "Cheese": "=",
      "Sauce": "=Tomato",
      "Toppings": ["A=Pepperoni", "L^Bacon"],
      ...
    }

Documents are written with two-space indentation and a trailing newline so
``encode(decode(text)) == text`` holds byte for byte.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from pizza_order.models import (
    Address,
    AddressType,
    Amount,
    Bake,
    Carryout,
    Cheese,
    Coupon,
    Crust,
    Cut,
    Delivery,
    FullCheese,
    Later,
    Location,
    NoCheese,
    Now,
    OrderInfo,
    OrderTiming,
    PayAtStore,
    PaymentInfo,
    PayWithCard,
    PersonalInfo,
    PickupLocation,
    Pizza,
    Sauce,
    SauceType,
    SavedOrder,
    ServiceMethod,
    SideCheese,
    Size,
    Topping,
    ToppingType,
)
from pizza_order.result import Failure, FieldError, Result, Success

_E = TypeVar("_E", bound=Enum)
_T = TypeVar("_T")

NO_AMOUNT = "_"
NO_CHEESE = "_"
CARRYOUT_PREFIX = "Carryout - "
PAY_AT_STORE = "PayAtStore"
NOW = "Now"

_AMOUNT_CHARS = {
    Amount.Light: "-",
    Amount.Normal: "=",
    Amount.Extra: "^",
}
_CHAR_AMOUNTS = {char: amount for amount, char in _AMOUNT_CHARS.items()}
_LOCATION_CHARS = {location: location.name[0] for location in Location}
_CHAR_LOCATIONS = {char: location for location, char in _LOCATION_CHARS.items()}


class DecodeError(ValueError):
    """Malformed compact text or document."""

    def __init__(self, field: str, value: Any, reason: str = ""):
        self.field = field
        self.value = value
        message = f"Invalid {field}! Value: {value!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


# --- Compact grammar ---


def encode_amount(amount: Optional[Amount]) -> str:
    if amount is None:
        return NO_AMOUNT
    try:
        return _AMOUNT_CHARS[amount]
    except (KeyError, TypeError):
        raise AssertionError(f"Invalid amount! Value: {amount}") from None


def decode_amount(char: str) -> Optional[Amount]:
    if char == NO_AMOUNT:
        return None
    try:
        return _CHAR_AMOUNTS[char]
    except KeyError:
        raise DecodeError("amount", char) from None


def _decode_required_amount(char: str, field: str) -> Amount:
    amount = decode_amount(char)
    if amount is None:
        raise DecodeError(field, char, "amount is required")
    return amount


def encode_location(location: Location) -> str:
    try:
        return _LOCATION_CHARS[location]
    except (KeyError, TypeError):
        raise AssertionError(f"Invalid location! Value: {location}") from None


def decode_location(char: str) -> Location:
    try:
        return _CHAR_LOCATIONS[char]
    except KeyError:
        raise DecodeError("location", char) from None


def encode_cheese(cheese: Cheese) -> str:
    match cheese:
        case FullCheese(amount=amount):
            return encode_amount(amount)
        case SideCheese(left=left, right=right):
            return encode_amount(left) + encode_amount(right)
        case NoCheese():
            return NO_CHEESE
        case _:
            raise AssertionError(f"Invalid cheese! Value: {cheese}")


def decode_cheese(text: str) -> Cheese:
    if not isinstance(text, str):
        raise DecodeError("cheese", text)
    if text == NO_CHEESE:
        return NoCheese()
    if len(text) == 1:
        return FullCheese(_decode_required_amount(text, "cheese"))
    if len(text) == 2:
        return SideCheese(decode_amount(text[0]), decode_amount(text[1]))
    raise DecodeError("cheese", text)


def encode_sauce(sauce: Sauce) -> str:
    return encode_amount(sauce.amount) + _enum_name(sauce.sauce_type, SauceType)


def decode_sauce(text: str) -> Sauce:
    if not isinstance(text, str) or len(text) < 2:
        raise DecodeError("sauce", text)
    amount = _decode_required_amount(text[0], "sauce")
    return Sauce(_parse_enum(SauceType, text[1:], "sauce type"), amount)


def encode_topping(topping: Topping) -> str:
    return (
        encode_location(topping.location)
        + encode_amount(topping.amount)
        + _enum_name(topping.topping_type, ToppingType)
    )


def decode_topping(text: str) -> Topping:
    if not isinstance(text, str) or len(text) < 3:
        raise DecodeError("topping", text)
    location = decode_location(text[0])
    amount = _decode_required_amount(text[1], "topping")
    return Topping(_parse_enum(ToppingType, text[2:], "topping type"), location, amount)


def _enum_name(value: Enum, enum_type: type[Enum]) -> str:
    if not isinstance(value, enum_type):
        raise AssertionError(f"Invalid {enum_type.__name__}! Value: {value}")
    return value.name


def _parse_enum(enum_type: type[_E], text: Any, field: str) -> _E:
    try:
        return enum_type[text]
    except (KeyError, TypeError):
        raise DecodeError(field, text) from None


def _get(data: Any, key: str, field: str) -> Any:
    if not isinstance(data, dict):
        raise DecodeError(field, data, "expected an object")
    try:
        return data[key]
    except KeyError:
        raise DecodeError(field, data, f"missing {key}") from None


def _get_bool(data: dict, key: str) -> bool:
    value = _get(data, key, key)
    if not isinstance(value, bool):
        raise DecodeError(key, value, "expected true or false")
    return value


# --- Pizza documents ---


def pizza_to_dict(pizza: Pizza) -> dict[str, Any]:
    return {
        "Size": _enum_name(pizza.size, Size),
        "Crust": _enum_name(pizza.crust, Crust),
        "Cheese": encode_cheese(pizza.cheese),
        "Sauce": None if pizza.sauce is None else encode_sauce(pizza.sauce),
        "Toppings": [encode_topping(t) for t in pizza.toppings],
        "Bake": _enum_name(pizza.bake, Bake),
        "Cut": _enum_name(pizza.cut, Cut),
        "Oregano": pizza.oregano,
        "GarlicCrust": pizza.garlic_crust,
        "Quantity": pizza.quantity,
    }


def pizza_from_dict(data: dict[str, Any]) -> Pizza:
    sauce = _get(data, "Sauce", "pizza")
    toppings = _get(data, "Toppings", "pizza")
    if not isinstance(toppings, list):
        raise DecodeError("toppings", toppings, "expected a list")
    quantity = _get(data, "Quantity", "pizza")
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        raise DecodeError("quantity", quantity, "expected a number")
    return Pizza(
        size=_parse_enum(Size, _get(data, "Size", "pizza"), "size"),
        crust=_parse_enum(Crust, _get(data, "Crust", "pizza"), "crust"),
        cheese=decode_cheese(_get(data, "Cheese", "pizza")),
        sauce=None if sauce is None else decode_sauce(sauce),
        toppings=tuple(decode_topping(t) for t in toppings),
        bake=_parse_enum(Bake, _get(data, "Bake", "pizza"), "bake"),
        cut=_parse_enum(Cut, _get(data, "Cut", "pizza"), "cut"),
        oregano=_get_bool(data, "Oregano"),
        garlic_crust=_get_bool(data, "GarlicCrust"),
        quantity=quantity,
    )


# --- Order info documents ---


def address_to_dict(address: Address) -> dict[str, Any]:
    return {
        "AddressType": _enum_name(address.address_type, AddressType),
        "Name": address.name,
        "StreetAddress": address.street_address,
        "Apt": address.apt,
        "ZipCode": address.zip_code,
        "City": address.city,
        "State": address.state,
    }


def address_from_dict(data: dict[str, Any]) -> Address:
    known = {"AddressType", "Name", "StreetAddress", "Apt", "ZipCode", "City", "State"}
    unknown = set(data) - known
    if unknown:
        raise DecodeError("address", sorted(unknown), "unknown properties")
    apt = data.get("Apt")
    if apt is not None and (not isinstance(apt, int) or isinstance(apt, bool)):
        raise DecodeError("apt", apt, "expected a number")
    return Address(
        address_type=_parse_enum(AddressType, data.get("AddressType", "House"), "address type"),
        name=data.get("Name"),
        street_address=_get(data, "StreetAddress", "address"),
        apt=apt,
        zip_code=_get(data, "ZipCode", "address"),
        city=_get(data, "City", "address"),
        state=_get(data, "State", "address"),
    )


def service_method_to_json(method: ServiceMethod) -> Any:
    match method:
        case Delivery(address=address):
            return address_to_dict(address)
        case Carryout(location=location):
            return CARRYOUT_PREFIX + _enum_name(location, PickupLocation)
        case _:
            raise AssertionError(f"Invalid ServiceMethod! {method}")


def service_method_from_json(value: Any) -> ServiceMethod:
    if isinstance(value, dict):
        return Delivery(address_from_dict(value))
    if isinstance(value, str) and value.startswith(CARRYOUT_PREFIX):
        location = value[len(CARRYOUT_PREFIX):]
        return Carryout(_parse_enum(PickupLocation, location, "pickup location"))
    raise DecodeError("service method", value)


def timing_to_json(timing: OrderTiming) -> str:
    match timing:
        case Now():
            return NOW
        case Later(when=when):
            return when.isoformat()
        case _:
            raise AssertionError(f"Invalid OrderTiming! {timing}")


def timing_from_json(value: Any) -> OrderTiming:
    if value == NOW:
        return Now()
    try:
        return Later(datetime.fromisoformat(value))
    except (TypeError, ValueError):
        raise DecodeError("timing", value) from None


def order_info_to_dict(info: OrderInfo) -> dict[str, Any]:
    return {
        "StoreId": info.store_id,
        "ServiceMethod": service_method_to_json(info.service_method),
        "Timing": timing_to_json(info.timing),
    }


def order_info_from_dict(data: dict[str, Any]) -> OrderInfo:
    return OrderInfo(
        store_id=str(_get(data, "StoreId", "order info")),
        service_method=service_method_from_json(_get(data, "ServiceMethod", "order info")),
        timing=timing_from_json(_get(data, "Timing", "order info")),
    )


# --- Payment & personal info documents ---


def payment_to_json(payment: PaymentInfo) -> Any:
    info = getattr(payment, "info", payment)
    match info:
        case PayAtStore():
            return PAY_AT_STORE
        case PayWithCard():
            return {
                "CardNumber": info.card_number,
                "Expiration": info.expiration,
                "SecurityCode": info.security_code,
                "BillingZip": info.billing_zip,
            }
        case _:
            raise AssertionError(f"Invalid Payment! {payment}")


def payment_from_json(value: Any) -> PaymentInfo:
    if value == PAY_AT_STORE:
        return PayAtStore()
    if isinstance(value, dict):
        unknown = set(value) - {"CardNumber", "Expiration", "SecurityCode", "BillingZip"}
        if unknown:
            raise DecodeError("card payment", sorted(unknown), "unknown properties")
        return PayWithCard(
            card_number=str(_get(value, "CardNumber", "card payment")),
            expiration=_get(value, "Expiration", "card payment"),
            security_code=_get(value, "SecurityCode", "card payment"),
            billing_zip=_get(value, "BillingZip", "card payment"),
        )
    raise DecodeError("payment", value)


def personal_info_to_dict(info: PersonalInfo) -> dict[str, Any]:
    return {
        "FirstName": info.first_name,
        "LastName": info.last_name,
        "Email": info.email,
        "Phone": info.phone,
    }


def personal_info_from_dict(data: dict[str, Any]) -> PersonalInfo:
    return PersonalInfo(
        first_name=_get(data, "FirstName", "personal info"),
        last_name=_get(data, "LastName", "personal info"),
        email=_get(data, "Email", "personal info"),
        phone=_get(data, "Phone", "personal info"),
    )


def saved_order_to_dict(order: SavedOrder) -> dict[str, Any]:
    return {
        "Pizzas": list(order.pizzas),
        "Coupons": [c.code for c in order.coupons],
        "OrderInfo": order_info_to_dict(order.order_info),
        "PaymentName": order.payment_name,
    }


def saved_order_from_dict(data: dict[str, Any]) -> SavedOrder:
    pizzas = _get(data, "Pizzas", "saved order")
    coupons = _get(data, "Coupons", "saved order")
    if not isinstance(pizzas, list) or not isinstance(coupons, list):
        raise DecodeError("saved order", data, "Pizzas and Coupons must be lists")
    return SavedOrder(
        pizzas=tuple(pizzas),
        coupons=tuple(Coupon(str(code)) for code in coupons),
        order_info=order_info_from_dict(_get(data, "OrderInfo", "saved order")),
        payment_name=_get(data, "PaymentName", "saved order"),
    )


# --- Text ---


def dumps(data: Any) -> str:
    return json.dumps(data, indent=2) + "\n"


def loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError("document", text[:40], e.msg) from e


def encode_pizza(pizza: Pizza) -> str:
    return dumps(pizza_to_dict(pizza))


def decode_pizza(text: str) -> Pizza:
    return pizza_from_dict(loads(text))


def encode_pizzas(pizzas: list[Pizza]) -> str:
    return dumps([pizza_to_dict(p) for p in pizzas])


def decode_pizzas(text: str) -> list[Pizza]:
    data = loads(text)
    if not isinstance(data, list):
        raise DecodeError("pizza list", data, "expected a list")
    return [pizza_from_dict(d) for d in data]


def encode_order_info(info: OrderInfo) -> str:
    return dumps(order_info_to_dict(info))


def decode_order_info(text: str) -> OrderInfo:
    return order_info_from_dict(loads(text))


def encode_payment(payment: PaymentInfo) -> str:
    return dumps(payment_to_json(payment))


def decode_payment(text: str) -> PaymentInfo:
    return payment_from_json(loads(text))


def encode_personal_info(info: PersonalInfo) -> str:
    return dumps(personal_info_to_dict(info))


def decode_personal_info(text: str) -> PersonalInfo:
    return personal_info_from_dict(loads(text))


def encode_saved_order(order: SavedOrder) -> str:
    return dumps(saved_order_to_dict(order))


def decode_saved_order(text: str) -> SavedOrder:
    return saved_order_from_dict(loads(text))


def try_decode(decode: Callable[[Any], _T], value: Any) -> Result[_T, list[FieldError]]:
    """Run a decoder, turning a DecodeError into a Failure for the caller."""
    try:
        return Success(decode(value))
    except DecodeError as e:
        return Failure([FieldError(e.field, str(e))])
