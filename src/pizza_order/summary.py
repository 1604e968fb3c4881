"""Plain-text summaries shown to the user before an order is placed."""

from typing import Optional

from pizza_order.models import (
    Address,
    Amount,
    Bake,
    Carryout,
    Cheese,
    Cut,
    Delivery,
    FullCheese,
    Later,
    Location,
    NoCheese,
    Now,
    OrderInfo,
    PayAtStore,
    PaymentInfo,
    PayWithCard,
    PersonalInfo,
    Pizza,
    Sauce,
    SideCheese,
    Topping,
)

LATER_FORMAT = "%Y-%m-%d %H:%M"

_CUTS = {
    Cut.Pie: "pie cut",
    Cut.Square: "square cut",
    Cut.Uncut: "uncut",
}


def summarize_pizza(pizza: Pizza) -> str:
    lines = [f"{pizza.size.name} {pizza.crust.name} Pizza x{pizza.quantity}"]
    if not pizza.cheese.is_standard:
        lines.append(f"  with {_cheese(pizza.cheese)}")
    if pizza.sauce is None or not pizza.sauce.is_standard:
        lines.append(f"  with {_sauce(pizza.sauce)}")
    if pizza.bake != Bake.Normal:
        lines.append("  well done")
    lines.append(f"  {_cut(pizza.cut)}")
    if pizza.oregano:
        lines.append("  with oregano")
    if pizza.garlic_crust:
        lines.append("  with garlic crust")

    if not pizza.toppings:
        lines.append("No Toppings")
    else:
        lines.append("Toppings:")
        lines.extend(f" {_topping(t)}" for t in pizza.toppings)
    return "\n".join(lines)


def _cheese(cheese: Cheese) -> str:
    match cheese:
        case FullCheese(amount=amount):
            return f"{amount.name} cheese"
        case SideCheese(left=left, right=right):
            return f"({_side(left)}|{_side(right)}) cheese"
        case NoCheese():
            return "no cheese"
        case _:
            raise AssertionError(f"Invalid cheese! Value: {cheese}")


def _side(amount: Optional[Amount]) -> str:
    return "None" if amount is None else amount.name


def _sauce(sauce: Optional[Sauce]) -> str:
    if sauce is None:
        return "no sauce"
    if sauce.amount == Amount.Normal:
        return f"{sauce.sauce_type.name} sauce"
    return f"{sauce.amount.name} {sauce.sauce_type.name} sauce"


def _cut(cut: Cut) -> str:
    try:
        return _CUTS[cut]
    except KeyError:
        raise AssertionError(f"Invalid cut! Value: {cut}") from None


def _topping(topping: Topping) -> str:
    words = []
    if topping.amount != Amount.Normal:
        words.append(topping.amount.name)
    words.append(topping.topping_type.name)
    if topping.location != Location.All:
        words.append(f"on the {topping.location.name}")
    return " ".join(words)


def summarize_address(address: Address) -> str:
    lines = [
        address.name or "",
        address.street_address,
        "" if address.apt is None else f"Apt. {address.apt}",
        f"{address.city}, {address.state} {address.zip_code}",
    ]
    return "\n".join(f"  {line}" for line in lines if line)


def summarize_order_info(info: OrderInfo) -> str:
    match info.timing:
        case Now():
            timing = "now"
        case Later(when=when):
            timing = f"later at {when.strftime(LATER_FORMAT)}"
        case _:
            raise AssertionError(f"Invalid OrderTiming! {info.timing}")

    match info.service_method:
        case Delivery(address=address):
            method = f"Delivery from Store #{info.store_id} to\n{summarize_address(address)}"
        case Carryout(location=location):
            method = f"Carryout at {location.name} at Store #{info.store_id}"
        case _:
            raise AssertionError(f"Invalid ServiceMethod! {info.service_method}")

    return f"Order for {timing}\n{method}"


def summarize_personal_info(info: PersonalInfo) -> str:
    return f"Name: {info.first_name} {info.last_name}\nEmail: {info.email}\nPhone: {info.phone}"


def summarize_payment(payment: PaymentInfo) -> str:
    """One line; a card shows only its network and last four digits."""
    info = getattr(payment, "info", payment)
    match info:
        case PayAtStore():
            return "Pay at Store"
        case PayWithCard():
            return f"Pay with {info.card_type} ending in {info.card_number[-4:]}"
        case _:
            raise AssertionError(f"Invalid Payment! {payment}")
