"""Pizza → remote Product conversion and Product normalization."""

from typing import Optional

from pizza_order.api import OptionMap, OptionValue, Product
from pizza_order.models import (
    Amount,
    Bake,
    Cheese,
    Crust,
    Cut,
    FullCheese,
    Location,
    NoCheese,
    Pizza,
    Sauce,
    SauceType,
    SideCheese,
    Size,
    Topping,
    ToppingType,
)

CHEESE = "C"
BASE_SAUCE = "X"
WHOLE = "1/1"
LEFT_HALF = "1/2"
RIGHT_HALF = "2/2"
DEFAULT_AMOUNT = "1"

SIZE_CODES = {
    Size.Small: "10",
    Size.Medium: "P12",
    Size.Large: "14",
    Size.XL: "P16",
}

CRUST_CODES = {
    Crust.Brooklyn: "IBKZA",
    Crust.HandTossed: "SCREEN",
    Crust.Thin: "THIN",
    Crust.HandmadePan: "IPAZA",
    Crust.GlutenFree: "GLUTENF",
}

SAUCE_CODES = {
    SauceType.Tomato: "X",
    SauceType.Marinara: "Xm",
    SauceType.HoneyBBQ: "Bq",
    SauceType.GarlicParmesan: "Xw",
    SauceType.Alfredo: "Xf",
    SauceType.Ranch: "Rd",
}

TOPPING_CODES = {
    ToppingType.Ham: "H",
    ToppingType.Beef: "B",
    ToppingType.Salami: "Sa",
    ToppingType.Pepperoni: "P",
    ToppingType.ItalianSausage: "S",
    ToppingType.PremiumChicken: "Du",
    ToppingType.Bacon: "K",
    ToppingType.PhillySteak: "Pm",
    ToppingType.HotBuffaloSauce: "Ht",
    ToppingType.JalapenoPeppers: "J",
    ToppingType.Onions: "O",
    ToppingType.BananaPeppers: "Z",
    ToppingType.DicedTomatoes: "Td",
    ToppingType.BlackOlives: "R",
    ToppingType.Mushrooms: "M",
    ToppingType.Pineapple: "N",
    ToppingType.ShreddedProvoloneCheese: "Cp",
    ToppingType.CheddarCheese: "E",
    ToppingType.GreenPeppers: "G",
    ToppingType.Spinach: "Si",
    ToppingType.FetaCheese: "Fe",
    ToppingType.ShreddedParmesanAsiago: "Cs",
}

SIDE_KEYS = {
    Location.All: WHOLE,
    Location.Left: LEFT_HALF,
    Location.Right: RIGHT_HALF,
}

AMOUNT_VALUES = {
    Amount.Light: "0.5",
    Amount.Normal: "1",
    Amount.Extra: "1.5",
}
NO_AMOUNT_VALUE = "0"


def _lookup(table: dict, key, what: str) -> str:
    try:
        return table[key]
    except (KeyError, TypeError):
        raise AssertionError(f"Unknown {what}: {key}") from None


def product_code(size: Size, crust: Crust) -> str:
    return _lookup(SIZE_CODES, size, "size") + _lookup(CRUST_CODES, crust, "crust")


def instructions(pizza: Pizza) -> Optional[str]:
    items = []
    if pizza.bake == Bake.WellDone:
        items.append("WD")
    if pizza.crust == Crust.HandTossed and not pizza.garlic_crust:
        items.append("NGO")
    if pizza.crust == Crust.Thin:
        if not pizza.oregano:
            items.append("NOOR")
        if pizza.cut == Cut.Pie:
            items.append("PIECT")
    elif pizza.cut == Cut.Square:
        items.append("SQCT")
    if pizza.cut == Cut.Uncut:
        items.append("UNCT")
    return "-".join(items) if items else None


def _amount_value(amount: Optional[Amount]) -> str:
    if amount is None:
        return NO_AMOUNT_VALUE
    return _lookup(AMOUNT_VALUES, amount, "amount")


def topping_option(topping: Topping) -> tuple[str, OptionValue]:
    code = _lookup(TOPPING_CODES, topping.topping_type, "topping type")
    side = _lookup(SIDE_KEYS, topping.location, "location")
    return code, {side: _amount_value(topping.amount)}


def sauce_options(sauce: Optional[Sauce]) -> list[tuple[str, OptionValue]]:
    if sauce is None:
        return [(BASE_SAUCE, None)]
    code = _lookup(SAUCE_CODES, sauce.sauce_type, "sauce type")
    options: list[tuple[str, OptionValue]] = [(code, {WHOLE: _amount_value(sauce.amount)})]
    if sauce.sauce_type != SauceType.Tomato:
        options.append((BASE_SAUCE, None))
    return options


def cheese_option(cheese: Cheese) -> tuple[str, OptionValue]:
    match cheese:
        case FullCheese(amount=amount):
            return CHEESE, {WHOLE: _amount_value(amount)}
        case SideCheese(left=left, right=right):
            return CHEESE, {LEFT_HALF: _amount_value(left), RIGHT_HALF: _amount_value(right)}
        case NoCheese():
            return CHEESE, None
        case _:
            raise AssertionError(f"Invalid cheese! Value: {cheese}")


def to_product(pizza: Pizza, product_id: int) -> Product:
    """Wire Product for a pizza at 1-based position ``product_id`` in the cart."""
    options = [topping_option(t) for t in pizza.toppings]
    options.extend(sauce_options(pizza.sauce))
    options.append(cheese_option(pizza.cheese))
    return Product(
        ID=product_id,
        Code=product_code(pizza.size, pizza.crust),
        Qty=pizza.quantity,
        Instructions=instructions(pizza),
        Options=dict(options),
    )


# --- Normalization ---


def _canonical_amount(value: str) -> str:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return value
    return f"{number:g}"


def _is_zero(value: OptionValue) -> bool:
    if value is None or WHOLE not in value:
        return False
    try:
        return float(value[WHOLE]) == 0
    except (TypeError, ValueError):
        return False


def normalize_options(options: Optional[OptionMap]) -> OptionMap:
    """Canonical option map.

    The API leaves out cheese and base sauce when they are the default and
    reports a removed one as a zero amount; fill in the default and map the
    zero to None so both sides of a comparison agree.
    """
    normalized: OptionMap = {}
    for code, value in (options or {}).items():
        if value is None:
            normalized[code] = None
        else:
            normalized[code] = {side: _canonical_amount(amt) for side, amt in value.items()}

    for code in (CHEESE, BASE_SAUCE):
        if code not in normalized:
            normalized[code] = {WHOLE: DEFAULT_AMOUNT}
        elif _is_zero(normalized[code]):
            normalized[code] = None
    return normalized


def normalize(product: Product) -> Product:
    return product.model_copy(update={"Options": normalize_options(product.Options)})


def normalize_products(products: list[Product]) -> list[Product]:
    return [normalize(p) for p in products]
