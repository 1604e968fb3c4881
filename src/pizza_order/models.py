"""Order domain: pizzas, order info, payment and personal info.

Everything here is an unvalidated shape. The validated twins live in
``pizza_order.validation`` and can only be produced by its validators.
"""

from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Callable, Optional


class _FieldEquality:
    """Field-wise equality that ignores the validated/unvalidated twin distinction.

    Use with @dataclass(eq=False) so the generated __eq__ does not replace it.
    """

    __slots__ = ()

    def _values(self) -> tuple:
        return tuple(getattr(self, f.name) for f in fields(self))

    def __eq__(self, other: object) -> bool:
        if not (isinstance(other, type(self)) or isinstance(self, type(other))):
            return NotImplemented
        return self._values() == other._values()

    def __hash__(self) -> int:
        return hash(self._values())


class Size(Enum):
    Small = "Small"
    Medium = "Medium"
    Large = "Large"
    XL = "XL"


class Crust(Enum):
    Brooklyn = "Brooklyn"
    HandTossed = "HandTossed"
    Thin = "Thin"
    HandmadePan = "HandmadePan"
    GlutenFree = "GlutenFree"


class Amount(Enum):
    Light = "Light"
    Normal = "Normal"
    Extra = "Extra"


class Location(Enum):
    All = "All"
    Left = "Left"
    Right = "Right"


class SauceType(Enum):
    Tomato = "Tomato"
    Marinara = "Marinara"
    HoneyBBQ = "HoneyBBQ"
    GarlicParmesan = "GarlicParmesan"
    Alfredo = "Alfredo"
    Ranch = "Ranch"


class ToppingType(Enum):
    Ham = "Ham"
    Beef = "Beef"
    Salami = "Salami"
    Pepperoni = "Pepperoni"
    ItalianSausage = "ItalianSausage"
    PremiumChicken = "PremiumChicken"
    Bacon = "Bacon"
    PhillySteak = "PhillySteak"
    HotBuffaloSauce = "HotBuffaloSauce"
    JalapenoPeppers = "JalapenoPeppers"
    Onions = "Onions"
    BananaPeppers = "BananaPeppers"
    DicedTomatoes = "DicedTomatoes"
    BlackOlives = "BlackOlives"
    Mushrooms = "Mushrooms"
    Pineapple = "Pineapple"
    ShreddedProvoloneCheese = "ShreddedProvoloneCheese"
    CheddarCheese = "CheddarCheese"
    GreenPeppers = "GreenPeppers"
    Spinach = "Spinach"
    FetaCheese = "FetaCheese"
    ShreddedParmesanAsiago = "ShreddedParmesanAsiago"


class Bake(Enum):
    Normal = "Normal"
    WellDone = "WellDone"


class Cut(Enum):
    Pie = "Pie"
    Square = "Square"
    Uncut = "Uncut"


class AddressType(Enum):
    House = "House"
    Apartment = "Apartment"
    Business = "Business"
    Hotel = "Hotel"
    Other = "Other"


class PickupLocation(Enum):
    InStore = "InStore"
    Window = "Window"
    Carside = "Carside"
    DriveThru = "DriveThru"


# --- Cheese ---


class Cheese:
    """Closed family: FullCheese, SideCheese or NoCheese."""

    __slots__ = ()

    @property
    def is_standard(self) -> bool:
        return False


@dataclass(frozen=True)
class FullCheese(Cheese):
    amount: Amount

    @property
    def is_standard(self) -> bool:
        return self.amount == Amount.Normal


@dataclass(frozen=True)
class SideCheese(Cheese):
    left: Optional[Amount]
    right: Optional[Amount]


@dataclass(frozen=True)
class NoCheese(Cheese):
    pass


# --- Sauce & toppings ---


@dataclass(frozen=True)
class Sauce:
    sauce_type: SauceType
    amount: Amount = Amount.Normal

    @property
    def is_standard(self) -> bool:
        return self.sauce_type == SauceType.Tomato and self.amount == Amount.Normal


@dataclass(frozen=True)
class Topping:
    topping_type: ToppingType
    location: Location = Location.All
    amount: Amount = Amount.Normal


@dataclass(frozen=True, eq=False)
class Pizza(_FieldEquality):
    size: Size
    crust: Crust
    cheese: Cheese = FullCheese(Amount.Normal)
    sauce: Optional[Sauce] = None
    toppings: tuple[Topping, ...] = ()
    bake: Bake = Bake.Normal
    cut: Cut = Cut.Pie
    oregano: bool = False
    garlic_crust: bool = False
    quantity: int = 1


# --- Order info ---


@dataclass(frozen=True)
class Address:
    street_address: str
    city: str
    state: str
    zip_code: str
    address_type: AddressType = AddressType.House
    name: Optional[str] = None
    apt: Optional[int] = None


class ServiceMethod:
    """Closed family: Delivery or Carryout."""

    __slots__ = ()

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class Delivery(ServiceMethod):
    address: Address


@dataclass(frozen=True)
class Carryout(ServiceMethod):
    location: PickupLocation = PickupLocation.InStore


class OrderTiming:
    """Closed family: Now or Later."""

    __slots__ = ()


@dataclass(frozen=True)
class Now(OrderTiming):
    pass


@dataclass(frozen=True)
class Later(OrderTiming):
    when: datetime


@dataclass(frozen=True, eq=False)
class OrderInfo(_FieldEquality):
    store_id: str
    service_method: ServiceMethod
    timing: OrderTiming = Now()


# --- Payment ---


class PaymentInfo:
    """Closed family: PayAtStore or PayWithCard."""

    __slots__ = ()


@dataclass(frozen=True)
class PayAtStore(PaymentInfo):
    pass


@dataclass(frozen=True)
class PayWithCard(PaymentInfo):
    card_number: str
    expiration: str
    security_code: str
    billing_zip: str

    @property
    def card_type(self) -> str:
        return card_type(self.card_number)


def card_type(card_number: str) -> str:
    """Card network derived from the number's issuer prefix."""
    digits = "".join(c for c in str(card_number) if c.isdigit())
    if digits.startswith("4"):
        return "VISA"
    if digits[:2] in ("34", "37"):
        return "AMEX"
    if digits[:2] in ("51", "52", "53", "54", "55") or (
        len(digits) >= 4 and 2221 <= int(digits[:4]) <= 2720
    ):
        return "MASTERCARD"
    if digits.startswith("6011") or digits.startswith("65") or (
        len(digits) >= 3 and 644 <= int(digits[:3]) <= 649
    ):
        return "DISCOVER"
    return "UNKNOWN"


@dataclass(frozen=True, eq=False)
class PersonalInfo(_FieldEquality):
    first_name: str
    last_name: str
    email: str
    phone: str


# --- Orders ---


@dataclass(frozen=True)
class Coupon:
    code: str


@dataclass(frozen=True, eq=False)
class Order(_FieldEquality):
    pizzas: tuple[Pizza, ...]
    order_info: OrderInfo
    payment: PaymentInfo
    coupons: frozenset[Coupon] = frozenset()


@dataclass(frozen=True)
class SavedOrder:
    """An order as persisted: pizzas and payment by name, not by value."""

    pizzas: tuple[str, ...]
    order_info: OrderInfo
    payment_name: str
    coupons: tuple[Coupon, ...] = ()

    def resolve(
        self,
        get_pizza: Callable[[str], Pizza],
        get_payment: Callable[[str], PaymentInfo],
    ) -> Order:
        return Order(
            pizzas=tuple(get_pizza(name) for name in self.pizzas),
            order_info=self.order_info,
            payment=get_payment(self.payment_name),
            coupons=frozenset(self.coupons),
        )
