"""Tests for plain-text summaries."""

from __future__ import annotations

import pytest

from conftest import (
    CARD,
    COMPLEX,
    LARGE_PEP,
    PERSONAL_INFO,
    SMALL_HAND_TOSSED,
    SMALL_THIN,
    VALID_ORDER_INFOS,
    XL_PIZZA,
)
from pizza_order.models import Crust, PayAtStore, Pizza, Size
from pizza_order.summary import (
    summarize_order_info,
    summarize_payment,
    summarize_personal_info,
    summarize_pizza,
)
from pizza_order.validation import ensure_valid_payment

PIZZA_SUMMARIES = [
    (
        LARGE_PEP,
        "Large HandTossed Pizza x1\n"
        "  pie cut\n"
        "Toppings:\n"
        " Pepperoni",
    ),
    (
        COMPLEX,
        "Medium HandmadePan Pizza x2\n"
        "  with (Light|Extra) cheese\n"
        "  with Extra HoneyBBQ sauce\n"
        "  well done\n"
        "  square cut\n"
        "Toppings:\n"
        " Pepperoni\n"
        " Extra Bacon on the Left\n"
        " Light Mushrooms on the Right\n"
        " Spinach",
    ),
    (
        SMALL_HAND_TOSSED,
        "Small HandTossed Pizza x1\n"
        "  well done\n"
        "  pie cut\n"
        "  with garlic crust\n"
        "No Toppings",
    ),
    (
        XL_PIZZA,
        "XL Brooklyn Pizza x25\n"
        "  with Light cheese\n"
        "  uncut\n"
        "Toppings:\n"
        " Light Mushrooms\n"
        " Light Pineapple\n"
        " Light CheddarCheese\n"
        " Light GreenPeppers\n"
        " Light Spinach\n"
        " Light FetaCheese\n"
        " Light ShreddedParmesanAsiago",
    ),
]


class TestPizzaSummary:
    @pytest.mark.parametrize("pizza, expected", PIZZA_SUMMARIES)
    def test_fixture_pizzas(self, pizza, expected):
        assert summarize_pizza(pizza) == expected

    def test_no_cheese_no_sauce(self):
        pizza = Pizza(Size.Large, Crust.Thin)
        assert summarize_pizza(pizza).splitlines()[:3] == [
            "Large Thin Pizza x1",
            "  with no sauce",
            "  pie cut",
        ]

    def test_small_thin_header(self):
        lines = summarize_pizza(SMALL_THIN).splitlines()
        assert lines[:5] == [
            "Small Thin Pizza x1",
            "  with no cheese",
            "  with Marinara sauce",
            "  pie cut",
            "  with oregano",
        ]
        assert lines[-1] == " ShreddedProvoloneCheese on the Right"


class TestOrderInfoSummary:
    def test_carryout_now(self):
        assert summarize_order_info(VALID_ORDER_INFOS[0][0]) == (
            "Order for now\nCarryout at InStore at Store #1"
        )

    def test_delivery_now(self):
        assert summarize_order_info(VALID_ORDER_INFOS[1][0]) == (
            "Order for now\n"
            "Delivery from Store #2 to\n"
            "  My House\n"
            "  1234 Main St\n"
            "  ACity, NY 12345"
        )

    def test_delivery_later_with_apartment(self):
        assert summarize_order_info(VALID_ORDER_INFOS[2][0]) == (
            "Order for later at 2021-10-30 21:30\n"
            "Delivery from Store #3 to\n"
            "  The Business\n"
            "  1234 Main St\n"
            "  Apt. 123\n"
            "  ACity, NY 12345"
        )

    def test_carryout_later(self):
        assert summarize_order_info(VALID_ORDER_INFOS[3][0]) == (
            "Order for later at 2021-10-31 21:30\nCarryout at DriveThru at Store #4"
        )


class TestOtherSummaries:
    def test_personal_info(self):
        assert summarize_personal_info(PERSONAL_INFO) == (
            "Name: Test Testington\nEmail: test@gmail.org\nPhone: 000-123-1234"
        )

    def test_card_shows_only_last_four(self):
        assert summarize_payment(CARD) == "Pay with VISA ending in 1111"
        assert summarize_payment(ensure_valid_payment(CARD)) == "Pay with VISA ending in 1111"

    def test_pay_at_store(self):
        assert summarize_payment(PayAtStore()) == "Pay at Store"
