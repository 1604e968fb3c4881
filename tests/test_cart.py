"""Tests for the validate → price → place cart protocol."""

from __future__ import annotations

import threading
from datetime import datetime

import pytest

from conftest import COMPLEX, LARGE_PEP, SMALL_THIN, FakeOrderApi
from pizza_order.api import OrderApiError
from pizza_order.cart import (
    AddPizzaSuccess,
    CartBusyError,
    CartState,
    DominosCart,
    SummarySuccess,
    next_quarter_hour,
    to_order_address,
)
from pizza_order.models import Coupon, PayAtStore
from pizza_order.result import Failure, Success
from pizza_order.validation import ensure_valid_payment, ensure_valid_pizza


@pytest.fixture
def cart(fake_api: FakeOrderApi, carryout_info) -> DominosCart:
    return DominosCart(fake_api, carryout_info)


def _fill(cart: DominosCart) -> None:
    assert cart.add_pizza(ensure_valid_pizza(LARGE_PEP)).ok
    assert cart.add_pizza(ensure_valid_pizza(COMPLEX)).ok


class TestConstruction:
    def test_requires_validated_order_info(self, fake_api):
        from conftest import VALID_ORDER_INFOS

        with pytest.raises(TypeError):
            DominosCart(fake_api, VALID_ORDER_INFOS[0][0])

    def test_starts_empty(self, cart: DominosCart):
        assert cart.state == CartState.Empty
        assert cart.order_id is None
        assert cart.products == []
        assert cart.current_total == 0


class TestAddPizza:
    def test_rejects_unvalidated_pizza(self, cart: DominosCart):
        with pytest.raises(TypeError):
            cart.add_pizza(LARGE_PEP)

    def test_first_pizza_gets_order_id(self, cart: DominosCart, fake_api: FakeOrderApi):
        result = cart.add_pizza(ensure_valid_pizza(LARGE_PEP))

        assert result == Success(AddPizzaSuccess(1, "O1"))
        assert cart.state == CartState.Building
        request = fake_api.requests_for("validate-order")[0]
        assert request.Order.OrderID == ""
        assert request.Order.StoreID == "1"
        assert request.Order.ServiceMethod == "Carryout"
        assert request.Order.Address is None
        assert request.Order.FutureOrderTime is None

    def test_products_are_cumulative(self, cart: DominosCart, fake_api: FakeOrderApi):
        _fill(cart)

        second = fake_api.requests_for("validate-order")[1]
        assert second.Order.OrderID == "O1"
        assert [p.ID for p in second.Order.Products] == [1, 2]
        assert [p.Code for p in cart.products] == ["14SCREEN", "P12IPAZA"]

    def test_local_products_follow_server(self, cart: DominosCart):
        cart.add_pizza(ensure_valid_pizza(LARGE_PEP))

        # The fake server drops default cheese and sauce; normalization restores them.
        assert cart.products[0].Options == {
            "P": {"1/1": "1"},
            "X": {"1/1": "1"},
            "C": {"1/1": "1"},
        }

    def test_transport_error_leaves_state_unchanged(self, cart: DominosCart, fake_api):
        cart.add_pizza(ensure_valid_pizza(LARGE_PEP))
        fake_api.error = OrderApiError("validate-order", "HTTP 500", 500)

        with pytest.raises(OrderApiError):
            cart.add_pizza(ensure_valid_pizza(COMPLEX))

        assert len(cart.products) == 1
        assert cart.order_id == "O1"

    def test_transport_error_during_add_unprices(self, cart: DominosCart, fake_api):
        _fill(cart)
        assert cart.get_summary().ok
        fake_api.error = OrderApiError("validate-order", "HTTP 500", 500)

        with pytest.raises(OrderApiError):
            cart.add_pizza(ensure_valid_pizza(SMALL_THIN))

        assert cart.state == CartState.Building
        assert cart.current_total == 0

    def test_add_resets_price(self, cart: DominosCart):
        _fill(cart)
        assert cart.get_summary().ok
        assert cart.state == CartState.Priced

        cart.add_pizza(ensure_valid_pizza(SMALL_THIN))

        assert cart.state == CartState.Building
        assert cart.current_total == 0


class TestDelivery:
    def test_delivery_sends_address_and_future_time(self, fake_api, delivery_later_info):
        cart = DominosCart(fake_api, delivery_later_info)
        cart.add_pizza(ensure_valid_pizza(LARGE_PEP))

        order = fake_api.requests_for("validate-order")[0].Order
        assert order.ServiceMethod == "Delivery"
        assert order.StoreID == "3"
        assert order.FutureOrderTime == "2021-10-30 21:45:00"
        assert order.Address.StreetNumber == "1234"
        assert order.Address.StreetName == "Main St"
        assert order.Address.Type == "Business"
        assert order.Address.UnitNumber == "123"
        assert order.Address.UnitType == "APT"


class TestQuarterHour:
    @pytest.mark.parametrize(
        "when, expected",
        [
            (datetime(2021, 10, 30, 21, 37), datetime(2021, 10, 30, 21, 45)),
            (datetime(2021, 10, 30, 21, 30), datetime(2021, 10, 30, 21, 45)),
            (datetime(2021, 10, 30, 23, 50), datetime(2021, 10, 31, 0, 0)),
            (datetime(2021, 10, 30, 21, 1, 30), datetime(2021, 10, 30, 21, 15, 30)),
        ],
    )
    def test_next_quarter_hour(self, when, expected):
        assert next_quarter_hour(when) == expected


class TestAddressConversion:
    def test_house_without_apartment(self):
        from conftest import HOUSE

        address = to_order_address(HOUSE)
        assert address.Street == "1234 Main St"
        assert address.Region == "NY"
        assert address.PostalCode == "12345"
        assert address.UnitNumber is None
        assert address.UnitType is None


class TestGetSummary:
    def test_empty_cart(self, cart: DominosCart, fake_api):
        assert cart.get_summary() == Failure("Cart is empty.")
        assert fake_api.requests_for("price-order") == []

    def test_two_pizza_order(self, cart: DominosCart, fake_api, personal_info, card_payment):
        _fill(cart)
        cart.add_coupon(Coupon("1234"))

        assert cart.get_summary() == Success(SummarySuccess(16.50, "10-15 minutes"))
        assert cart.state == CartState.Priced
        priced = fake_api.requests_for("price-order")[0].Order
        assert [c.Code for c in priced.Coupons] == ["1234"]

        assert cart.place_order(personal_info, card_payment) == Success("Order was placed.")
        assert cart.state == CartState.Placed

    def test_order_id_mismatch(self, cart: DominosCart, fake_api):
        _fill(cart)
        fake_api.priced_order_id = "O2"

        assert cart.get_summary() == Failure("Order ID mismatch.")

    def test_product_count_mismatch(self, cart: DominosCart, fake_api):
        _fill(cart)
        fake_api.priced_products_hook = lambda products: products[:1]

        assert cart.get_summary() == Failure("Product count mismatch.")
        assert cart.state == CartState.Building

    def test_product_mismatch(self, cart: DominosCart, fake_api):
        _fill(cart)

        def drop_topping(products):
            products[0]["Options"].pop("P")
            return products

        fake_api.priced_products_hook = drop_topping

        assert cart.get_summary() == Failure("Product mismatch.")

    def test_coupon_not_fulfilled(self, cart: DominosCart, fake_api):
        _fill(cart)
        cart.add_coupon(Coupon("9999"))
        fake_api.coupon_status = 1

        assert cart.get_summary() == Failure("Coupon not fulfilled.")
        assert cart.current_total == 0


    def test_failed_reprice_unprices(self, cart: DominosCart, fake_api, personal_info, card_payment):
        _fill(cart)
        assert cart.get_summary().ok
        fake_api.priced_order_id = "O2"

        assert cart.get_summary() == Failure("Order ID mismatch.")
        assert cart.state == CartState.Building
        assert cart.current_total == 0
        assert cart.wait_time is None
        assert cart.place_order(personal_info, card_payment) == Failure("Cart is empty.")
        assert fake_api.requests_for("place-order") == []

    def test_transport_error_during_price_unprices(self, cart: DominosCart, fake_api):
        _fill(cart)
        assert cart.get_summary().ok
        fake_api.error = OrderApiError("price-order", "HTTP 502", 502)

        with pytest.raises(OrderApiError):
            cart.get_summary()

        assert cart.state == CartState.Building


class TestPlaceOrder:
    def test_requires_price_after_last_add(self, cart: DominosCart, personal_info, card_payment):
        _fill(cart)
        assert cart.get_summary().ok
        cart.add_pizza(ensure_valid_pizza(SMALL_THIN))

        assert cart.order_id == "O1"
        assert cart.place_order(personal_info, card_payment) == Failure("Cart is empty.")

    def test_card_payment_request(self, cart: DominosCart, fake_api, personal_info, card_payment):
        _fill(cart)
        cart.get_summary()

        cart.place_order(personal_info, card_payment)

        order = fake_api.requests_for("place-order")[0].Order
        assert order.ServiceMethod == "InStore"
        assert order.Email == "test@gmail.org"
        assert order.FirstName == "Test"
        assert order.Phone == "000-123-1234"
        [payment] = order.Payments
        assert payment.Amount == 16.50
        assert payment.CardType == "VISA"
        assert payment.Number == "4111111111111111"
        assert payment.Type == "CreditCard"

    def test_pay_at_store_sends_no_payment(self, cart: DominosCart, fake_api, personal_info):
        _fill(cart)
        cart.get_summary()

        cart.place_order(personal_info, ensure_valid_payment(PayAtStore()))

        assert fake_api.requests_for("place-order")[0].Order.Payments == []

    def test_rejected_order(self, cart: DominosCart, fake_api, personal_info, card_payment):
        _fill(cart)
        cart.get_summary()
        fake_api.place_status = -1
        fake_api.place_status_items = [
            {"Code": "CardDeclined", "PulseCode": 1, "PulseText": "Declined"},
            {"Code": "Warning"},
        ]

        result = cart.place_order(personal_info, card_payment)

        assert result == Failure(
            'Code: "CardDeclined", PulseCode: 1, PulseText: "Declined"\n'
            'Code: "Warning", PulseCode: 0, PulseText: ""'
        )
        assert cart.state == CartState.Priced

    def test_requires_validated_arguments(self, cart: DominosCart, card_payment):
        from conftest import PERSONAL_INFO

        with pytest.raises(TypeError):
            cart.place_order(PERSONAL_INFO, card_payment)

    def test_nothing_after_placement(self, cart: DominosCart, personal_info, card_payment):
        _fill(cart)
        cart.get_summary()
        cart.place_order(personal_info, card_payment)

        assert not cart.add_pizza(ensure_valid_pizza(LARGE_PEP)).ok
        assert not cart.get_summary().ok


class TestCoupons:
    def test_coupons_are_a_set(self, cart: DominosCart):
        cart.add_coupon(Coupon("1234"))
        cart.add_coupon(Coupon("1234"))
        cart.add_coupon(Coupon("5678"))
        cart.remove_coupon(Coupon("5678"))
        cart.remove_coupon(Coupon("0000"))

        assert cart.coupons == [Coupon("1234")]


    @pytest.mark.parametrize("change", ["add", "remove"])
    def test_coupon_change_unprices(self, cart: DominosCart, change):
        cart.add_coupon(Coupon("1234"))
        _fill(cart)
        assert cart.get_summary().ok

        if change == "add":
            cart.add_coupon(Coupon("9999"))
        else:
            cart.remove_coupon(Coupon("1234"))

        assert cart.state == CartState.Building
        assert cart.current_total == 0

    def test_rejected_coupon_after_pricing_blocks_placement(
        self, cart: DominosCart, fake_api, personal_info, card_payment
    ):
        _fill(cart)
        assert cart.get_summary().ok
        cart.add_coupon(Coupon("9999"))
        fake_api.coupon_status = 1

        assert cart.get_summary() == Failure("Coupon not fulfilled.")
        assert cart.place_order(personal_info, card_payment) == Failure("Cart is empty.")
        assert fake_api.requests_for("place-order") == []


class TestConcurrency:
    def test_concurrent_call_raises_busy(self, carryout_info):
        entered = threading.Event()
        release = threading.Event()

        class SlowApi(FakeOrderApi):
            def validate_order(self, request):
                entered.set()
                release.wait(timeout=5)
                return super().validate_order(request)

        cart = DominosCart(SlowApi(), carryout_info)
        worker = threading.Thread(target=cart.add_pizza, args=(ensure_valid_pizza(LARGE_PEP),))
        worker.start()
        try:
            assert entered.wait(timeout=5)
            with pytest.raises(CartBusyError):
                cart.get_summary()
            with pytest.raises(CartBusyError):
                cart.add_coupon(Coupon("1234"))
        finally:
            release.set()
            worker.join()

        assert len(cart.products) == 1
