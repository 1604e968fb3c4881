import json
import os
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from pizza_order.api import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS
from pizza_order.models import (
    Address as OrderAddress,
    AddressType,
    Carryout,
    Delivery,
    Later,
    Now,
    OrderInfo,
    OrderTiming,
    PayAtStore,
    PaymentInfo,
    PayWithCard,
    PersonalInfo,
    PickupLocation,
    ServiceMethod,
)

DEFAULT_CONFIG_PATH = "/config/config.json"


class Customer(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: str


class Address(BaseModel):
    street: str
    apt: Optional[int] = None
    city: str
    region: str
    postal_code: str
    country: str = "us"
    address_type: AddressType = AddressType.House
    name: Optional[str] = None


class Payment(BaseModel):
    card_number: str = ""
    expiration: str = ""  # MM/YY
    cvv: str = ""
    billing_postal_code: str = ""
    pay_at_store: bool = False  # True = pay when picking up (no online payment)


class Preferences(BaseModel):
    order_type: Literal["Delivery", "Carryout"] = "Delivery"
    pickup_location: PickupLocation = PickupLocation.InStore
    order_time: str = "Now"  # "Now" or an ISO 8601 datetime
    preferred_store_id: Optional[str] = None
    confirm_before_order: bool = True
    max_order_amount: float = 100.00

    @field_validator("order_time")
    @classmethod
    def _check_order_time(cls, value: str) -> str:
        if value != "Now":
            datetime.fromisoformat(value)
        return value


class ApiSettings(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    log_payloads: bool = False


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"


class PizzaOrderConfig(BaseModel):
    customer: Customer
    address: Address
    payment: Payment
    preferences: Preferences = Field(default_factory=Preferences)
    api: ApiSettings = Field(default_factory=ApiSettings)
    server: ServerConfig = Field(default_factory=ServerConfig)

    def to_order_info(self, store_id: str) -> OrderInfo:
        """Unvalidated order info for ``store_id`` using the configured preferences."""
        return OrderInfo(
            store_id=str(store_id),
            service_method=self._service_method(),
            timing=self._timing(),
        )

    def to_personal_info(self) -> PersonalInfo:
        return PersonalInfo(
            first_name=self.customer.first_name,
            last_name=self.customer.last_name,
            email=self.customer.email,
            phone=self.customer.phone,
        )

    def to_payment(self) -> PaymentInfo:
        if self.payment.pay_at_store:
            return PayAtStore()
        return PayWithCard(
            card_number=self.payment.card_number,
            expiration=self.payment.expiration,
            security_code=self.payment.cvv,
            billing_zip=self.payment.billing_postal_code,
        )

    def to_address(self) -> OrderAddress:
        return OrderAddress(
            street_address=self.address.street,
            city=self.address.city,
            state=self.address.region,
            zip_code=self.address.postal_code,
            address_type=self.address.address_type,
            name=self.address.name,
            apt=self.address.apt,
        )

    def _service_method(self) -> ServiceMethod:
        if self.preferences.order_type == "Carryout":
            return Carryout(self.preferences.pickup_location)
        return Delivery(self.to_address())

    def _timing(self) -> OrderTiming:
        if self.preferences.order_time == "Now":
            return Now()
        return Later(datetime.fromisoformat(self.preferences.order_time))


def load_config(path: Optional[str] = None) -> PizzaOrderConfig:
    config_path = path or os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH)
    if not os.path.exists(config_path):
        raise FileNotFoundError(
            f"Config file not found at {config_path}. "
            "Copy config.example.json to the config path and fill in your details."
        )
    with open(config_path) as f:
        data = json.load(f)
    return PizzaOrderConfig(**data)
