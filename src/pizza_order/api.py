"""Wire schema and HTTP client for the Domino's "power" ordering endpoints.

Model attributes use the remote field names verbatim so request bodies can
be dumped and responses validated without aliasing.
"""

import logging
from typing import Any, Optional, Protocol, TypeVar

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://order.dominos.com"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Per-side amounts keyed by "1/1", "1/2" or "2/2"; None means removed.
OptionValue = Optional[dict[str, str]]
OptionMap = dict[str, OptionValue]


class WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class Product(WireModel):
    ID: int
    Code: str
    Qty: int = 1
    Instructions: Optional[str] = None
    Options: Optional[OptionMap] = None

    @field_validator("Options", mode="before")
    @classmethod
    def _read_removed_marker(cls, value: Any) -> Any:
        # The API writes a removed option as a bare number.
        if isinstance(value, dict):
            return {
                k: None if isinstance(v, (int, float)) and not isinstance(v, bool) else v
                for k, v in value.items()
            }
        return value

    @field_serializer("Options")
    def _write_removed_marker(self, options: Optional[OptionMap]) -> Optional[dict[str, Any]]:
        if options is None:
            return None
        return {k: 0 if v is None else dict(v) for k, v in options.items()}


class StatusItem(WireModel):
    Code: str = ""
    PulseCode: int = 0
    PulseText: str = ""

    def __str__(self) -> str:
        return f'Code: "{self.Code}", PulseCode: {self.PulseCode}, PulseText: "{self.PulseText}"'


class Coupon(WireModel):
    Code: str
    Status: int = 0
    StatusItems: list[StatusItem] = Field(default_factory=list)


class OrderAddress(WireModel):
    City: str
    PostalCode: str
    Region: str
    Street: str
    StreetName: str
    StreetNumber: str
    Type: str
    UnitNumber: Optional[str] = None
    UnitType: Optional[str] = None


class OrderPayment(WireModel):
    Amount: float
    CardType: str
    Expiration: str
    Number: str
    PostalCode: str
    SecurityCode: str
    Type: str = "CreditCard"


class WireOrder(WireModel):
    OrderID: str = ""
    Products: list[Product] = Field(default_factory=list)
    ServiceMethod: str = ""
    StoreID: str = "0"
    Coupons: list[Coupon] = Field(default_factory=list)
    Address: Optional[OrderAddress] = None
    FutureOrderTime: Optional[str] = None


class WirePlaceOrder(WireOrder):
    Email: str = ""
    FirstName: str = ""
    LastName: str = ""
    Phone: str = ""
    Payments: list[OrderPayment] = Field(default_factory=list)
    Status: Optional[int] = None
    StatusItems: list[StatusItem] = Field(default_factory=list)


class OrderAmounts(WireModel):
    Payment: float = 0


class PricedOrder(WireModel):
    OrderID: str = ""
    Products: list[Product] = Field(default_factory=list)
    Amounts: OrderAmounts = Field(default_factory=OrderAmounts)
    EstimatedWaitMinutes: str = ""
    Coupons: list[Coupon] = Field(default_factory=list)


class ValidateRequest(WireModel):
    Order: WireOrder


class ValidateResponse(WireModel):
    Order: WireOrder = Field(default_factory=WireOrder)


class PriceRequest(WireModel):
    Order: WireOrder


class PriceResponse(WireModel):
    Order: PricedOrder = Field(default_factory=PricedOrder)


class PlaceRequest(WireModel):
    Order: WirePlaceOrder


class PlaceResponse(WireModel):
    Order: WirePlaceOrder = Field(default_factory=WirePlaceOrder)
    Status: Optional[int] = None
    StatusItems: list[StatusItem] = Field(default_factory=list)


class OrderApiError(RuntimeError):
    """A remote call failed: network error, non-2xx status or unreadable body."""

    def __init__(self, operation: str, message: str, status_code: Optional[int] = None):
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"{operation} failed: {message}")


class OrderApi(Protocol):
    def validate_order(self, request: ValidateRequest) -> ValidateResponse: ...

    def price_order(self, request: PriceRequest) -> PriceResponse: ...

    def place_order(self, request: PlaceRequest) -> PlaceResponse: ...


_R = TypeVar("_R", bound=BaseModel)


class DominosOrderApi:
    """Blocking client for validate-order, price-order and place-order."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        log_payloads: bool = False,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.log_payloads = log_payloads
        self.session = session or requests.Session()

    def validate_order(self, request: ValidateRequest) -> ValidateResponse:
        return self._post("validate-order", request, ValidateResponse)

    def price_order(self, request: PriceRequest) -> PriceResponse:
        return self._post("price-order", request, PriceResponse)

    def place_order(self, request: PlaceRequest) -> PlaceResponse:
        return self._post("place-order", request, PlaceResponse)

    def _post(self, operation: str, request: BaseModel, response_type: type[_R]) -> _R:
        url = f"{self.base_url}/power/{operation}"
        body = request.model_dump(mode="json")
        logger.debug("POST %s", url)
        if self.log_payloads:
            logger.debug("Request: %s", body)

        try:
            resp = self.session.post(url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise OrderApiError(operation, type(e).__name__) from e

        logger.debug("Response: %s", resp.status_code)
        try:
            resp.raise_for_status()
        except requests.HTTPError as e:
            raise OrderApiError(operation, f"HTTP {resp.status_code}", resp.status_code) from e

        if self.log_payloads:
            logger.debug("Response body: %s", resp.text)
        try:
            return response_type.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise OrderApiError(operation, "unreadable response body", resp.status_code) from e
