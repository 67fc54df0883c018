from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from ..services.formatting import parse_timestamp
from ..services.identifiers import generate_order_id


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class OrderStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    delivered = "delivered"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"


class OrderItem(BaseModel):
    # cart items carry extra UI fields (image, slug, ...) we don't keep
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., gt=0)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class Address(BaseModel):
    model_config = ConfigDict(extra="ignore")

    street: str = ""
    city: str = ""
    postalCode: str = ""
    country: str = ""

    def is_blank(self) -> bool:
        return not self.street.strip()


class AccountType(str, Enum):
    individual = "individual"
    professional = "professional"


class CustomerInfo(BaseModel):
    """Account details the checkout attaches; companies get their legal ids on the invoice."""
    model_config = ConfigDict(extra="ignore")

    accountType: AccountType = AccountType.individual
    firstName: str = ""
    lastName: str = ""
    raisonSociale: str = ""
    siret: str = ""
    tvaNumber: str = ""
    phone: str = ""

    @field_validator("firstName", "lastName", "raisonSociale", "siret", "tvaNumber", "phone", mode="before")
    @classmethod
    def _none_as_blank(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("accountType", mode="before")
    @classmethod
    def _known_account_type(cls, v):
        # anything unrecognised is invoiced as a private customer
        return v if v in ("individual", "professional") else AccountType.individual

    @property
    def is_professional(self) -> bool:
        return self.accountType == AccountType.professional


def items_total(items: List[OrderItem]) -> Decimal:
    return sum((i.line_total for i in items), Decimal("0"))


class OrderSubmission(BaseModel):
    """Checkout payload posted by the storefront."""
    model_config = ConfigDict(extra="ignore")

    items: List[OrderItem] = Field(..., min_length=1)
    total: Decimal
    customerEmail: EmailStr
    customerName: Optional[str] = None
    shippingAddress: Optional[Address] = None
    customerAddress: Optional[Address] = None
    customerInfo: Optional[CustomerInfo] = None
    # older storefront builds only send this flag
    isProfessional: bool = False
    orderId: str = Field(default_factory=generate_order_id, min_length=1)
    timestamp: str = Field(default_factory=_now_iso)

    @field_validator("timestamp")
    @classmethod
    def _valid_timestamp(cls, v: str) -> str:
        parse_timestamp(v)
        return v

    @model_validator(mode="after")
    def _total_matches_items(self) -> "OrderSubmission":
        # compare at cent precision; the cart rounds for display only
        cents = Decimal("0.01")
        expected = items_total(self.items).quantize(cents, rounding=ROUND_HALF_UP)
        if self.total.quantize(cents, rounding=ROUND_HALF_UP) != expected:
            raise ValueError(f"total {self.total} does not match items ({expected})")
        return self


class Order(BaseModel):
    """An order as stored in Firestore. Only the status fields change after creation."""
    orderId: str
    items: List[OrderItem]
    total: Decimal
    customerEmail: str
    customerName: Optional[str] = None
    customerPhone: str = ""
    shippingAddress: Optional[Address] = None
    billingAddress: Optional[Address] = None
    customerInfo: Optional[CustomerInfo] = None
    timestamp: str
    currency: str = "EUR"
    status: OrderStatus = OrderStatus.pending
    paymentStatus: PaymentStatus = PaymentStatus.pending
    paymentMethod: str = "card"
    userId: str = "guest"
    notes: str = ""
    invoiceSentAt: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @classmethod
    def from_submission(cls, body: OrderSubmission, currency: str = "EUR") -> "Order":
        address = body.shippingAddress or body.customerAddress
        info = body.customerInfo
        if body.isProfessional:
            info = (info or CustomerInfo()).model_copy(update={"accountType": AccountType.professional})
        return cls(
            orderId=body.orderId,
            items=body.items,
            total=body.total,
            customerEmail=body.customerEmail,
            customerName=body.customerName,
            customerPhone=info.phone if info else "",
            shippingAddress=address,
            billingAddress=address,
            customerInfo=info,
            timestamp=body.timestamp,
            currency=currency,
        )


class OrderSubmissionResult(BaseModel):
    success: bool
    orderId: Optional[str] = None
    emailSent: bool = False
    testMode: bool = False
    message: str


class InvoiceDispatchResult(BaseModel):
    success: bool
    orderId: str
    emailSent: bool
    testMode: bool = False
    originalEmail: Optional[str] = None
    testEmail: Optional[str] = None
    message: str


class OrderListOut(BaseModel):
    success: bool = True
    orders: List[Order]
