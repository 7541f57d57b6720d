from typing import Any

from pydantic import BaseModel, EmailStr, Field

from picvault.schemas.user import CamelModel


class Address(BaseModel):
    """Billing/shipping address, Stripe field names."""
    line1: str = Field(..., min_length=1)
    line2: str | None = None
    postal_code: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str | None = None
    country: str = Field(..., min_length=2, max_length=2)


class CreateSubscriptionRequest(CamelModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    address: Address
    payment_method: str = Field(..., min_length=1)
    price_id: str = Field(..., min_length=1)


class UpdateSubscriptionRequest(CamelModel):
    price_id: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    subscription_id: str = Field(..., min_length=1)


class SubscriptionState(CamelModel):
    subscription_id: str
    subscription_status: str | None = None
    client_secret: str | None = None
    subscription: dict[str, Any] | None = None


class SubscriptionResponse(CamelModel):
    error: bool = False
    message: str
    data: SubscriptionState | None = None
    is_subscribed: bool | None = None
    expiry_of_subscription: str | None = None


class CustomerResponse(CamelModel):
    error: bool = False
    message: str
    customer: dict[str, Any]


class FetchSubscriptionResponse(CamelModel):
    error: bool = False
    message: str
    subscription: dict[str, Any]
