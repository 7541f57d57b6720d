import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from picvault.config import Config
from picvault.core.auth import get_current_identity
from picvault.core.errors import NotFoundError
from picvault.database import get_db
from picvault.dependencies import get_billing, get_config
from picvault.models.user import User
from picvault.schemas.subscription import (
    CreateSubscriptionRequest,
    CustomerResponse,
    FetchSubscriptionResponse,
    SubscriptionResponse,
    SubscriptionState,
    UpdateSubscriptionRequest,
)
from picvault.services.stripe_service import StripeService
from picvault.services.subscription_window import compute_expiry
from picvault.services.users import (
    USER_NOT_FOUND,
    get_user_by_email,
    require_user,
    update_user_subscription,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/users",
    tags=["subscription"],
    dependencies=[Depends(get_current_identity)],
)

# Stripe statuses that count as paid
ACTIVE_STATUSES = ("active", "trialing")


def _require_subscription_id(user: User) -> str:
    if not user.subscription_id:
        raise NotFoundError("User has no subscription.")
    return user.subscription_id


def _client_secret(subscription: dict[str, Any]) -> str | None:
    invoice = subscription.get("latest_invoice")
    if not isinstance(invoice, dict):
        return None
    intent = invoice.get("payment_intent")
    if not isinstance(intent, dict):
        return None
    return intent.get("client_secret")


@router.get("/fetch-customer/{user_id}", response_model=CustomerResponse)
def fetch_customer(
    user_id: str,
    db: Session = Depends(get_db),
    billing: StripeService = Depends(get_billing),
):
    user = require_user(db, user_id)
    if not user.customer_id:
        raise NotFoundError("User has no billing customer.")
    customer = billing.retrieve_customer(user.customer_id)
    return CustomerResponse(message="Customer fetched successfully!", customer=customer)


@router.get("/fetch-subscription/{user_id}", response_model=FetchSubscriptionResponse)
def fetch_subscription(
    user_id: str,
    db: Session = Depends(get_db),
    billing: StripeService = Depends(get_billing),
):
    user = require_user(db, user_id)
    subscription = billing.retrieve_subscription(_require_subscription_id(user))
    return FetchSubscriptionResponse(
        message="Subscription fetched successfully!",
        subscription=subscription,
    )


@router.post(
    "/create-subscription",
    response_model=SubscriptionResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def create_subscription(
    payload: CreateSubscriptionRequest,
    db: Session = Depends(get_db),
    cfg: Config = Depends(get_config),
    billing: StripeService = Depends(get_billing),
):
    """Create the Stripe customer and subscription, then mirror them on the user.

    The returned ``clientSecret`` lets the frontend finish 3-D Secure when the
    first payment needs it.
    """
    user = get_user_by_email(db, payload.email)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)

    customer = billing.create_customer(
        name=payload.name,
        email=payload.email,
        address=payload.address.model_dump(exclude_none=True),
        payment_method=payload.payment_method,
    )
    subscription = billing.create_subscription(customer["id"], payload.price_id)
    subscription_status = subscription.get("status")
    paid = subscription_status in ACTIVE_STATUSES

    # No window until update-subscription confirms an unpaid subscription
    update_user_subscription(
        db,
        user,
        customer_id=customer["id"],
        subscription_id=subscription["id"],
        price_id=payload.price_id,
        is_subscribed=paid,
        expiry_of_subscription=compute_expiry(days=cfg.SUBSCRIPTION_DAYS) if paid else None,
    )
    logger.info(
        "subscription created user_id=%s subscription_id=%s status=%s",
        user.id, subscription["id"], subscription_status,
    )

    return SubscriptionResponse(
        message="Subscription created successfully!",
        data=SubscriptionState(
            subscription_id=subscription["id"],
            subscription_status=subscription_status,
            client_secret=_client_secret(subscription),
            subscription=subscription,
        ),
        is_subscribed=user.is_subscribed,
        expiry_of_subscription=user.expiry_of_subscription,
    )


@router.post(
    "/update-subscription/{user_id}",
    response_model=SubscriptionResponse,
    response_model_exclude_none=True,
)
def update_subscription(
    user_id: str,
    payload: UpdateSubscriptionRequest,
    db: Session = Depends(get_db),
    cfg: Config = Depends(get_config),
):
    """Record a confirmed subscription and open a new subscription window."""
    user = require_user(db, user_id)
    update_user_subscription(
        db,
        user,
        customer_id=payload.customer_id,
        subscription_id=payload.subscription_id,
        price_id=payload.price_id,
        is_subscribed=True,
        expiry_of_subscription=compute_expiry(days=cfg.SUBSCRIPTION_DAYS),
    )
    logger.info("subscription updated user_id=%s", user.id)
    return SubscriptionResponse(
        message="Subscription updated successfully!",
        is_subscribed=user.is_subscribed,
        expiry_of_subscription=user.expiry_of_subscription,
    )


@router.post(
    "/resume-subscription/{user_id}",
    response_model=SubscriptionResponse,
    response_model_exclude_none=True,
)
def resume_subscription(
    user_id: str,
    db: Session = Depends(get_db),
    billing: StripeService = Depends(get_billing),
):
    user = require_user(db, user_id)
    subscription = billing.set_cancel_at_period_end(_require_subscription_id(user), False)
    update_user_subscription(db, user, is_subscribed=True)
    logger.info("subscription resumed user_id=%s", user.id)
    return SubscriptionResponse(
        message="Subscription resumed successfully!",
        data=SubscriptionState(
            subscription_id=subscription["id"],
            subscription_status=subscription.get("status"),
        ),
        is_subscribed=user.is_subscribed,
    )


@router.post(
    "/cancel-subscription/{user_id}",
    response_model=SubscriptionResponse,
    response_model_exclude_none=True,
)
def cancel_subscription(
    user_id: str,
    db: Session = Depends(get_db),
    billing: StripeService = Depends(get_billing),
):
    """Schedule cancellation at period end.

    ``isSubscribed`` drops to false right away even though Stripe keeps the
    subscription running until the period ends. The upload gate still honours
    the stored expiry.
    """
    user = require_user(db, user_id)
    subscription = billing.set_cancel_at_period_end(_require_subscription_id(user), True)
    update_user_subscription(db, user, is_subscribed=False)
    logger.info("subscription cancel scheduled user_id=%s", user.id)
    return SubscriptionResponse(
        message="Subscription cancelled successfully!",
        data=SubscriptionState(
            subscription_id=subscription["id"],
            subscription_status=subscription.get("status"),
        ),
        is_subscribed=user.is_subscribed,
    )
