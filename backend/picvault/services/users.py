"""User persistence helpers (the credential store)."""
import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from picvault.core.errors import ConflictError, NotFoundError
from picvault.models.user import User

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "User not found in the db."


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_by_id(db: Session, user_id: str) -> User | None:
    if not user_id:
        return None
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    e = normalize_email(email)
    if not e:
        return None
    return db.query(User).filter(User.email == e).first()


def require_user(db: Session, user_id: str, message: str = USER_NOT_FOUND) -> User:
    """Get a user by id or raise NotFoundError (404)."""
    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError(message)
    return user


def create_user(db: Session, *, name: str, email: str, password_hash: str) -> User:
    """Insert a new user.

    The lookup gives the common duplicate a clean error; the unique index on
    ``email`` catches the concurrent case where two signups pass the lookup.

    Raises:
        ConflictError: If the email is already registered.
    """
    e = normalize_email(email)
    if get_user_by_email(db, e) is not None:
        raise ConflictError("User already exists...")

    user = User(name=name.strip(), email=e, password_hash=password_hash)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("signup lost race on unique email")
        raise ConflictError("User already exists...")
    db.refresh(user)
    return user


def update_user_subscription(
    db: Session,
    user: User,
    *,
    customer_id: str | None = None,
    subscription_id: str | None = None,
    price_id: str | None = None,
    is_subscribed: bool | None = None,
    expiry_of_subscription: str | None = None,
) -> User:
    """Persist subscription state onto the user row. Only provided fields change."""
    if customer_id is not None:
        user.customer_id = customer_id
    if subscription_id is not None:
        user.subscription_id = subscription_id
    if price_id is not None:
        user.price_id = price_id
    if is_subscribed is not None:
        user.is_subscribed = is_subscribed
    if expiry_of_subscription is not None:
        user.expiry_of_subscription = expiry_of_subscription
    db.commit()
    db.refresh(user)
    return user


def user_profile(user: User) -> dict[str, Any]:
    """Fixed projection returned by the profile endpoint."""
    return {
        "email": user.email,
        "name": user.name,
        "priceId": user.price_id,
        "subscriptionId": user.subscription_id,
        "customerId": user.customer_id,
        "isSubscribed": bool(user.is_subscribed),
        "expiryOfSubscription": user.expiry_of_subscription,
    }
