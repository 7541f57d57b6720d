"""User model: credentials plus the subscription fields mirrored from Stripe."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String

from picvault.database import Base


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_user_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    customer_id = Column(String(255), nullable=True)  # cus_xxx
    subscription_id = Column(String(255), nullable=True)  # sub_xxx
    price_id = Column(String(255), nullable=True)  # price_xxx
    is_subscribed = Column(Boolean, nullable=False, default=False)
    # UTC, formatted YYYYMMDDHHmmssSSS (see services.subscription_window)
    expiry_of_subscription = Column(String(17), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)
