"""Entitlement gate for subscription-only capabilities (multi-image upload)."""
from datetime import datetime, timezone

from picvault.core.errors import NotFoundError
from picvault.models.user import User
from picvault.services.subscription_window import get_current_utc_datetime, parse_expiry


class NotSubscribedError(NotFoundError):
    """Raised when a user has never had a subscription window."""
    default_message = "User is not subscribed for Pro plan."


class SubscriptionExpiredError(NotFoundError):
    """Raised when a user's subscription window has passed."""
    default_message = "User subscription expired, please renew your subscription."


def _as_utc(now: datetime | None) -> datetime:
    if now is None:
        return get_current_utc_datetime()
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def is_upload_allowed(user: User, now: datetime | None = None) -> bool:
    """Check whether ``user`` may use subscription-gated uploads at ``now``.

    True iff the user has an expiry stamp and ``now`` is not after it. An
    unparseable stamp counts as unset.
    """
    expiry = parse_expiry(user.expiry_of_subscription)
    if expiry is None:
        return False
    return _as_utc(now) <= expiry


def require_upload_entitlement(user: User, now: datetime | None = None) -> None:
    """Enforce the upload gate.

    Raises:
        NotSubscribedError: 404 if the user has no subscription window.
        SubscriptionExpiredError: 404 if the window has passed.
    """
    if is_upload_allowed(user, now):
        return
    if parse_expiry(user.expiry_of_subscription) is None:
        raise NotSubscribedError()
    raise SubscriptionExpiredError()
