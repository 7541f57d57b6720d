import json
import logging
from typing import Any, Dict

import stripe

from picvault.config import Config
from picvault.core.errors import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)


def _to_dict(obj: Any) -> Dict[str, Any]:
    # str(StripeObject) is its JSON form; keeps responses plain dicts
    return json.loads(str(obj))


class StripeService:
    """Customers and subscriptions on Stripe.

    Every call is made once (no network retries) with a bounded timeout.
    Stripe errors are translated: a missing resource becomes NotFoundError,
    anything else UpstreamError.
    """

    def __init__(self, api_key: str, timeout: float):
        self.api_key = api_key
        stripe.max_network_retries = 0
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def from_config(cls, cfg: Config) -> "StripeService":
        return cls(cfg.STRIPE_SECRET_KEY, cfg.EXTERNAL_TIMEOUT_SECONDS)

    def _call(self, action: str, fn, *args, **kwargs) -> Dict[str, Any]:
        try:
            return _to_dict(fn(*args, api_key=self.api_key, **kwargs))
        except stripe.InvalidRequestError as e:
            logger.warning("stripe %s rejected: %s", action, e.user_message or e)
            if e.http_status == 404:
                raise NotFoundError(f"Billing resource not found: {action}")
            raise UpstreamError(e.user_message or f"Stripe error during {action}")
        except stripe.StripeError as e:
            logger.error("stripe %s failed: %s", action, e.user_message or e)
            raise UpstreamError(e.user_message or f"Stripe error during {action}")

    def create_customer(
        self,
        name: str,
        email: str,
        address: Dict[str, Any],
        payment_method: str,
    ) -> Dict[str, Any]:
        return self._call(
            "create_customer",
            stripe.Customer.create,
            name=name,
            email=email,
            address=address,
            shipping={
                "name": name,
                "address": {
                    "line1": address.get("line1"),
                    "postal_code": address.get("postal_code"),
                    "city": address.get("city"),
                    "state": address.get("state"),
                    "country": address.get("country"),
                },
            },
            payment_method=payment_method,
            invoice_settings={"default_payment_method": payment_method},
        )

    def create_subscription(self, customer_id: str, price_id: str) -> Dict[str, Any]:
        return self._call(
            "create_subscription",
            stripe.Subscription.create,
            customer=customer_id,
            items=[{"price": price_id}],
            payment_settings={
                "payment_method_options": {
                    "card": {"request_three_d_secure": "any"},
                },
                "payment_method_types": ["card"],
                "save_default_payment_method": "on_subscription",
            },
            expand=["latest_invoice.payment_intent"],
        )

    def retrieve_customer(self, customer_id: str) -> Dict[str, Any]:
        return self._call("retrieve_customer", stripe.Customer.retrieve, customer_id)

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return self._call("retrieve_subscription", stripe.Subscription.retrieve, subscription_id)

    def set_cancel_at_period_end(self, subscription_id: str, cancel: bool) -> Dict[str, Any]:
        """Schedule (True) or withdraw (False) cancellation at period end."""
        return self._call(
            "set_cancel_at_period_end",
            stripe.Subscription.modify,
            subscription_id,
            cancel_at_period_end=cancel,
        )
