"""Human verification against Google reCAPTCHA."""
import logging

import requests

from picvault.config import Config
from picvault.core.errors import AuthenticationError

logger = logging.getLogger(__name__)


class RecaptchaVerifier:
    def __init__(self, secret: str, verify_url: str, timeout: float, session: requests.Session | None = None):
        self.secret = secret
        self.verify_url = verify_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, cfg: Config) -> "RecaptchaVerifier":
        return cls(cfg.RECAPTCHA_SECRET, cfg.RECAPTCHA_VERIFY_URL, cfg.EXTERNAL_TIMEOUT_SECONDS)

    def verify(self, token: str | None) -> bool:
        """Ask reCAPTCHA whether ``token`` is valid.

        Returns False for a rejected or missing token.

        Raises:
            AuthenticationError: If the verification call itself fails.
        """
        if not token:
            return False
        try:
            resp = self.session.post(
                self.verify_url,
                data={"secret": self.secret, "response": token},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("recaptcha verification call failed: %s", exc)
            raise AuthenticationError("Recaptcha validation failed.")

        if not payload.get("success"):
            logger.info("recaptcha rejected: %s", payload.get("error-codes"))
            return False
        return True
