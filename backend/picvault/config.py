"""Runtime configuration for the picvault backend."""
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

# bcrypt cost factor for new password hashes
DEFAULT_BCRYPT_ROUNDS = 12


def _env(name: str, default: str = "", cast=str):
    """Field default that reads ``name`` when the Config is built, not at import."""
    return field(default_factory=lambda: cast(os.environ.get(name) or default))


def _env_optional(name: str):
    return field(default_factory=lambda: os.environ.get(name) or None)


def _env_tuple(name: str, default: str):
    def factory() -> tuple[str, ...]:
        raw = os.environ.get(name, "") or default
        return tuple(item.strip() for item in raw.split(",") if item.strip())
    return field(default_factory=factory)


@dataclass(frozen=True)
class Config:
    """Settings read from the environment (or a local .env file).

    Every ``Config()`` re-reads the environment. Secrets have no usable
    defaults outside development: set JWT_SECRET, RECAPTCHA_SECRET,
    STRIPE_SECRET_KEY and the R2_* values in production.
    """

    # Tokens. Their lifetime is fixed in core.auth.
    JWT_SECRET: str = _env("JWT_SECRET", "dev_change_me")
    BCRYPT_ROUNDS: int = _env("BCRYPT_ROUNDS", str(DEFAULT_BCRYPT_ROUNDS), int)

    # Human verification (Google reCAPTCHA)
    RECAPTCHA_SECRET: str = _env("RECAPTCHA_SECRET")
    RECAPTCHA_VERIFY_URL: str = _env(
        "RECAPTCHA_VERIFY_URL",
        "https://www.google.com/recaptcha/api/siteverify",
    )

    # Billing (Stripe)
    STRIPE_SECRET_KEY: str = _env("STRIPE_SECRET_KEY")
    SUBSCRIPTION_DAYS: int = _env("SUBSCRIPTION_DAYS", "30", int)

    # Object store (Cloudflare R2, S3 compatible)
    R2_ENDPOINT: str | None = _env_optional("R2_ENDPOINT")
    R2_REGION: str = _env("R2_REGION", "auto")
    R2_ACCESS_KEY_ID: str | None = _env_optional("R2_ACCESS_KEY_ID")
    R2_SECRET_ACCESS_KEY: str | None = _env_optional("R2_SECRET_ACCESS_KEY")
    R2_BUCKET_NAME: str = _env("R2_BUCKET_NAME", "picvault")
    # Prefix for public image URLs, including the trailing slash.
    R2_PUBLIC_URL: str = _env("R2_PUBLIC_URL", "http://localhost:9000/picvault/")

    # Upload limits
    MAX_UPLOAD_BYTES: int = _env("MAX_UPLOAD_BYTES", str(2 * 1024 * 1024), int)
    MAX_UPLOAD_FILES: int = _env("MAX_UPLOAD_FILES", "5", int)

    # Applies to every outbound call (Stripe, R2, reCAPTCHA)
    EXTERNAL_TIMEOUT_SECONDS: float = _env("EXTERNAL_TIMEOUT_SECONDS", "10", float)

    # HTTP shell
    CORS_ORIGINS: tuple[str, ...] = _env_tuple(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000",
    )
    LOG_LEVEL: str = _env("LOG_LEVEL", "INFO", str.upper)


def load_config() -> Config:
    """Build a Config from the current environment."""
    return Config()
