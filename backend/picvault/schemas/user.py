"""Pydantic schemas for accounts, profiles and images.

JSON uses camelCase (``userId``, ``verificationToken``), the shape existing
frontends send and read.
"""
from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignupRequest(CamelModel):
    """Request schema for signup."""
    name: str = Field(..., max_length=255)
    email: EmailStr
    password: str = Field(..., max_length=128)
    verification_token: str | None = Field(
        None,
        validation_alias=AliasChoices("verificationToken", "recaptchaValue", "verification_token"),
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("email")
    @classmethod
    def email_lower(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def password_min_len(cls, v: str) -> str:
        if v is None or len(v) < 6:
            raise ValueError("password must be at least 6 characters")
        return v


class LoginRequest(CamelModel):
    """Request schema for login. Deliberately loose: bad input is a 401, not a 422."""
    email: str = ""
    password: str = ""
    verification_token: str | None = Field(
        None,
        validation_alias=AliasChoices("verificationToken", "recaptchaValue", "verification_token"),
    )


class AuthResponse(CamelModel):
    """Returned by signup and login."""
    user_id: str
    email: str
    name: str
    token: str
    message: str


class UserDetailsResponse(CamelModel):
    message: str
    email: str
    name: str
    price_id: str | None = None
    subscription_id: str | None = None
    customer_id: str | None = None
    is_subscribed: bool = False
    expiry_of_subscription: str | None = None


class ImageUrlsResponse(CamelModel):
    image_urls: list[str]


class UploadedFile(CamelModel):
    name: str
    type: str
    size: int


class SingleUploadResponse(UploadedFile):
    message: str
    public_url: str


class MultipleUploadResponse(CamelModel):
    message: str
    public_urls: list[str]
    files: list[UploadedFile]
