import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from picvault.config import Config
from picvault.core.auth import create_access_token, get_password_hash, verify_password
from picvault.core.errors import AuthenticationError
from picvault.database import get_db
from picvault.dependencies import get_config, get_verifier
from picvault.models.user import User
from picvault.schemas.user import AuthResponse, LoginRequest, SignupRequest
from picvault.services.users import create_user, get_user_by_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["authentication"])

INVALID_CREDENTIALS = "Invalid credentials, could not log you in."


def _issue_token(user: User, cfg: Config) -> str:
    return create_access_token(user.id, user.email, cfg.JWT_SECRET)


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    db: Session = Depends(get_db),
    cfg: Config = Depends(get_config),
    verifier=Depends(get_verifier),
):
    if not verifier.verify(payload.verification_token):
        raise AuthenticationError("Invalid recaptcha.")

    user = create_user(
        db,
        name=payload.name,
        email=payload.email,
        password_hash=get_password_hash(payload.password, cfg.BCRYPT_ROUNDS),
    )
    logger.info("signup user_id=%s", user.id)

    return AuthResponse(
        user_id=user.id,
        email=user.email,
        name=user.name,
        token=_issue_token(user, cfg),
        message="Sign Up Successful.",
    )


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    cfg: Config = Depends(get_config),
    verifier=Depends(get_verifier),
):
    if not verifier.verify(payload.verification_token):
        raise AuthenticationError("Invalid recaptcha.")

    user = get_user_by_email(db, payload.email)
    if user is None:
        logger.info("login failed: unknown email")
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not verify_password(payload.password, user.password_hash):
        logger.info("login failed: password mismatch user_id=%s", user.id)
        raise AuthenticationError(INVALID_CREDENTIALS)

    logger.info("login user_id=%s", user.id)
    return AuthResponse(
        user_id=user.id,
        email=user.email,
        name=user.name,
        token=_issue_token(user, cfg),
        message="Login Successful.",
    )
