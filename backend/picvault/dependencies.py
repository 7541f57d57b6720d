"""Providers for the process-wide collaborators kept on ``app.state``.

main.py builds each collaborator once in the application lifespan. Route
handlers receive them through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""
from fastapi import Request

from picvault.config import Config
from picvault.core.errors import InternalError


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise InternalError(f"Server not configured: {name} missing")
    return value


def get_config(request: Request) -> Config:
    return _state(request, "cfg")


def get_billing(request: Request):
    """Return the StripeService singleton."""
    return _state(request, "billing")


def get_object_store(request: Request):
    """Return the ObjectStore singleton."""
    return _state(request, "object_store")


def get_verifier(request: Request):
    """Return the RecaptchaVerifier singleton."""
    return _state(request, "verifier")
