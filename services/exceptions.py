"""
Error taxonomy for the credential workflows.

Every failure a workflow reports is one of the classes below; the HTTP layer
renders them through api.errors without knowing which check failed.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class CredentialError(Exception):
    """Base class: carries the status and error code used in the envelope."""

    status_code = 500
    error = "INTERNAL_ERROR"
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(CredentialError):
    """Signing key or algorithm missing. Raised at startup, never per request."""

    error = "CONFIGURATION_ERROR"
    default_message = "Service is misconfigured"


class InvalidCredential(CredentialError):
    status_code = 401
    error = "INVALID_CREDENTIAL"
    default_message = "Invalid credentials"


class Conflict(CredentialError):
    status_code = 409
    error = "CONFLICT"
    default_message = "Resource already exists"


class StoreError(CredentialError):
    error = "STORE_ERROR"
    default_message = "The credential store is unavailable"


@contextmanager
def translate_store_errors(action: str):
    """Turn any SQLAlchemy failure inside the block into an opaque StoreError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Credential store failure while trying to %s", action)
        raise StoreError(f"Unable to {action}") from exc
