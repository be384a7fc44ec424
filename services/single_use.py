from __future__ import annotations

import logging
from typing import Callable

from services.exceptions import InvalidCredential, translate_store_errors
from utils.security import generate_token

logger = logging.getLogger(__name__)


def consume_and_replace(
    mutation: Callable[[str], int],
    action: str,
    failure_message: str = "Invalid or already used token",
) -> str:
    """
    Consume a single-use token and put a freshly generated one in its place.

    ``mutation`` receives the replacement value and performs exactly one
    conditional store write, returning the affected rows. Zero rows means the
    presented token was wrong or already consumed, which is reported as
    InvalidCredential. Returns the replacement value.
    """
    replacement = generate_token()
    with translate_store_errors(action):
        affected = mutation(replacement)
    if not affected:
        logger.info("Single-use token rejected while trying to %s", action)
        raise InvalidCredential(failure_message)
    return replacement
