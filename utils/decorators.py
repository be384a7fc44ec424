from __future__ import annotations
from functools import wraps
from flask import request, g, current_app

from services.exceptions import InvalidCredential

ACCESS_TOKEN_COOKIE = "jwt_token"


def _presented_access_token() -> str | None:
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip()
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


def jwt_required():
    """
    Require a valid access token in the Authorization header or the jwt_token
    cookie. Verification is stateless (signature + expiry); the decoded claims
    are exposed as g.token_claims.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = _presented_access_token()
            if not token:
                raise InvalidCredential("Missing or invalid Authorization header")

            minter = current_app.extensions["token_minter"]
            decoded = minter.decode(token)
            g.token_claims = decoded
            g.current_user_id = decoded.get("sub")
            g.current_user_roles = decoded.get(minter.settings.claims_namespace, {}).get(
                "x-hasura-allowed-roles", []
            )
            return fn(*args, **kwargs)

        return wrapper

    return decorator
