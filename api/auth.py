"""
Authentication blueprint:
- POST /auth/register
- POST /auth/activate-account
- POST /auth/new-password
- POST /auth/login
- POST /auth/refresh-token
- GET  /auth/me

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens (JWTs carrying role claims) and opaque
  refresh tokens stored in the credential store
- Rotates refresh tokens on every use; a used refresh token is dead
- Activation and password reset consume the user's single-use secret token
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from services.accounts import AccountLifecycleController, SessionTokens
from models.schemas.auth import (
    RegisterSchema,
    SecretTokenSchema,
    NewPasswordSchema,
    LoginSchema,
    RefreshSchema,
    UserOutSchema,
    SessionTokensOutSchema,
)
from utils.decorators import jwt_required, ACCESS_TOKEN_COOKIE

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
secret_token_schema = SecretTokenSchema()
new_password_schema = NewPasswordSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
user_out_schema = UserOutSchema()
session_tokens_out_schema = SessionTokensOutSchema()


def accounts() -> AccountLifecycleController:
    return current_app.extensions["accounts"]


def _session_response(tokens: SessionTokens):
    response = jsonify(session_tokens_out_schema.dump(tokens))
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        tokens.access_token,
        max_age=tokens.expires_in,
        httponly=True,
        secure=not (current_app.debug or current_app.testing),
        samesite="Lax",
    )
    return response, 200


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [username, password]
          properties:
            username: { type: string }
            password: { type: string }
            email: { type: string }
    responses:
      201:
        description: Created
      409:
        description: Username or email already registered
      422:
        description: Validation error
    """
    data = register_schema.load(request.get_json(silent=True) or {})
    user = accounts().register(data["username"], data["password"], email=data.get("email"))
    return jsonify({"data": user_out_schema.dump(user)}), 201


@bp.post("/activate-account")
def activate_account():
    """
    Activate an account with the secret token handed out at registration.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [secret_token]
          properties:
            secret_token: { type: string, format: uuid }
    responses:
      200:
        description: OK
      401:
        description: Account is already activated or there is no account
    """
    data = secret_token_schema.load(request.get_json(silent=True) or {})
    accounts().activate(str(data["secret_token"]))
    return jsonify({"message": "OK"}), 200


@bp.post("/new-password")
def new_password():
    """
    Set a new password with a single-use secret token.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [secret_token, password]
          properties:
            secret_token: { type: string, format: uuid }
            password: { type: string }
    responses:
      200:
        description: OK
      401:
        description: Invalid or already used token
    """
    data = new_password_schema.load(request.get_json(silent=True) or {})
    accounts().reset_password(str(data["secret_token"]), data["password"])
    return jsonify({"message": "OK"}), 200


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             username: { type: string }
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens, access token also set as http-only cookie)
      401:
        description: Unauthorized
    """
    data = login_schema.load(request.get_json(silent=True) or {})
    identifier = data.get("username") or data.get("email")
    tokens = accounts().login(identifier, data["password"])
    return _session_response(tokens)


@bp.post("/refresh-token")
def refresh_token():
    """
    Use a refresh token to obtain new access and refresh tokens (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [refresh_token, user_id]
           properties:
             refresh_token: { type: string, format: uuid }
             user_id: { type: string }
    responses:
      200:
        description: OK (returns a new token pair)
      401:
        description: Invalid, expired or already used refresh token
    """
    data = refresh_schema.load(request.get_json(silent=True) or {})
    tokens = accounts().refresh(str(data["refresh_token"]), data["user_id"])
    return _session_response(tokens)


@bp.get("/me")
@jwt_required()
def me():
    """
    Claims of the presented access token.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify(
        {
            "data": {
                "user_id": g.current_user_id,
                "roles": g.current_user_roles,
                "claims": g.token_claims,
            }
        }
    ), 200
