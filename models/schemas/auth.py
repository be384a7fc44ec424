from marshmallow import Schema, fields, pre_load, validates_schema, ValidationError, validate

_required_string = dict(required=True, validate=validate.Length(min=1))


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class RegisterSchema(Schema):
    username = fields.String(**_required_string)
    password = fields.String(load_only=True, **_required_string)
    email = fields.Email(load_default=None, allow_none=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and data.get("email"):
            data = {**data, "email": _norm_email(data["email"])}
        return data


class SecretTokenSchema(Schema):
    secret_token = fields.UUID(required=True)


class NewPasswordSchema(SecretTokenSchema):
    password = fields.String(load_only=True, **_required_string)


class LoginSchema(Schema):
    username = fields.String(load_default=None)
    email = fields.String(load_default=None)
    password = fields.String(load_only=True, **_required_string)

    @validates_schema
    def require_identifier(self, data, **kwargs):
        if not (data.get("username") or data.get("email")):
            raise ValidationError("username or email is required.", field_name="username")


class RefreshSchema(Schema):
    refresh_token = fields.UUID(required=True)
    user_id = fields.String(**_required_string)


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    username = fields.String()
    email = fields.String(allow_none=True)
    active = fields.Boolean()
    default_role = fields.String()
    roles = fields.List(fields.String())


class SessionTokensOutSchema(Schema):
    access_token = fields.String()
    refresh_token = fields.String()
    user_id = fields.String()
    token_type = fields.Constant("bearer")
    expires_in = fields.Integer()
