from marshmallow import Schema, fields, pre_load, validates, ValidationError, validate

PASSWORD_MIN_CHARS = 8
PASSWORD_MAX_BYTES = 256


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _check_password(value):
    if len(value) < PASSWORD_MIN_CHARS:
        raise ValidationError("Password length must be over 8 character")
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValidationError("Password length is too long")


class UserCreateSchema(Schema):
    user_name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class UserLoginSchema(Schema):
    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data


class UserUpdateSchema(Schema):
    user_name = fields.String(required=True, validate=validate.Length(min=1, max=255))


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    user_name = fields.String()
    email = fields.String()
