"""Authentication-related Marshmallow schemas.

Sign-up fields are loaded as raw values: type and format checks belong to
the field validator, which reports every problem at once with per-field
messages instead of failing on the first bad type.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields


class RegisterSchema(Schema):
    """Input payload for account registration (camelCase on the wire)."""

    class Meta:
        unknown = EXCLUDE

    full_name = fields.Raw(data_key="fullName", load_default="")
    email = fields.Raw(load_default="")
    confirm_email = fields.Raw(data_key="confirmEmail", load_default="")
    password = fields.Raw(load_default="")
    confirm_password = fields.Raw(data_key="confirmPassword", load_default="")
    display_name = fields.Raw(data_key="displayName", load_default="")
    preferred_sports = fields.Raw(data_key="preferredSports", load_default=list)
    skill_level = fields.Raw(data_key="skillLevel", load_default=None, allow_none=True)
    zip_code = fields.Raw(data_key="zipCode", load_default="")


class SignInSchema(Schema):
    """Input payload for authenticating a member."""

    class Meta:
        unknown = EXCLUDE

    email = fields.String(required=True)
    password = fields.String(required=True)


class SignUpResponseSchema(Schema):
    """Response payload for a created account."""

    user_id = fields.String(data_key="userId", required=True)
    message = fields.String(allow_none=True)
    warning = fields.String(allow_none=True)


class ProfileSchema(Schema):
    """Profile block returned at sign-in."""

    id = fields.String(required=True)
    email = fields.Email(required=True)
    name = fields.String(required=True)
    display_name = fields.String(data_key="displayName", required=True)
    role = fields.String(required=True)


class SignInResponseSchema(Schema):
    """Response payload containing a session token and the profile."""

    token = fields.String(required=True)
    user = fields.Nested(ProfileSchema, required=True)
    message = fields.String(allow_none=True)


class WhoAmISchema(Schema):
    """Response payload exposing identity details for the authenticated caller."""

    uid = fields.String(required=True)
    email = fields.String(required=True)
    display_name = fields.String(data_key="displayName", allow_none=True)
    email_verified = fields.Boolean(data_key="emailVerified")
    role = fields.String(required=True)
