# app/forms.py
"""
Login / Register form schemas and the provider-error message tables.

validate(schema, record) returns one FieldError per failing field; an empty
list means the record can be submitted.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Type

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator
from pydantic_core import PydanticCustomError

PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")
PHONE_RE = re.compile(r"^(?:\+20|0)?1[0125][-\s]?[0-9]{4}[-\s]?[0-9]{4}$")
DOB_RE = re.compile(r"^\d{2}-\d{2}-\d{4}$")

GENDERS = ("male", "female")


def _fail(message: str) -> PydanticCustomError:
    return PydanticCustomError("form_field", message)


def _check_email(value: str, required: str, invalid: str) -> str:
    if not value:
        raise _fail(required)
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise _fail(invalid)
    return value


class LoginForm(BaseModel):
    model_config = ConfigDict(validate_default=True)

    email: str = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _check_email(v, "Email invalid", "Email invalid")

    @field_validator("password")
    @classmethod
    def password_present(cls, v: str) -> str:
        if not v:
            raise _fail("Password required")
        return v


class RegisterForm(BaseModel):
    model_config = ConfigDict(validate_default=True)

    name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    phone: str = ""
    dob: str = ""
    gender: str = ""

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        if len(v) < 3:
            raise _fail("Name must be at least 3 characters")
        if len(v) > 20:
            raise _fail("Name must be less than 20 characters")
        return v

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _check_email(v, "Email is required", "Invalid Email")

    @field_validator("password")
    @classmethod
    def password_strong(cls, v: str) -> str:
        if len(v) < 8:
            raise _fail("Password must be at least 8 characters")
        if not PASSWORD_RE.match(v):
            raise _fail(
                "Password must contain at least one uppercase letter, one lowercase letter, "
                "one number, and one special character"
            )
        return v

    @field_validator("confirm_password")
    @classmethod
    def confirmation_present(cls, v: str) -> str:
        if not v:
            raise _fail("Confirm password is required")
        return v

    @field_validator("phone")
    @classmethod
    def phone_format(cls, v: str) -> str:
        if not v:
            raise _fail("Phone is required")
        if not PHONE_RE.match(v):
            raise _fail("Phone number must be 10 digits")
        return v

    @field_validator("dob")
    @classmethod
    def dob_format(cls, v: str) -> str:
        if not v:
            raise _fail("Date of birth is required")
        if not DOB_RE.match(v):
            raise _fail("Invalid date format. Use DD-MM-YYYY")
        return v

    @field_validator("gender")
    @classmethod
    def gender_choice(cls, v: str) -> str:
        if not v:
            raise _fail("Gender selection is required")
        if v not in GENDERS:
            raise _fail("Please select a valid gender option")
        return v

    @model_validator(mode="wrap")
    @classmethod
    def passwords_match(cls, data: Any, handler: Any) -> "RegisterForm":
        # compares the raw inputs, so a mismatch is reported even when the
        # password itself failed its own rules
        form = None
        errors: List[Dict[str, Any]] = []
        try:
            form = handler(data)
        except ValidationError as e:
            errors = e.errors()

        if isinstance(data, Mapping):
            confirm = data.get("confirm_password")
            already = any(err["loc"][:1] == ("confirm_password",) for err in errors)
            if confirm and confirm != data.get("password") and not already:
                errors.append({
                    "type": "form_field",
                    "loc": ("confirm_password",),
                    "msg": "Passwords don't match",
                    "input": confirm,
                })

        if not errors:
            return form
        raise ValidationError.from_exception_data(
            cls.__name__,
            [
                {"type": PydanticCustomError(err["type"], err["msg"]), "loc": err["loc"], "input": err["input"]}
                for err in errors
            ],
        )

    def profile_fields(self) -> Dict[str, Any]:
        return self.model_dump(include={"name", "email", "phone", "dob", "gender"})


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


def validate(schema: Type[BaseModel], record: Mapping[str, Any]) -> List[FieldError]:
    try:
        # unanswered widgets (e.g. a selectbox with no choice) come through as None
        schema.model_validate({k: ("" if v is None else v) for k, v in record.items()})
    except ValidationError as e:
        errors = []
        for err in e.errors():
            loc = err.get("loc") or ("__root__",)
            errors.append(FieldError(field=str(loc[0]), message=err["msg"]))
        return errors
    return []


def errors_by_field(errors: List[FieldError]) -> Dict[str, str]:
    """First message per field, for rendering under each input."""
    out: Dict[str, str] = {}
    for e in errors:
        out.setdefault(e.field, e.message)
    return out


# ============================================================
# Provider error code -> message
# ============================================================

LOGIN_ERROR_MESSAGES: Dict[str, str] = {
    "auth/invalid-email": "Please enter a valid email address",
    "auth/user-not-found": "No account found with this email",
    "auth/wrong-password": "Incorrect password",
    "auth/invalid-credential": "Invalid login credentials",
    "auth/user-disabled": "This account has been disabled",
    "auth/too-many-requests": "Too many attempts. Try again later",
    "auth/network-request-failed": "Network error. Check your connection",
    "auth/internal-error": "Server error. Please try again",
    "auth/popup-closed-by-user": "Login window was closed",
    "auth/cancelled-popup-request": "Login cancelled",
}
LOGIN_FALLBACK = "Login failed. Please try again"

REGISTER_ERROR_MESSAGES: Dict[str, str] = {
    "auth/email-already-in-use": "Email already exists",
    "auth/weak-password": "Password should be at least 6 characters",
    "auth/invalid-email": "Invalid email address",
}
REGISTER_FALLBACK = "Signup failed. Please try again"


def friendly_error(code: Any, flow: Literal["login", "register"]) -> str:
    if flow == "login":
        return LOGIN_ERROR_MESSAGES.get(code, LOGIN_FALLBACK)
    return REGISTER_ERROR_MESSAGES.get(code, REGISTER_FALLBACK)
