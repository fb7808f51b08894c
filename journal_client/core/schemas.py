"""Client-side validation schemas for forms sent to the API.

Validation runs before any network call; failures are raised as
:class:`~journal_client.core.exceptions.ValidationError` with one message per
offending field so a UI can show them inline.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError as PydanticValidationError
from pydantic import ValidationInfo, field_validator

from .exceptions import ValidationError
from .types import Id

M = TypeVar("M", bound=BaseModel)

PASSWORD_MIN_LENGTH = 7


class LoginForm(BaseModel):
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)


class _NewPassword(BaseModel):
    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        if len(value) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        if not re.search(r"[A-Z]", value):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", value):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"[0-9]", value):
            raise ValueError("Password must contain at least one number")
        if not re.search(r"[^A-Za-z0-9]", value):
            raise ValueError("Password must contain at least one special character")
        return value

    @field_validator("confirm_password")
    @classmethod
    def _passwords_match(cls, value: str, info: ValidationInfo) -> str:
        # ``password`` is absent from info.data when it already failed
        password = info.data.get("password")
        if password is not None and value != password:
            raise ValueError("Passwords do not match")
        return value


class SignupForm(_NewPassword):
    email: EmailStr
    username: str = Field(min_length=3, max_length=16)


class ResetPasswordForm(_NewPassword):
    email: EmailStr
    verification_code: str = Field(min_length=1)


class EntryForm(BaseModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    folder_id: Optional[Id] = None
    tag_names: List[str] = Field(default_factory=list)

    @field_validator("tag_names")
    @classmethod
    def _unique_tags(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))


class FolderForm(BaseModel):
    name: str = Field(min_length=1)


class AccountForm(BaseModel):
    """Account settings the user can change; ``None`` leaves a field alone."""

    model_config = ConfigDict(extra="forbid")

    username: Optional[str] = Field(None, min_length=3, max_length=16)
    enabled2fa: Optional[bool] = None
    ai_allow_title_access: Optional[bool] = None
    ai_allow_content_access: Optional[bool] = None


_FIELD_MESSAGES = {
    ("title", "string_too_short"): "Title is required",
    ("content", "string_too_short"): "Content is required",
    ("name", "string_too_short"): "Name is required",
    ("username", "string_too_short"): "Username must be at least 3 characters",
    ("username", "string_too_long"): "Username must be at most 16 characters",
    ("password", "string_too_short"): f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
}


def validate(schema: Type[M], data: Dict[str, Any]) -> M:
    """Validate ``data`` against ``schema`` or raise a client ValidationError."""
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        field_errors: Dict[str, str] = {}
        for err in exc.errors():
            field = str(err["loc"][0]) if err["loc"] else "__root__"
            message = _FIELD_MESSAGES.get((field, err["type"]))
            if message is None:
                message = err["msg"].removeprefix("Value error, ")
            field_errors.setdefault(field, message)
        raise ValidationError(
            f"Invalid {schema.__name__}: {', '.join(sorted(field_errors))}",
            field_errors,
        ) from exc


__all__ = [
    "PASSWORD_MIN_LENGTH",
    "LoginForm",
    "SignupForm",
    "ResetPasswordForm",
    "EntryForm",
    "FolderForm",
    "AccountForm",
    "validate",
]
