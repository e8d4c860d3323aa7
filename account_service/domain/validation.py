"""Pydantic-backed validation of accounts before persistence."""

from __future__ import annotations

import pytz
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .account import Account
from .contracts import ValidationIssue
from .usernames import USERNAME_MAX_LENGTH


class AccountFields(BaseModel):
    """Field rules every persisted account must satisfy."""

    username: str = Field(min_length=1, max_length=USERNAME_MAX_LENGTH, pattern=r"^\S+$")
    email: EmailStr
    password_hash: str = Field(min_length=1)
    salt: str = Field(min_length=1)
    secret_key: str = Field(min_length=1)
    api_key: str = Field(min_length=1)
    roles: set[str] = Field(min_length=1)
    timezone: str

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, value: str) -> str:
        if value not in pytz.all_timezones_set:
            raise ValueError(f"unknown timezone {value!r}")
        return value


class AccountValidator:
    """Default credential validator returning every failed rule in field order."""

    def validate(self, account: Account) -> list[ValidationIssue]:
        try:
            AccountFields(
                username=account.username,
                email=account.email,
                password_hash=account.password_hash,
                salt=account.salt,
                secret_key=account.secret_key,
                api_key=account.api_key,
                roles=account.roles,
                timezone=account.timezone,
            )
        except PydanticValidationError as exc:
            issues = []
            for error in exc.errors():
                name = ".".join(str(part) for part in error["loc"]) or "account"
                issues.append(ValidationIssue(field=name, message=f"{name}: {error['msg']}"))
            return issues
        return []
