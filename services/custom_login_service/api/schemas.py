"""Form payloads posted by the custom pages.

Field names follow the host's native auth forms so existing templates keep
working (``log``/``pwd``, ``user_login``, ``rp_key``/``rp_login``).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _clean_text(value: str) -> str:
    """Strip tags and collapse whitespace in free-text fields."""
    without_tags = []
    inside_tag = False
    for ch in value:
        if ch == "<":
            inside_tag = True
        elif ch == ">" and inside_tag:
            inside_tag = False
        elif not inside_tag:
            without_tags.append(ch)
    return " ".join("".join(without_tags).split())


class _FormModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LoginForm(_FormModel):
    log: str = ""
    pwd: str = ""
    redirect_to: Optional[str] = None


class RegisterForm(_FormModel):
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    captcha_response: Optional[str] = Field(default=None, alias="g-recaptcha-response")

    @field_validator("email")
    @classmethod
    def _strip_email(cls, value: str) -> str:
        return value.strip()

    @field_validator("first_name", "last_name")
    @classmethod
    def _sanitize_name(cls, value: str) -> str:
        return _clean_text(value)


class LostPasswordForm(_FormModel):
    user_login: str = ""
    redirect_to: Optional[str] = None

    @field_validator("user_login")
    @classmethod
    def _strip_login(cls, value: str) -> str:
        return value.strip()


class ResetPasswordForm(_FormModel):
    rp_key: str = ""
    rp_login: str = ""
    pass1: Optional[str] = None
    pass2: Optional[str] = None
