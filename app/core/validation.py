"""Input rules for sign-up, sign-in and profile changes.

Passwords travel base64-encoded; the rules apply to the decoded text.
"""

import base64
import binascii
import re
from typing import Any

from app.core.errors import BadRequestError

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
BASE64_RE = re.compile(r"^[A-Za-z0-9+/=]+$")
NICKNAME_RE = re.compile(r"^\S{1,10}$")
SPECIAL_CHARS_RE = re.compile(r"[!@#$%^&*(),.?\":;{}|<>]")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 20
NICKNAME_MAX_LENGTH = 10
TITLE_MAX_LENGTH = 255

PASSWORD_RULE_MESSAGE = (
    "Password must be 8-20 characters without spaces and include an uppercase "
    "letter, a lowercase letter, a digit and a special character"
)


def require(*values: str | None) -> None:
    if any(value is None or not value.strip() for value in values):
        raise BadRequestError("Invalid request")


def validate_email(email: str, data: Any = None) -> str:
    email = email.strip()
    if not EMAIL_RE.match(email):
        raise BadRequestError("Invalid email format", data)
    return email


def validate_nickname(nickname: str, data: Any = None) -> str:
    nickname = nickname.strip()
    if not NICKNAME_RE.match(nickname):
        raise BadRequestError(
            f"Nickname must be 1-{NICKNAME_MAX_LENGTH} characters without spaces", data
        )
    return nickname


def decode_password(encoded: str) -> str:
    """Decode a base64 password, rejecting anything that is not base64."""
    encoded = encoded.strip()
    if not BASE64_RE.match(encoded):
        raise BadRequestError("Password must be base64 encoded")
    try:
        return base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise BadRequestError("Password must be base64 encoded") from exc


def check_password_rules(password: str) -> None:
    if not (
        PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH
        and re.search(r"[0-9]", password)
        and re.search(r"[A-Z]", password)
        and re.search(r"[a-z]", password)
        and SPECIAL_CHARS_RE.search(password)
        and not re.search(r"\s", password)
    ):
        raise BadRequestError(PASSWORD_RULE_MESSAGE)


def validate_new_password(encoded: str, encoded_check: str) -> str:
    """Decode and check a new password and its confirmation; return the plain text."""
    password = decode_password(encoded)
    check_password_rules(password)
    if decode_password(encoded_check) != password:
        raise BadRequestError("Passwords do not match")
    return password


def validate_title(title: str) -> str:
    title = title.strip()
    if len(title) > TITLE_MAX_LENGTH:
        raise BadRequestError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return title
