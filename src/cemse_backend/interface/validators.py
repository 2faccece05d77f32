import re
from typing import Optional

from cemse_backend.auth.passwords import PASSWORD_PATTERN

PASSWORD_MESSAGE = "Password must have at least 8 characters, one letter and one number"
_password_re = re.compile(PASSWORD_PATTERN)


def check_password(value: str) -> str:
    if not _password_re.match(value or ""):
        raise ValueError(PASSWORD_MESSAGE)
    return value


def check_phone(value: Optional[str]) -> Optional[str]:
    if value and len(value) < 10:
        raise ValueError("Phone must have at least 10 digits")
    return value or None


def check_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if len(value) < 2:
        raise ValueError("Name must have at least 2 characters")
    if len(value) > 100:
        raise ValueError("Name cannot exceed 100 characters")
    return value
