import re
import time

from flask import request

from earnings.errors import ValidationError

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
MIN_PASSWORD_LENGTH = 6


def validate_email(email):
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def validate_password(password):
    return isinstance(password, str) and len(password) >= MIN_PASSWORD_LENGTH


def clean_str(value):
    return value.strip() if isinstance(value, str) else ""


def parse_amount(value, field="amount", allow_zero=False, max_value=None):
    """Whole currency units; bools and fractional values are rejected."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be a whole number")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{field} must be positive")
    if max_value is not None and value > max_value:
        raise ValidationError(f"{field} must not exceed {max_value:,}")
    return value


def check_length(value, field, limit):
    if value and len(value) > limit:
        raise ValidationError(f"{field} must be at most {limit} characters")
    return value


def json_body():
    """JSON request body as a dict; missing or malformed bodies become {}."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def make_reference(prefix):
    return f"{prefix}_{int(time.time() * 1000)}"
