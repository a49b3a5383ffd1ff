# etiket-backend/events/sanitizers.py
"""
Input cleaning for organizer-entered event content and public
registration forms. Everything user-typed passes through here before
it is stored.
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]')
_LINE_BREAKS = re.compile(r'[\r\n]+')
_WHITESPACE = re.compile(r'\s+')
_PHONE_CHARS = re.compile(r'[^\d+]')


class ValidationError(Exception):
    """Raised when a numeric value is out of range or unparseable."""
    pass


def sanitize_text(text: Optional[str], max_length: Optional[int] = None, strip: bool = True) -> str:
    """
    Plain text: control characters removed (newlines and tabs survive),
    optionally trimmed, cut at max_length. None becomes "".
    """
    if text is None:
        return ""

    text = str(text)
    if strip:
        text = text.strip()

    text = _CONTROL_CHARS.sub('', text)

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def sanitize_title(title: Optional[str]) -> str:
    """Single line, collapsed whitespace, at most 255 characters."""
    text = sanitize_text(title, max_length=255)
    text = _LINE_BREAKS.sub(' ', text)
    return _WHITESPACE.sub(' ', text)


def sanitize_description(description: Optional[str]) -> str:
    return sanitize_text(description, max_length=10000)


# ─────────────────────────────────────────────────────────────
# Registration form fields
# ─────────────────────────────────────────────────────────────

def sanitize_name(name: Optional[str]) -> str:
    return sanitize_title(name)


def normalize_email(email: Optional[str]) -> str:
    return sanitize_text(email, max_length=254).lower()


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Keep digits and a leading "+"; "0812-3456 7890" -> "081234567890".
    Returns None when nothing usable is left.
    """
    cleaned = _PHONE_CHARS.sub('', sanitize_text(phone))
    if cleaned.startswith('+'):
        cleaned = '+' + cleaned[1:].replace('+', '')
    else:
        cleaned = cleaned.replace('+', '')
    return cleaned[:32] or None


def sanitize_answer(value) -> str:
    """Custom field answer; checkbox answers arrive as lists and are comma-joined."""
    if isinstance(value, (list, tuple)):
        parts = [sanitize_title(item) for item in value if item is not None]
        return ", ".join(part for part in parts if part)
    return sanitize_text(value, max_length=2000)


# ─────────────────────────────────────────────────────────────
# Numeric Validators
# ─────────────────────────────────────────────────────────────

def validate_capacity(value, min_value: int = 0, max_value: int = 100000) -> int:
    """Event capacity or ticket quota: an integer in [min_value, max_value]."""
    try:
        capacity = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Capacity must be a valid integer")

    if not min_value <= capacity <= max_value:
        raise ValidationError(f"Capacity must be between {min_value} and {max_value}")

    return capacity


def validate_price(value, min_value: Decimal = Decimal('0'), max_value: Decimal = Decimal('9999999999.99')) -> Decimal:
    """
    Rupiah amount for ticket prices and discount values. Blank means 0;
    the result is quantized to two decimal places.
    """
    if isinstance(value, str) and not value.strip():
        value = '0'
    try:
        price = Decimal(str(value).strip())
    except (TypeError, ValueError, InvalidOperation):
        raise ValidationError("Price must be a valid number")

    if not price.is_finite():
        raise ValidationError("Price must be a valid number")

    if price < min_value:
        raise ValidationError(f"Price must be at least {min_value}")

    if price > max_value:
        raise ValidationError(f"Price cannot exceed {max_value}")

    return price.quantize(Decimal('0.01'))
