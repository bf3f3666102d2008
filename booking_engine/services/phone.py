"""Phone normalization, fingerprinting and masking"""

import hashlib
import hmac
import re
from typing import Optional

from booking_engine.config import settings
from booking_engine.errors import ValidationFailed

E164_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
FORMATTING_CHARS = re.compile(r"[\s\-().]")


def normalize_phone(raw: Optional[str]) -> str:
    """Canonical E.164 form of a caller-supplied number"""
    if raw is None or not raw.strip():
        raise ValidationFailed("MISSING_PHONE", "Customer phone is required.")
    
    candidate = FORMATTING_CHARS.sub("", raw.strip())
    if not E164_PATTERN.match(candidate):
        raise ValidationFailed(
            "INVALID_PHONE",
            "Please provide a valid phone number with area code.",
        )
    
    if candidate.startswith("+"):
        return candidate
    if len(candidate) == 10:
        return f"+{settings.default_country_code}{candidate}"
    return f"+{candidate}"


def phone_fingerprint(phone: str) -> str:
    """One-way digest of the number's digits, used for all lookups"""
    digits = re.sub(r"\D", "", phone).encode()
    if settings.phone_fingerprint_key:
        return hmac.new(settings.phone_fingerprint_key.encode(), digits, hashlib.sha256).hexdigest()
    return hashlib.sha256(digits).hexdigest()


def mask_phone(phone: Optional[str]) -> str:
    """+15551234567 -> +1***-***-4567"""
    if not phone:
        return "***-***-****"
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 10:
        return "***-***-****"
    country = digits[:-10]
    prefix = f"+{country}" if country else ""
    return f"{prefix}***-***-{digits[-4:]}"
