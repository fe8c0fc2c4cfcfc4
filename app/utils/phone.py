"""
Chat address helpers.

WhatsApp identities arrive in several shapes ("whatsapp:+9198...",
"whatsapp: 9198...", "+9198...", "9198..."). Everything the core stores or
compares goes through these helpers first.
"""

import re
from typing import Optional

WHATSAPP_PREFIX = "whatsapp:+"
DEFAULT_COUNTRY_CODE = "91"

_SCHEME_RE = re.compile(r"whatsapp:\s*", re.IGNORECASE)


def normalize_user_id(user_id: Optional[str], include_prefix: bool = True) -> str:
    """
    Normalize a chat identity.

    Strips every "whatsapp:" scheme occurrence, surrounding whitespace and
    leading "+" signs, then re-applies exactly one "whatsapp:+" prefix when
    include_prefix is True.

    Examples:
        "whatsapp:+919876543210"  -> "whatsapp:+919876543210"
        "+919876543210"           -> "whatsapp:+919876543210"
        "whatsapp: 919876543210"  -> "919876543210" (include_prefix=False)
    """
    if not user_id:
        return f"{WHATSAPP_PREFIX}unknown" if include_prefix else "unknown"

    clean_id = _SCHEME_RE.sub("", user_id.strip()).strip()
    clean_id = clean_id.lstrip("+")

    return f"{WHATSAPP_PREFIX}{clean_id}" if include_prefix else clean_id


def user_id_variants(user_id: str) -> list[str]:
    """Stored forms a digits-only identity may have been saved under."""
    digits = normalize_user_id(user_id, include_prefix=False)
    return [digits, f"+{digits}"]


def format_phone_number(phone: Optional[str]) -> Optional[str]:
    """
    Turn an officer's phone number into a chat address.

    Non-digits and leading zeros are removed, and the default country code is
    added to bare 10-digit numbers. Values that already carry the whatsapp
    scheme are normalized but otherwise kept.
    """
    if not phone or not phone.strip():
        return None

    if phone.strip().lower().startswith("whatsapp:"):
        return normalize_user_id(phone)

    cleaned = re.sub(r"\D", "", phone).lstrip("0")
    if not cleaned:
        return None

    if len(cleaned) == 10 and not cleaned.startswith(DEFAULT_COUNTRY_CODE):
        cleaned = f"{DEFAULT_COUNTRY_CODE}{cleaned}"

    return f"{WHATSAPP_PREFIX}{cleaned}"
