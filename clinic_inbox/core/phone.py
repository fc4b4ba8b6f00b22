"""Phone number canonicalization.

Every phone that takes part in identity matching goes through
``normalize_phone`` so that the value derived from a client's record and the
value derived from a provider chat address compare equal. The numbering plan
(country code, trunk digit, subscriber length) comes from settings.
"""

import re

from clinic_inbox.config import settings

CHAT_SUFFIXES = ("@c.us", "@g.us", "@s.whatsapp.net")
GROUP_SUFFIX = "@g.us"
PERSONAL_SUFFIX = "@c.us"

_NON_DIGITS = re.compile(r"\D")


def phone_from_chat_id(chat_id: str | None) -> str:
    """Strip the provider chat-address suffix (972501234567@c.us -> 972501234567)."""
    if not chat_id:
        return ""
    for suffix in CHAT_SUFFIXES:
        chat_id = chat_id.replace(suffix, "")
    return chat_id


def is_group_chat(chat_id: str | None) -> bool:
    """Return True for group chat addresses."""
    return bool(chat_id) and chat_id.endswith(GROUP_SUFFIX)


def digits_only(phone: str | None) -> str:
    """Drop the chat suffix and every non-digit character."""
    return _NON_DIGITS.sub("", phone_from_chat_id(phone))


def normalize_phone(phone: str | None) -> str:
    """Canonicalize a phone into the key used for equality matching.

    "050-123-4567", "972501234567" and "0501234567" all become "0501234567".
    Returns "" when nothing usable is left; callers treat "" as "no key".
    """
    normalized = digits_only(phone)
    if not normalized:
        return ""

    country_code = settings.PHONE_COUNTRY_CODE
    trunk = settings.PHONE_TRUNK_PREFIX

    if normalized.startswith(country_code):
        normalized = trunk + normalized[len(country_code) :]

    if len(normalized) == settings.PHONE_SUBSCRIBER_LENGTH and not normalized.startswith(trunk):
        normalized = trunk + normalized

    return normalized


def phone_suffix(phone: str | None, length: int | None = None) -> str:
    """Last ``length`` digits of a phone, used for widened matching."""
    length = length or settings.PHONE_MATCH_SUFFIX_LENGTH
    return digits_only(phone)[-length:]


def to_international(phone: str | None) -> str:
    """Format a phone the way the provider expects it (972XXXXXXXXX)."""
    cleaned = digits_only(phone)
    country_code = settings.PHONE_COUNTRY_CODE
    trunk = settings.PHONE_TRUNK_PREFIX

    if cleaned.startswith(trunk):
        return country_code + cleaned[len(trunk) :]
    if not cleaned.startswith(country_code):
        return country_code + cleaned
    return cleaned


def to_chat_id(phone: str | None) -> str:
    """Build the provider chat address for a personal chat."""
    return f"{to_international(phone)}{PERSONAL_SUFFIX}"
