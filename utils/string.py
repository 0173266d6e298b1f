import unicodedata
import re


def clean_text(text, max_length: int = None):
    """
    Clean and normalize free text before it goes into a courier payload.

    - Normalizes Unicode (NFKC)
    - Replaces non-breaking spaces
    - Collapses whitespace runs to a single space
    - Optionally truncates to max_length
    """
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)
    text = unicodedata.normalize("NFKC", text).replace("\xa0", " ")
    text = re.sub(r"\s+", " ", text).strip()
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def clean_phone(phone: str) -> str:
    """Last 10 digits of an Indian phone number, without the +91 / 91 prefix."""
    if not phone:
        return ""
    phone = str(phone).strip()
    if phone.startswith("+91"):
        phone = phone[3:]
    elif phone.startswith("91") and len(phone) > 10:
        phone = phone[2:]
    phone = re.sub(r"\D", "", phone)
    return phone[-10:] if len(phone) >= 10 else phone
