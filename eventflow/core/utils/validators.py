import re
from datetime import date
from phonenumbers import parse, is_valid_number, NumberParseException, format_number, PhoneNumberFormat

_EXPIRY_RE = re.compile(r"^(0[1-9]|1[0-2])/(\d{2})$")
_CVV_RE = re.compile(r"^\d{3,4}$")


def normalize_phone_or_none(v: str | None, default_region: str | None = None) -> str | None:
    if v is None or not v.strip():
        return None
    try:
        num = parse(v, default_region)
    except NumberParseException:
        raise ValueError("Invalid phone number")
    if not is_valid_number(num):
        raise ValueError("Invalid phone number")
    return format_number(num, PhoneNumberFormat.E164)


def luhn_checksum_ok(digits: str) -> bool:
    total = 0
    for i, ch in enumerate(reversed(digits)):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def normalize_card_number(v: str) -> str:
    digits = re.sub(r"[\s-]", "", v or "")
    if not digits.isdigit() or not 12 <= len(digits) <= 19:
        raise ValueError("Card number must contain 12-19 digits")
    if not luhn_checksum_ok(digits):
        raise ValueError("Invalid card number")
    return digits


def check_card_expiry(v: str, today: date | None = None) -> str:
    v = (v or "").strip()
    match = _EXPIRY_RE.match(v)
    if not match:
        raise ValueError("Expiry must be in MM/YY format")
    month, year = int(match.group(1)), 2000 + int(match.group(2))
    today = today or date.today()
    if (year, month) < (today.year, today.month):
        raise ValueError("Card has expired")
    return v


def check_cvv(v: str) -> str:
    v = (v or "").strip()
    if not _CVV_RE.match(v):
        raise ValueError("CVV must contain 3 or 4 digits")
    return v


def mask_card_number(number: str | None) -> str | None:
    if not number:
        return None
    return f"**** {number[-4:]}"
