import re

from app.core.exceptions import InvalidPhoneNumber

LOCAL_PHONE_PATTERN = re.compile(r"^07\d{8}$")


def normalize_phone(phone_number: str) -> str:
    """Reduce a Rwandan mobile number to the local ``07XXXXXXXX`` form.

    Accepts the local form, the form without the leading zero and the
    international ``250``/``+250`` forms, with any spacing or punctuation.
    """
    if not isinstance(phone_number, str):
        raise InvalidPhoneNumber()
    digits = re.sub(r"\D", "", phone_number)
    if digits.startswith("250") and len(digits) == 12:
        digits = "0" + digits[3:]
    elif digits.startswith("7") and len(digits) == 9:
        digits = "0" + digits
    if not LOCAL_PHONE_PATTERN.match(digits):
        raise InvalidPhoneNumber()
    return digits
