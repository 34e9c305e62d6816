from models.db import MAX_ROW_ID
from utils.errors import InvalidRequest


def parse_int(value, name, upper=MAX_ROW_ID):
    """Strict integer from JSON or a query string.

    Accepts an int or a string of digits with an optional leading minus.
    Floats, bools and numeric strings such as "4.9" are rejected rather
    than truncated.
    """
    if isinstance(value, bool):
        raise InvalidRequest(f"{name} must be an integer")
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text.startswith("-") else text
        if not digits.isascii() or not digits.isdigit():
            raise InvalidRequest(f"{name} must be an integer")
        value = int(text)
    elif not isinstance(value, int):
        raise InvalidRequest(f"{name} must be an integer")

    if abs(value) > upper:
        raise InvalidRequest(f"{name} is out of range")
    return value
