import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

import bleach

from .errors import InvalidInput


def sanitize_input(value: Optional[str]) -> str:
    """Sanitize a user-supplied free-text field before it is stored.

    - Strips HTML tags using bleach.clean(..., strip=True)
    - Removes NUL bytes
    - Collapses runs of whitespace and trims
    """
    if value is None:
        return ""
    val = value.replace("\x00", "")
    val = bleach.clean(val, tags=set(), strip=True)
    val = re.sub(r"\s+", " ", val)
    return val.strip()


# Business rule: money stored rounded to 2 decimals, HALF_UP

def round_amount(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_price(value) -> Decimal:
    """Parse a catalog price; raise InvalidInput when unparseable or negative."""
    if isinstance(value, bool):
        raise InvalidInput(f"invalid price: {value!r}")
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidInput(f"invalid price: {value!r}") from e
    if not price.is_finite():
        raise InvalidInput(f"invalid price: {value!r}")
    price = round_amount(price)
    if price < 0:
        raise InvalidInput("price must be non-negative")
    return price


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
