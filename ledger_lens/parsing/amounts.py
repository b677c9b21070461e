"""
Amount Decoder

Turns one raw amount, in whatever representation a tool emitted it,
into a signed Decimal. Shared by the balance and register extractors so
both read numbers the same way.

Recognized representations:
- plain numbers (int, float, Decimal)
- currency strings: "$-1,234.56", "-$50", "EUR 12.00", "12.00 EUR"
- hledger amount objects:
    {"acommodity": "$", "aquantity": {"floatingPoint": 12.5,
                                      "decimalMantissa": 1250,
                                      "decimalPlaces": 2}}
- lists of amount objects (one per commodity), which are summed
- ledger [amount, commodity] pairs
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


ZERO = Decimal(0)

# Checked in this order on a mapping
DIRECT_KEYS = ("floatingPoint", "amount", "value", "total")
LIST_KEYS = ("amounts", "pamount", "aamount", "total", "balance", "aibalance", "aebalance")
QUANTITY_KEY = "aquantity"
MANTISSA_KEY = "decimalMantissa"
PLACES_KEY = "decimalPlaces"

# One amount token inside a line of text, e.g. "$-1,234.56" or "-€50"
AMOUNT_TOKEN = r"[-+]?[^\d\s,.|+-]{0,3}[-+]?\d[\d,]*(?:\.\d+)?"

_AMOUNT_TEXT = re.compile(
    r"^(?P<sign>[-+]?)\s*"
    r"(?P<prefix>[^\d\s.,+-]*)\s*"
    r"(?P<inner_sign>[-+]?)\s*"
    r"(?P<number>\d[\d,]*(?:\.\d*)?|\.\d+)\s*"
    r"(?P<suffix>[^\d\s.,+-]*)$"
)


def _number(value: Any) -> Optional[Decimal]:
    """Decimal for a JSON number, None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            return None
        return result if result.is_finite() else None
    return None


def parse_amount_text(text: str) -> Optional[Decimal]:
    """
    Parse an amount printed as text.

    Strips a currency symbol or commodity code and thousands separators.
    Returns None when the text is not a single amount.
    """
    match = _AMOUNT_TEXT.match(text.strip())
    if not match:
        return None

    digits = match.group("number").replace(",", "")
    try:
        value = Decimal(digits)
    except InvalidOperation:
        return None

    if "-" in (match.group("sign"), match.group("inner_sign")):
        value = -value
    return value


def from_mantissa(mantissa: Any, places: Any = 0) -> Optional[Decimal]:
    """
    Decimal from hledger's mantissa/places pair.

    value = mantissa / 10**places; places of 0 means no scaling.
    """
    base = _number(mantissa)
    if base is None:
        return None
    scale = _number(places)
    if scale is None or scale <= 0:
        return base
    return base.scaleb(-int(scale))


def _decode_quantity(quantity: Any) -> Optional[Decimal]:
    """An hledger `aquantity` value: a number or a quantity object."""
    number = _number(quantity)
    if number is not None:
        return number
    if not isinstance(quantity, dict):
        return None

    floating = _number(quantity.get("floatingPoint"))
    if floating is not None:
        return floating

    if MANTISSA_KEY in quantity:
        return from_mantissa(quantity.get(MANTISSA_KEY), quantity.get(PLACES_KEY, 0))

    # Older hledger nests the quantity once more
    if QUANTITY_KEY in quantity:
        return _decode_quantity(quantity[QUANTITY_KEY])

    return None


def _decode_list(items: list) -> Optional[Decimal]:
    total = None
    for item in items:
        if isinstance(item, (list, tuple)):
            # ledger style [amount, commodity] pair
            value = try_decode(item[0]) if item else None
        else:
            value = try_decode(item)
        if value is not None:
            total = value if total is None else total + value
    return total


def _decode_map(mapping: dict) -> Optional[Decimal]:
    for key in DIRECT_KEYS:
        value = _number(mapping.get(key))
        if value is not None:
            return value

    for key in LIST_KEYS:
        value = mapping.get(key)
        if isinstance(value, list):
            decoded = _decode_list(value)
            if decoded is not None:
                return decoded

    if QUANTITY_KEY in mapping:
        value = _decode_quantity(mapping[QUANTITY_KEY])
        if value is not None:
            return value

    if MANTISSA_KEY in mapping:
        value = from_mantissa(mapping.get(MANTISSA_KEY), mapping.get(PLACES_KEY, 0))
        if value is not None:
            return value

    for key in DIRECT_KEYS:
        value = mapping.get(key)
        if isinstance(value, str):
            parsed = parse_amount_text(value)
            if parsed is not None:
                return parsed
        elif isinstance(value, dict):
            nested = _decode_map(value)
            if nested is not None:
                return nested

    return None


def try_decode(raw: Any) -> Optional[Decimal]:
    """
    Decode an amount, or None when there is no numeric content.

    Never raises.
    """
    if raw is None or isinstance(raw, bool):
        return None
    number = _number(raw)
    if number is not None:
        return number
    if isinstance(raw, str):
        return parse_amount_text(raw)
    if isinstance(raw, (list, tuple)):
        return _decode_list(list(raw))
    if isinstance(raw, dict):
        return _decode_map(raw)
    return None


def decode(raw: Any) -> Decimal:
    """
    Decode an amount to a signed Decimal.

    Anything without numeric content decodes to zero.
    """
    value = try_decode(raw)
    if value is None:
        return ZERO
    return value
