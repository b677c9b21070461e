"""
Field resolution shared by the extractors.

hledger and ledger spell the same field differently depending on the
report, the version and the output flags. These helpers look a value up
under any of its known spellings.
"""

from datetime import date, datetime
from typing import Any, Iterable, Optional


# Balance records
ACCOUNT_KEYS = ("account", "aname", "name", "fullname")
BALANCE_AMOUNT_KEYS = ("total", "aibalance", "aebalance", "balance", "amount", "amounts")

# Register records
POSTING_ACCOUNT_KEYS = ("paccount", "account", "aname")
POSTING_AMOUNT_KEYS = ("pamount", "aamount", "amount")
POSTINGS_KEYS = ("apostings", "postings", "tpostings")
DATE_KEYS = ("date", "tdate", "pdate")

DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d")

_MISSING = object()


def first_present(mapping: dict, keys: Iterable[str]) -> Any:
    """
    Value of the first key present in mapping, or _MISSING.

    A key present with value None counts as present.
    """
    for key in keys:
        if key in mapping:
            return mapping[key]
    return _MISSING


def resolve_account(record: Any, keys: Iterable[str] = ACCOUNT_KEYS) -> Optional[str]:
    """Non-empty account name from a record, or None."""
    if isinstance(record, str):
        name = record.strip()
        return name or None
    if not isinstance(record, dict):
        return None
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def resolve_amount_field(record: dict, keys: Iterable[str]) -> Any:
    """Raw amount value under one of keys; None when none is present."""
    value = first_present(record, keys)
    return None if value is _MISSING else value


def parse_date(value: Any) -> Optional[date]:
    """
    Calendar date from a string, a {year, month, day} object or a date.

    Returns None for anything that is not a valid date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()[:10]
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        return None
    if isinstance(value, dict) and {"year", "month", "day"} <= value.keys():
        try:
            return date(int(value["year"]), int(value["month"]), int(value["day"]))
        except (TypeError, ValueError):
            return None
    return None


def resolve_date(entry: Any) -> Optional[date]:
    """Own date of a register entry, looking into a nested "t" transaction."""
    if not isinstance(entry, dict):
        return None
    for key in DATE_KEYS:
        if key in entry:
            parsed = parse_date(entry[key])
            if parsed is not None:
                return parsed
    nested = entry.get("t")
    if isinstance(nested, dict):
        return resolve_date(nested)
    return None
