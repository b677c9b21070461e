"""
Format Sniffer

Classifies raw tool output into one of the Shape variants, decoding JSON
on the way. No shape is assumed up front and classification never
raises: anything that is not one of the JSON layouts is PLAIN_TEXT.

JSON numbers with a fraction are decoded into Decimal directly.
"""

import json
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel

from ledger_lens.models.ledger import Shape


ROW_MIN_LENGTH = 4


class SniffedOutput(BaseModel):
    """Raw output together with its shape and decoded JSON payload."""

    shape: Shape
    text: str
    payload: Any = None


def is_row(value: Any) -> bool:
    """An hledger row: a JSON array of at least four items."""
    return isinstance(value, list) and len(value) >= ROW_MIN_LENGTH


def _shape_of(payload: Any) -> Shape:
    if isinstance(payload, dict):
        return Shape.WRAPPED_OBJECT
    if not isinstance(payload, list):
        return Shape.PLAIN_TEXT
    if not payload:
        return Shape.OBJECT_ARRAY

    first = payload[0]
    if isinstance(first, list):
        # Register: [row, row, ...]; balance: [[row, row, ...], totals]
        if is_row(first) or not first or isinstance(first[0], list):
            return Shape.HLEDGER_ARRAY
        return Shape.PLAIN_TEXT
    if isinstance(first, dict):
        return Shape.OBJECT_ARRAY
    return Shape.PLAIN_TEXT


def classify(raw: Optional[str]) -> SniffedOutput:
    """Classify raw tool output. Never raises."""
    text = (raw or "").strip()

    if not text or text[0] not in "[{":
        return SniffedOutput(shape=Shape.PLAIN_TEXT, text=text)

    try:
        payload = json.loads(text, parse_float=Decimal)
    except (ValueError, RecursionError):
        return SniffedOutput(shape=Shape.PLAIN_TEXT, text=text)

    shape = _shape_of(payload)
    if shape == Shape.PLAIN_TEXT:
        return SniffedOutput(shape=shape, text=text)
    return SniffedOutput(shape=shape, text=text, payload=payload)
