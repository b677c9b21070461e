"""
Register Extractor

Turns register output into an ordered list of Transactions, one per
posting, in the order the tool emitted them.

Many register layouts print the date only on the first posting of a
transaction. Entries are therefore folded left to right with an
accumulator carrying the last seen date: an entry without a date of its
own takes the carried date, and its effective date is carried on.

Recognized entries, whatever the outer Shape:
1. [date, status, description, posting, balance] arrays
2. objects holding a list of postings (each shares the object's date)
3. flat posting objects

Extraction is best-effort. A posting without a resolvable date, account
or numeric amount is dropped; output with nothing usable gives an empty
list, never an error.
"""

import re
from collections import Counter
from datetime import date
from functools import reduce
from typing import Any, NamedTuple, Optional

from ledger_lens.audit import get_logger
from ledger_lens.models.ledger import RegisterExtraction, Shape, Transaction
from ledger_lens.parsing.amounts import AMOUNT_TOKEN, try_decode
from ledger_lens.parsing.fields import (
    POSTING_ACCOUNT_KEYS,
    POSTING_AMOUNT_KEYS,
    POSTINGS_KEYS,
    first_present,
    parse_date,
    resolve_account,
    resolve_amount_field,
    resolve_date,
)
from ledger_lens.parsing.sniffer import SniffedOutput, classify, is_row


logger = get_logger(__name__)

# Keys under which a wrapped object may hold its list of register entries
WRAPPER_KEYS = ("transactions", "entries", "register", "rows", "data")

_REGISTER_LINE = re.compile(
    rf"^(?P<date>\d{{4}}[-/.]\d{{1,2}}[-/.]\d{{1,2}})\s+"
    rf"(?P<middle>\S.*?)\s+"
    rf"(?P<amount>{AMOUNT_TOKEN})(?=\s|$)"
)
_COLUMN_GAP = re.compile(r"\s{2,}")


class _Carry(NamedTuple):
    """Fold accumulator: transactions so far and the last seen date."""
    transactions: list[Transaction]
    last_date: Optional[date]


# =============================================================================
# POSTINGS
# =============================================================================

def _posting_to_transaction(posting: Any, day: Optional[date]) -> Optional[Transaction]:
    if not isinstance(posting, dict):
        return None

    account = resolve_account(posting, POSTING_ACCOUNT_KEYS)
    amount = try_decode(resolve_amount_field(posting, POSTING_AMOUNT_KEYS))

    if day is None or account is None or amount is None:
        logger.debug(
            "posting_dropped",
            has_date=day is not None,
            account=account,
            has_amount=amount is not None,
        )
        return None

    return Transaction(date=day, account=account, amount=amount)


def _expand_entry(entry: Any, carried: Optional[date]) -> tuple[list[Transaction], Optional[date]]:
    """Transactions of one entry and the date to carry to the next."""
    if is_row(entry):
        day = parse_date(entry[0]) or carried
        transaction = _posting_to_transaction(entry[3], day)
        return ([transaction] if transaction is not None else []), day

    if not isinstance(entry, dict):
        logger.debug("register_entry_skipped", entry_type=type(entry).__name__)
        return [], carried

    day = resolve_date(entry) or carried
    postings = first_present(entry, POSTINGS_KEYS)

    if isinstance(postings, list):
        transactions = []
        for posting in postings:
            transaction = _posting_to_transaction(posting, day)
            if transaction is not None:
                transactions.append(transaction)
        return transactions, day

    transaction = _posting_to_transaction(entry, day)
    return ([transaction] if transaction is not None else []), day


def _step(carry: _Carry, entry: Any) -> _Carry:
    produced, last_date = _expand_entry(entry, carry.last_date)
    carry.transactions.extend(produced)
    return _Carry(carry.transactions, last_date)


def fold_entries(entries: list) -> list[Transaction]:
    """Walk entries in order, threading the carried date through."""
    carry = reduce(_step, entries, _Carry([], None))
    return carry.transactions


# =============================================================================
# SHAPES
# =============================================================================

def _entries_of(sniffed: SniffedOutput) -> list:
    payload = sniffed.payload

    if sniffed.shape == Shape.WRAPPED_OBJECT:
        for key in WRAPPER_KEYS:
            nested = payload.get(key)
            if isinstance(nested, list):
                return nested
        return [payload]

    return list(payload)


def _text_line_to_transaction(line: str) -> Optional[Transaction]:
    if "|" in line:
        parts = [part.strip() for part in line.split("|") if part.strip()]
        if len(parts) < 3:
            return None
        day = parse_date(parts[0])
        account = resolve_account(parts[1])
        amount = try_decode(parts[2])
    else:
        match = _REGISTER_LINE.match(line.strip())
        if not match:
            return None
        day = parse_date(match.group("date"))
        # A description column, if any, precedes the account column
        columns = _COLUMN_GAP.split(match.group("middle").strip())
        account = resolve_account(columns[-1])
        amount = try_decode(match.group("amount"))

    if day is None or account is None or amount is None:
        return None
    return Transaction(date=day, account=account, amount=amount)


def _parse_text(text: str) -> list[Transaction]:
    transactions = []
    for line in text.splitlines():
        transaction = _text_line_to_transaction(line)
        if transaction is not None:
            transactions.append(transaction)
    return transactions


# =============================================================================
# ENTRY POINTS
# =============================================================================

def breakdown(transactions: list[Transaction]) -> dict[str, int]:
    """Transaction count per account class (unclassified under "Other")."""
    counts = Counter(
        t.account_class.value if t.account_class else "Other"
        for t in transactions
    )
    return dict(sorted(counts.items()))


def extract(sniffed: SniffedOutput) -> RegisterExtraction:
    """Extract transactions from sniffed register output."""
    if sniffed.shape == Shape.PLAIN_TEXT:
        transactions = _parse_text(sniffed.text)
    else:
        transactions = fold_entries(_entries_of(sniffed))

    logger.info(
        "register_transactions",
        shape=sniffed.shape.value,
        transaction_count=len(transactions),
        breakdown=breakdown(transactions),
    )
    return RegisterExtraction(shape=sniffed.shape, transactions=transactions)


def extract_text(raw: Optional[str]) -> RegisterExtraction:
    """Classify and extract in one step."""
    return extract(classify(raw))
