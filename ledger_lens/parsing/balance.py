"""
Balance Extractor

Builds a Summary from balance output of any recognized shape.

Each Shape has one handler that reduces the output to a flat list of
(account, amount) entries; summarizing those entries is shared, so the
same underlying balances give the same Summary whatever the layout.

Sign normalization: expense and income totals (and their categories)
are reported as absolute values. A refund booked to an expense account
therefore reduces the total like any other credit, and is not shown as
a separate negative figure.
"""

import re
from decimal import Decimal
from typing import Callable, NamedTuple, Optional

from ledger_lens.audit import get_logger
from ledger_lens.models.ledger import (
    AccountClass,
    BalanceExtraction,
    CategoryAmount,
    ExtractionError,
    Shape,
    Summary,
)
from ledger_lens.parsing.amounts import AMOUNT_TOKEN, ZERO, decode
from ledger_lens.parsing.fields import (
    ACCOUNT_KEYS,
    BALANCE_AMOUNT_KEYS,
    resolve_account,
    resolve_amount_field,
)
from ledger_lens.parsing.sniffer import SniffedOutput, classify, is_row


logger = get_logger(__name__)

# Keys under which a wrapped object may hold its list of accounts
WRAPPER_KEYS = ("accounts", "balances", "rows", "data", "entries")

_BALANCE_LINE = re.compile(rf"^\s*(?P<amount>{AMOUNT_TOKEN})\s+(?P<account>\S.*?)\s*$")
_SEPARATOR_LINE = re.compile(r"^[-=_\s]*$")

NO_ACCOUNTS = "no accounts found"


class BalanceEntry(NamedTuple):
    account: str
    amount: Decimal


# =============================================================================
# SHAPE HANDLERS
# =============================================================================

def _entries_from_rows(rows: list) -> list[BalanceEntry]:
    """
    hledger rows: [full_name, display_name, depth, amounts].

    Accepts the rows directly or nested one level deep, as in
    [[row, row, ...], [grand total amounts]]. The grand total is skipped.
    """
    flat = []
    for item in rows:
        if is_row(item) and isinstance(item[0], str):
            flat.append(item)
        elif isinstance(item, list):
            flat.extend(sub for sub in item if is_row(sub) and isinstance(sub[0], str))

    entries = []
    for row in flat:
        account = resolve_account(row[0])
        if account:
            entries.append(BalanceEntry(account, decode(row[3])))
    return entries


def _entries_from_records(records: list) -> list[BalanceEntry]:
    entries = []
    for record in records:
        if not isinstance(record, dict):
            continue
        account = resolve_account(record, ACCOUNT_KEYS)
        if account is None:
            continue
        amount = decode(resolve_amount_field(record, BALANCE_AMOUNT_KEYS))
        entries.append(BalanceEntry(account, amount))
    return entries


def _handle_hledger_array(sniffed: SniffedOutput) -> Optional[list[BalanceEntry]]:
    return _entries_from_rows(sniffed.payload)


def _handle_object_array(sniffed: SniffedOutput) -> Optional[list[BalanceEntry]]:
    return _entries_from_records(sniffed.payload)


def _handle_wrapped_object(sniffed: SniffedOutput) -> Optional[list[BalanceEntry]]:
    obj = sniffed.payload

    for key in WRAPPER_KEYS:
        nested = obj.get(key)
        if isinstance(nested, list):
            if nested and isinstance(nested[0], list):
                return _entries_from_rows(nested)
            return _entries_from_records(nested)

    nested = obj.get("account")
    if isinstance(nested, dict):
        return _entries_from_records([nested])

    # The object itself is a single account record
    if resolve_account(obj, ACCOUNT_KEYS) is not None:
        return _entries_from_records([obj])

    return None


def _handle_plain_text(sniffed: SniffedOutput) -> Optional[list[BalanceEntry]]:
    entries = []
    for line in sniffed.text.splitlines():
        if _SEPARATOR_LINE.match(line):
            continue
        match = _BALANCE_LINE.match(line)
        if not match:
            continue
        entries.append(BalanceEntry(match.group("account"), decode(match.group("amount"))))
    return entries


_HANDLERS: dict[Shape, Callable[[SniffedOutput], Optional[list[BalanceEntry]]]] = {
    Shape.HLEDGER_ARRAY: _handle_hledger_array,
    Shape.OBJECT_ARRAY: _handle_object_array,
    Shape.WRAPPED_OBJECT: _handle_wrapped_object,
    Shape.PLAIN_TEXT: _handle_plain_text,
}


# =============================================================================
# SUMMARY
# =============================================================================

def category_path(account: str, account_class: AccountClass) -> str:
    """Account path without its class segment: Expenses:Food:Out -> Food:Out."""
    if ":" in account:
        return account.split(":", 1)[1]
    return account[len(account_class.value):]


def _categories(entries: list[BalanceEntry], account_class: AccountClass) -> list[CategoryAmount]:
    items = []
    for entry in entries:
        amount = abs(entry.amount)
        if amount > 0:
            items.append(CategoryAmount(
                category_path=category_path(entry.account, account_class),
                amount=amount,
                full_path=entry.account,
            ))
    return sorted(items, key=lambda item: item.amount, reverse=True)


def summarize(entries: list[BalanceEntry]) -> Summary:
    """Bucket entries by account class and build the Summary."""
    buckets: dict[AccountClass, list[BalanceEntry]] = {cls: [] for cls in AccountClass}
    for entry in entries:
        account_class = AccountClass.of(entry.account)
        if account_class is not None:
            buckets[account_class].append(entry)

    totals = {
        cls: sum((entry.amount for entry in bucket), ZERO)
        for cls, bucket in buckets.items()
    }

    logger.debug(
        "balance_buckets",
        counts={cls.value: len(bucket) for cls, bucket in buckets.items()},
        totals={cls.value: str(total) for cls, total in totals.items()},
    )

    assets = totals[AccountClass.ASSETS]
    liabilities = totals[AccountClass.LIABILITIES]

    return Summary(
        total_expenses=abs(totals[AccountClass.EXPENSES]),
        total_income=abs(totals[AccountClass.INCOME]),
        total_assets=assets,
        total_liabilities=liabilities,
        net_worth=assets - liabilities,
        expense_categories=_categories(buckets[AccountClass.EXPENSES], AccountClass.EXPENSES),
        income_categories=_categories(buckets[AccountClass.INCOME], AccountClass.INCOME),
    )


def extract(sniffed: SniffedOutput) -> BalanceExtraction:
    """Extract a Summary from sniffed balance output."""
    entries = _HANDLERS[sniffed.shape](sniffed)

    if entries is None:
        logger.warning("balance_no_accounts", shape=sniffed.shape.value)
        return BalanceExtraction(
            success=False,
            shape=sniffed.shape,
            error=ExtractionError(message=NO_ACCOUNTS),
        )

    logger.info("balance_entries", shape=sniffed.shape.value, entry_count=len(entries))
    return BalanceExtraction(
        success=True,
        shape=sniffed.shape,
        summary=summarize(entries),
    )


def extract_text(raw: Optional[str]) -> BalanceExtraction:
    """Classify and extract in one step."""
    return extract(classify(raw))
