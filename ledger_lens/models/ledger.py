"""
Core Data Models for Ledger Lens

These models define the canonical shape of everything the pipeline produces,
whatever the accounting tool actually printed:
1. Summary - sign-normalized totals and category roll-ups from a balance run
2. Transaction - one posting line from a register run
3. AnalysisResult - what the presentation layer receives

All money values are Decimal. Tool output is decoded straight into Decimal,
so no binary-float rounding leaks into totals.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class AccountClass(str, Enum):
    """
    Top-level account classes the summary buckets by.

    Accounts whose path starts with none of these are ignored.
    """
    EXPENSES = "Expenses"
    INCOME = "Income"
    ASSETS = "Assets"
    LIABILITIES = "Liabilities"

    @classmethod
    def of(cls, account: str) -> Optional["AccountClass"]:
        """Return the class an account path starts with, if any."""
        for account_class in cls:
            if account.startswith(account_class.value):
                return account_class
        return None


class Shape(str, Enum):
    """
    Structural layouts the accounting tools emit.

    HLEDGER_ARRAY: [[name, name, depth, amounts], ...] or register rows
    OBJECT_ARRAY: [{"account": ..., "total": ...}, ...]
    WRAPPED_OBJECT: {"accounts": [...]} or a single record
    PLAIN_TEXT: anything that is not one of the JSON layouts above
    """
    HLEDGER_ARRAY = "hledger_array"
    OBJECT_ARRAY = "object_array"
    WRAPPED_OBJECT = "wrapped_object"
    PLAIN_TEXT = "plain_text"


# =============================================================================
# LEDGER MODELS
# =============================================================================

class CategoryAmount(BaseModel):
    """
    One row of a category breakdown.

    Expenses:Food:Groceries becomes category_path "Food:Groceries".
    """
    model_config = ConfigDict(frozen=True)

    category_path: str = Field(
        ...,
        description="Account path without its leading class segment"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Absolute amount for this category"
    )
    full_path: str = Field(
        ...,
        description="Complete account path as reported by the tool"
    )


class Transaction(BaseModel):
    """
    A single posting line from a register report.

    The amount is kept exactly as the tool reported it (not
    sign-normalized, unlike Summary totals).
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    date: date
    account: str = Field(
        ...,
        min_length=1,
        description="Colon-delimited account path, e.g. Expenses:Food"
    )
    amount: Decimal

    @property
    def account_class(self) -> Optional[AccountClass]:
        return AccountClass.of(self.account)


class Summary(BaseModel):
    """
    Aggregate result of one balance run.

    Expense and income totals are absolute values: the tools report them
    with a debit/credit sign, and a refund is not told apart from an
    expense. Assets and liabilities keep their natural sign.
    """

    total_expenses: Decimal = Field(default=Decimal(0), ge=0)
    total_income: Decimal = Field(default=Decimal(0), ge=0)
    total_assets: Decimal = Decimal(0)
    total_liabilities: Decimal = Decimal(0)
    net_worth: Decimal = Decimal(0)

    expense_categories: list[CategoryAmount] = Field(default_factory=list)
    income_categories: list[CategoryAmount] = Field(default_factory=list)

    # Filled in by the analyzer once register data is available
    transactions: list[Transaction] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_net_worth(self) -> 'Summary':
        """net_worth must equal assets minus liabilities."""
        if self.net_worth != self.total_assets - self.total_liabilities:
            raise ValueError("Net worth must equal total assets minus total liabilities")
        return self

    @field_validator('expense_categories', 'income_categories')
    @classmethod
    def validate_sorted(cls, v: list[CategoryAmount]) -> list[CategoryAmount]:
        """Categories are ordered by amount, largest first."""
        amounts = [item.amount for item in v]
        if amounts != sorted(amounts, reverse=True):
            raise ValueError("Categories must be sorted descending by amount")
        return v

    def with_transactions(self, transactions: list[Transaction]) -> 'Summary':
        """Copy of this summary with the register transactions merged in."""
        return self.model_copy(update={"transactions": list(transactions)})


class LedgerUpload(BaseModel):
    """
    An uploaded ledger file as handed over by the upload layer.

    Only the path matters to the analysis; the rest is carried
    for logging.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    path: str = Field(
        ...,
        min_length=1,
        description="Filesystem path of the uploaded (temporary) ledger file"
    )
    original_name: str = Field(
        ...,
        description="File name the user uploaded"
    )
    size: Optional[int] = Field(
        default=None,
        ge=0,
        description="File size in bytes"
    )
    uploaded_at: datetime = Field(
        default_factory=utc_now
    )


class AnalysisResult(BaseModel):
    """
    Top-level analysis payload handed to the presentation layer.

    raw holds the untouched balance output for debugging only.
    """

    summary: Summary
    generated_at: datetime = Field(
        default_factory=utc_now,
        description="When the analysis was produced (UTC)"
    )
    raw: str = Field(
        default="",
        description="Original balance output, never reparsed"
    )
    correlation_id: UUID = Field(
        default_factory=uuid4,
        description="Ties this result to the audit events of its run"
    )

    def to_payload(self) -> dict[str, Any]:
        """
        JSON-ready dict for rendering.

        Decimals become strings, dates become ISO strings, raw is left out.
        """
        return self.model_dump(mode="json", exclude={"raw"})


# =============================================================================
# RESULT MODELS
# =============================================================================

class LedgerLensError(Exception):
    """Base exception for Ledger Lens."""
    pass


class AnalysisError(LedgerLensError):
    """Analysis failed; the message is safe to show to a user."""
    pass


class ExtractionError(BaseModel):
    """Output could not be turned into canonical records."""

    message: str


class BalanceExtraction(BaseModel):
    """Result of extracting a Summary from balance output."""

    success: bool
    shape: Shape
    summary: Optional[Summary] = None
    error: Optional[ExtractionError] = None

    @model_validator(mode='after')
    def validate_outcome(self) -> 'BalanceExtraction':
        if self.success and self.summary is None:
            raise ValueError("Successful extraction requires a summary")
        if not self.success and self.error is None:
            raise ValueError("Failed extraction requires an error")
        return self


class RegisterExtraction(BaseModel):
    """
    Result of extracting transactions from register output.

    Register extraction is best-effort and never fails: unreadable
    postings are dropped, unreadable output gives an empty list.
    """

    success: bool = True
    shape: Shape
    transactions: list[Transaction] = Field(default_factory=list)


class AnalysisOutcome(BaseModel):
    """Result of analyze(): either a result or one user-facing message."""

    success: bool
    result: Optional[AnalysisResult] = None
    error_message: Optional[str] = None

    @model_validator(mode='after')
    def validate_outcome(self) -> 'AnalysisOutcome':
        if self.success and self.result is None:
            raise ValueError("Successful analysis requires a result")
        if not self.success and not self.error_message:
            raise ValueError("Failed analysis requires an error message")
        return self

    def unwrap(self) -> AnalysisResult:
        """Return the result or raise AnalysisError with the failure message."""
        if not self.success:
            raise AnalysisError(self.error_message)
        return self.result


LedgerSource = Union[str, LedgerUpload]
