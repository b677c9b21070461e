"""
Command Execution Models

Every invocation of the accounting tool ends in one of these records.
Expected failures (missing binary, non-zero exit, timeout) are values,
not exceptions, so the fallback chain can inspect and move past them.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CommandKind(str, Enum):
    """Which report is being requested."""
    BALANCE = "balance"
    REGISTER = "register"


class CommandErrorKind(str, Enum):
    """Failure classification for a single invocation."""
    NOT_FOUND = "not_found"        # binary is not installed / not on PATH
    TIMEOUT = "timeout"            # killed after the wall-clock limit
    TOOL_ERROR = "tool_error"      # ran, but exited non-zero
    SYSTEM_ERROR = "system_error"  # could not be spawned for another reason


class CommandError(BaseModel):
    """A classified invocation failure."""

    kind: CommandErrorKind
    binary: str
    exit_code: Optional[int] = None
    output: Optional[str] = Field(
        default=None,
        description="Captured stdout+stderr of a failed run"
    )
    detail: Optional[str] = Field(
        default=None,
        description="Spawn-level error detail or the timeout that was hit"
    )

    @property
    def message(self) -> str:
        """Human-readable one-line description."""
        if self.kind == CommandErrorKind.NOT_FOUND:
            return (
                f"{self.binary} command not found. "
                f"Please ensure {self.binary} is installed and in your PATH."
            )
        if self.kind == CommandErrorKind.TIMEOUT:
            return f"{self.binary} command timed out after {self.detail}"
        if self.kind == CommandErrorKind.TOOL_ERROR:
            output = (self.output or "").strip()
            if output:
                return f"{self.binary} command failed with exit code {self.exit_code}: {output}"
            return f"{self.binary} command failed with exit code {self.exit_code}"
        return f"Failed to execute {self.binary} command: {self.detail}"

    @property
    def user_message(self) -> str:
        """Like `message`, but never includes the captured tool output."""
        if self.kind == CommandErrorKind.TOOL_ERROR:
            return f"{self.binary} command failed with exit code {self.exit_code}"
        return self.message


class CommandAttempt(BaseModel):
    """
    One entry of a fallback chain.

    expects_structured: output must look like JSON ([ or {) to be accepted.
    """
    model_config = ConfigDict(frozen=True)

    binary: str
    args: tuple[str, ...]
    expects_structured: bool = False

    def describe(self) -> str:
        return " ".join((self.binary, *self.args))


class AttemptOutcome(BaseModel):
    """What happened when one attempt of the chain was run."""

    attempt: CommandAttempt
    accepted: bool
    exit_code: Optional[int] = None
    output: Optional[str] = None
    error: Optional[CommandError] = None
    elapsed_ms: int = Field(default=0, ge=0)

    @property
    def rejection_reason(self) -> Optional[str]:
        """Why this attempt did not end the chain, if it did not."""
        if self.accepted:
            return None
        if self.error is not None:
            return self.error.message
        if self.attempt.expects_structured:
            return "output is not structured (does not start with [ or {)"
        return "output is empty"


class CommandResult(BaseModel):
    """
    Result of walking a whole fallback chain.

    On success, output holds the text of the accepted attempt.
    On failure, error holds the failure of the last attempt.
    """

    success: bool
    kind: CommandKind
    output: Optional[str] = None
    error: Optional[CommandError] = None
    attempts: list[AttemptOutcome] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_outcome(self) -> 'CommandResult':
        if self.success and self.output is None:
            raise ValueError("Successful command result requires output")
        if not self.success and self.error is None:
            raise ValueError("Failed command result requires an error")
        return self

    @property
    def accepted_attempt(self) -> Optional[CommandAttempt]:
        for outcome in self.attempts:
            if outcome.accepted:
                return outcome.attempt
        return None
