"""Accounting tool runner package."""

from ledger_lens.services.runner.attempts import (
    LEDGER_REGISTER_FORMAT,
    balance_chain,
    chain_for,
    register_chain,
)
from ledger_lens.services.runner.command_runner import CommandRunner, looks_structured

__all__ = [
    "CommandRunner",
    "LEDGER_REGISTER_FORMAT",
    "balance_chain",
    "chain_for",
    "looks_structured",
    "register_chain",
]
