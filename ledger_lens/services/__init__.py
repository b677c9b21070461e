"""Services package."""

from ledger_lens.services.runner import CommandRunner

__all__ = [
    "CommandRunner",
]
