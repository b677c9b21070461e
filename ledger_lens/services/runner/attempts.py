"""
Fallback chains

Each report is requested through an ordered list of attempts. The runner
evaluates them in order and stops at the first accepted output, so
adding or reordering a tool/flag combination only touches these lists.
"""

from ledger_lens.config import RunnerSettings
from ledger_lens.models.command import CommandAttempt, CommandKind


# ledger-cli register line: 2024-01-15|Expenses:Food|$50.00
LEDGER_REGISTER_FORMAT = '%(format_date(date, "%Y-%m-%d"))|%(account)|%(display_amount)\n'

# Spellings ledger-cli versions have used for JSON output
LEDGER_JSON_FLAGS = (
    ("--json",),
    ("-j",),
    ("--format", "json"),
)


def balance_chain(primary: str, secondary: str) -> list[CommandAttempt]:
    """hledger JSON, hledger text, ledger JSON spellings, bare ledger."""
    chain = [
        CommandAttempt(binary=primary, args=("balance", "-O", "json"), expects_structured=True),
        CommandAttempt(binary=primary, args=("balance",)),
    ]
    chain.extend(
        CommandAttempt(binary=secondary, args=("bal", *flags), expects_structured=True)
        for flags in LEDGER_JSON_FLAGS
    )
    chain.append(CommandAttempt(binary=secondary, args=("bal",)))
    return chain


def register_chain(primary: str, secondary: str) -> list[CommandAttempt]:
    """hledger JSON, hledger text, ledger pipe format, bare ledger."""
    return [
        CommandAttempt(binary=primary, args=("register", "-O", "json"), expects_structured=True),
        CommandAttempt(binary=primary, args=("register",)),
        CommandAttempt(binary=secondary, args=("reg", "--format", LEDGER_REGISTER_FORMAT)),
        CommandAttempt(binary=secondary, args=("reg",)),
    ]


def chain_for(kind: CommandKind, settings: RunnerSettings) -> list[CommandAttempt]:
    if kind == CommandKind.BALANCE:
        return balance_chain(settings.primary_binary, settings.secondary_binary)
    return register_chain(settings.primary_binary, settings.secondary_binary)
