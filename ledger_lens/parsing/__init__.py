"""Output normalization: shape sniffing, amount decoding and extraction."""

from ledger_lens.parsing import balance, register
from ledger_lens.parsing.amounts import decode, from_mantissa, parse_amount_text, try_decode
from ledger_lens.parsing.sniffer import SniffedOutput, classify

__all__ = [
    "SniffedOutput",
    "balance",
    "classify",
    "decode",
    "from_mantissa",
    "parse_amount_text",
    "register",
    "try_decode",
]
