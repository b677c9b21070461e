"""Tests for the Format Sniffer."""

import pytest
from decimal import Decimal

from ledger_lens.models.ledger import Shape
from ledger_lens.parsing.sniffer import classify


class TestClassify:
    """Tests for shape classification."""

    def test_hledger_balance_rows(self):
        raw = '[[["Expenses:Food","Expenses:Food",0,[]]],[]]'
        assert classify(raw).shape == Shape.HLEDGER_ARRAY

    def test_hledger_register_rows(self):
        raw = '[["2024-01-15",null,"Groceries",{"paccount":"Expenses:Food"},[]]]'
        assert classify(raw).shape == Shape.HLEDGER_ARRAY

    def test_object_array(self):
        raw = '[{"account":"Expenses:Food","total":-50}]'
        sniffed = classify(raw)
        assert sniffed.shape == Shape.OBJECT_ARRAY
        assert sniffed.payload[0]["account"] == "Expenses:Food"

    def test_wrapped_object(self):
        assert classify('{"accounts": []}').shape == Shape.WRAPPED_OBJECT

    def test_empty_array_has_no_entries(self):
        sniffed = classify("[]")
        assert sniffed.shape == Shape.OBJECT_ARRAY
        assert sniffed.payload == []

    def test_leading_whitespace_is_trimmed(self):
        assert classify('\n   {"accounts": []}\n').shape == Shape.WRAPPED_OBJECT


class TestPlainTextFallback:
    """Anything that is not a recognized JSON layout is plain text."""

    @pytest.mark.parametrize("raw", [
        "  $-50  Expenses:Food",
        "[1, 2",
        "{not json}",
        "[1, 2, 3]",
        "[[1, 2]]",
        "",
        None,
    ])
    def test_degrades_to_plain_text(self, raw):
        sniffed = classify(raw)
        assert sniffed.shape == Shape.PLAIN_TEXT
        assert sniffed.payload is None

    def test_plain_text_keeps_text(self):
        sniffed = classify("  $-50  Expenses:Food\n")
        assert sniffed.text == "$-50  Expenses:Food"

    def test_deeply_nested_input_does_not_raise(self):
        """Pathological nesting degrades instead of raising."""
        raw = "[" * 100000 + "]" * 100000
        assert classify(raw).shape in set(Shape)


class TestNumbers:
    """JSON numbers never pass through binary floats."""

    def test_fractions_decode_to_decimal(self):
        sniffed = classify('[{"account":"Assets:Cash","total":0.1}]')
        total = sniffed.payload[0]["total"]
        assert isinstance(total, Decimal)
        assert total == Decimal("0.1")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
