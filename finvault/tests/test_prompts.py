"""Tests for extraction prompt construction."""

import pytest

from finvault.models import HoldingCategory, TransactionCategory
from finvault.parsers.prompts import build_extraction_prompt

SAMPLE_TEXT = """STATE BANK OF INDIA
Account No: XXXX4321
15/01/2024  UPI/SWIGGY/412345  450.00 Dr  12,550.00"""


class TestBuildExtractionPrompt:
    """Test the extraction prompt."""

    def test_is_deterministic(self):
        """Same text should always give the same prompt."""
        assert build_extraction_prompt(SAMPLE_TEXT) == build_extraction_prompt(SAMPLE_TEXT)

    def test_embeds_document_text_last(self):
        """Should place the document after the instructions."""
        prompt = build_extraction_prompt(SAMPLE_TEXT)
        assert f"DOCUMENT TEXT TO ANALYZE:\n{SAMPLE_TEXT}\n" in prompt
        assert prompt.endswith("NO CODE BLOCKS.")

    def test_lists_every_category(self):
        """Should enumerate the closed category sets."""
        prompt = build_extraction_prompt(SAMPLE_TEXT)
        for category in TransactionCategory:
            assert category.value in prompt
        for category in HoldingCategory:
            assert category.value in prompt

    def test_describes_top_level_keys(self):
        prompt = build_extraction_prompt(SAMPLE_TEXT)
        for key in ('"bankAccounts"', '"transactions"', '"holdings"'):
            assert key in prompt

    def test_requires_lowercase_types(self):
        prompt = build_extraction_prompt(SAMPLE_TEXT)
        assert '"debit" | "credit"' in prompt

    def test_empty_document(self):
        """Should still render with an empty document."""
        prompt = build_extraction_prompt("")
        assert "DOCUMENT TEXT TO ANALYZE:\n\n" in prompt


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
