"""Tests for the parser validation module."""

from datetime import date

import pytest

from finvault.models import BankAccount, Holding, Transaction
from finvault.parsers.validation import (
    BANK_ACCOUNT_RULES,
    HOLDING_RULES,
    TRANSACTION_RULES,
    AcceptancePolicy,
    ValidationError,
    clean_amount_string,
    failed_rules,
    is_placeholder,
    parse_amount_safe,
    passes_policy,
    validate_amount,
    validate_bank_account,
    validate_file_contents,
    validate_holding,
    validate_pdf_contents,
    validate_transaction,
)


class TestValidateFileContents:
    """Test file contents validation."""

    def test_rejects_empty_contents(self):
        """Should reject empty file contents."""
        with pytest.raises(ValidationError, match="empty"):
            validate_file_contents(b"")

    def test_rejects_too_small_contents(self):
        """Should reject files smaller than minimum size."""
        with pytest.raises(ValidationError, match="too small"):
            validate_file_contents(b"abc", min_size=10)

    def test_accepts_valid_contents(self):
        """Should accept valid file contents."""
        validate_file_contents(b"Valid file contents here", min_size=10)


class TestValidatePdfContents:
    """Test PDF upload checks."""

    def test_accepts_pdf_header(self):
        """Should accept bytes starting with the PDF magic number."""
        validate_pdf_contents(b"%PDF-1.7\n%binary stuff here", max_size=1024)

    def test_rejects_non_pdf(self):
        """Should reject files that are not PDFs."""
        with pytest.raises(ValidationError, match="Only PDF"):
            validate_pdf_contents(b"Date,Amount\n2024-01-01,100", max_size=1024)

    def test_rejects_oversized_file(self):
        """Should reject files above the size limit."""
        with pytest.raises(ValidationError, match="too large"):
            validate_pdf_contents(b"%PDF-1.7" + b"0" * 100, max_size=50)


class TestValidateAmount:
    """Test amount validation."""

    def test_accepts_normal_amounts(self):
        """Should accept normal transaction amounts."""
        assert validate_amount(100.0) is True
        assert validate_amount(-50.25) is True
        assert validate_amount(0) is True

    def test_rejects_none_and_bool(self):
        """Should reject missing values and booleans."""
        assert validate_amount(None) is False
        assert validate_amount(True) is False

    def test_rejects_nan(self):
        """Should reject NaN values."""
        assert validate_amount(float("nan")) is False

    def test_rejects_infinity(self):
        """Should reject infinity values."""
        assert validate_amount(float("inf")) is False
        assert validate_amount(float("-inf")) is False


class TestCleanAmountString:
    """Test amount string cleaning."""

    def test_removes_rupee_markers(self):
        """Should remove rupee symbols and prefixes."""
        assert clean_amount_string("₹1,234.50") == "1234.50"
        assert clean_amount_string("Rs. 500") == "500"
        assert clean_amount_string("INR 2,000") == "2000"

    def test_removes_indian_grouping(self):
        """Should remove lakh-style thousand separators."""
        assert clean_amount_string("1,23,456.00") == "123456.00"

    def test_handles_parentheses(self):
        """Should convert parentheses to negative."""
        assert clean_amount_string("(500.00)") == "-500.00"

    def test_handles_trailing_minus(self):
        """Should handle trailing minus sign."""
        assert clean_amount_string("100.00-") == "-100.00"

    def test_empty_returns_zero(self):
        """Should return '0' for empty string."""
        assert clean_amount_string("") == "0"


class TestParseAmountSafe:
    """Test safe amount parsing."""

    def test_parses_formatted_amount(self):
        """Should parse formatted amounts."""
        amount, valid = parse_amount_safe("Rs. 1,234.56")
        assert valid is True
        assert amount == 1234.56

    def test_returns_default_for_invalid(self):
        """Should return default for invalid amounts."""
        amount, valid = parse_amount_safe("invalid")
        assert valid is False
        assert amount == 0.0


class TestIsPlaceholder:
    """Test placeholder detection."""

    def test_detects_placeholders(self):
        """Should treat empty and filler values as placeholders."""
        for value in (None, "", "   ", "XXXX", "xxxx-xxxx", "N/A", "unknown", "null"):
            assert is_placeholder(value) is True, value

    def test_real_values_are_not_placeholders(self):
        """Should keep masked numbers and names."""
        assert is_placeholder("XXXX1234") is False
        assert is_placeholder("Test Bank") is False


class TestRuleTable:
    """Test the shared acceptance rules."""

    def test_strict_transaction_rules_match_lenient(self):
        """Every transaction rule should apply to both gates."""
        strict = {r.name for r in TRANSACTION_RULES if r.applies_to(AcceptancePolicy.STRICT)}
        lenient = {r.name for r in TRANSACTION_RULES if r.applies_to(AcceptancePolicy.LENIENT)}
        assert strict == lenient == {"date", "amount", "type"}

    def test_holding_rules_split_between_policies(self):
        """Instrument type is strict-only, average price is lenient-only."""
        by_name = {rule.name: rule for rule in HOLDING_RULES}
        assert by_name["instrument_type"].policies == frozenset({AcceptancePolicy.STRICT})
        assert by_name["average_buy_price"].policies == frozenset({AcceptancePolicy.LENIENT})
        assert by_name["quantity"].applies_to(AcceptancePolicy.LENIENT)
        assert by_name["quantity"].applies_to(AcceptancePolicy.STRICT)

    def test_bank_account_warnings_do_not_fail_policy(self):
        """Warning-severity rules should not fail a strict check."""
        account = BankAccount(bank_name="Test Bank")
        failed = failed_rules(account, BANK_ACCOUNT_RULES, AcceptancePolicy.STRICT)
        assert [rule.name for rule in failed] == ["account_number"]
        assert passes_policy(account, BANK_ACCOUNT_RULES, AcceptancePolicy.STRICT) is True

    def test_lenient_drops_account_without_identity(self):
        """Should fail the lenient identity rule with no number and no bank name."""
        account = BankAccount(account_number_masked="XXXX", bank_name="")
        assert passes_policy(account, BANK_ACCOUNT_RULES, AcceptancePolicy.LENIENT) is False

    def test_wrong_case_type_fails(self):
        """Should treat transaction type case-sensitively."""
        txn = Transaction(date=date(2024, 1, 15), amount=10.0, type="Debit")
        assert passes_policy(txn, TRANSACTION_RULES, AcceptancePolicy.LENIENT) is False


class TestValidateBankAccount:
    """Test per-record bank account validation."""

    def test_accepts_sanitized_account(self):
        """Should accept a fully populated account."""
        assert validate_bank_account(BankAccount(account_number_masked="XXXX1234")) == []

    def test_requires_type_and_currency(self):
        """Should flag missing account type and currency."""
        errors = validate_bank_account(BankAccount(account_type="", currency=""))
        assert "Account type is required" in errors
        assert "Currency is required" in errors


class TestValidateTransaction:
    """Test per-record transaction validation."""

    def test_accepts_valid_transaction(self):
        """Should accept a complete transaction."""
        txn = Transaction(date=date(2024, 1, 15), amount=500.0, type="debit", category="Food")
        assert validate_transaction(txn) == []

    def test_flags_every_problem(self):
        """Should report missing date, bad amount, bad type and bad category."""
        txn = Transaction(date=None, amount=0.0, type="withdrawal", description="", category="Snacks")
        errors = validate_transaction(txn)
        assert "Transaction date is required" in errors
        assert "Valid amount is required" in errors
        assert "Type must be 'debit' or 'credit'" in errors
        assert "Description is required" in errors
        assert any(e.startswith("Category must be one of") for e in errors)

    def test_rejects_negative_amount(self):
        """Should reject amounts that still carry a sign."""
        txn = Transaction(date=date(2024, 1, 15), amount=-5.0, type="debit")
        assert "Valid amount is required" in validate_transaction(txn)


class TestValidateHolding:
    """Test per-record holding validation."""

    def test_accepts_valid_holding(self):
        """Should accept a complete holding."""
        holding = Holding(
            instrument_name="Reliance Industries",
            instrument_type="Equity",
            category="Stock",
            quantity=10,
            average_buy_price=2450.5,
            current_price=2580.75,
        )
        assert validate_holding(holding) == []

    def test_flags_invalid_type_and_category(self):
        """Should reject unknown instrument types and categories."""
        holding = Holding(
            instrument_name="Bitcoin",
            instrument_type="Crypto",
            category="Coin",
            quantity=1,
            average_buy_price=100,
            current_price=100,
        )
        errors = validate_holding(holding)
        assert "Instrument type must be 'MF', 'Equity', or 'Bond'" in errors
        assert any(e.startswith("Category must be one of") for e in errors)

    def test_flags_non_positive_numbers(self):
        """Should reject zero quantity, zero buy price and negative current price."""
        holding = Holding(
            instrument_name="Fund",
            instrument_type="MF",
            quantity=0,
            average_buy_price=0,
            current_price=-1,
        )
        errors = validate_holding(holding)
        assert "Quantity must be a positive number" in errors
        assert "Average buy price must be a positive number" in errors
        assert "Current price must be a non-negative number" in errors


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
