"""Shared validation utilities for extracted financial records.

The same rule table drives two gates:

* the sanitizer applies the LENIENT rules and silently drops failing records;
* the quality validator applies the STRICT rules and rejects the whole batch.
"""

import logging
import math
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from finvault.models import (
    BankAccount,
    Holding,
    HoldingCategory,
    InstrumentType,
    Transaction,
    TransactionCategory,
    TransactionType,
)

# Configure logging for parsers
logger = logging.getLogger("finvault.parsers")

TRANSACTION_TYPES = frozenset(t.value for t in TransactionType)
TRANSACTION_CATEGORIES = frozenset(c.value for c in TransactionCategory)
INSTRUMENT_TYPES = frozenset(t.value for t in InstrumentType)
HOLDING_CATEGORIES = frozenset(c.value for c in HoldingCategory)

PLACEHOLDER_VALUES = frozenset({"", "n/a", "na", "null", "none", "unknown", "-"})

PDF_MAGIC = b"%PDF-"


class ValidationError(Exception):
    """Raised when an uploaded file fails basic checks."""

    pass


def validate_file_contents(contents: bytes, min_size: int = 10) -> None:
    """
    Validate file contents before parsing.

    Args:
        contents: Raw file bytes
        min_size: Minimum expected file size in bytes

    Raises:
        ValidationError: If validation fails
    """
    if not contents:
        raise ValidationError("File is empty")

    if len(contents) < min_size:
        raise ValidationError(f"File too small ({len(contents)} bytes), minimum {min_size} bytes expected")


def validate_pdf_contents(contents: bytes, max_size: int) -> None:
    """
    Validate an uploaded PDF before text extraction.

    Raises:
        ValidationError: If the file is empty, too large, or not a PDF
    """
    validate_file_contents(contents)

    if len(contents) > max_size:
        raise ValidationError(f"File too large ({len(contents)} bytes), maximum {max_size} bytes allowed")

    if contents.lstrip()[:5] != PDF_MAGIC:
        raise ValidationError("Only PDF files are allowed")


def validate_amount(amount: float | None, min_val: float = -1e12, max_val: float = 1e12) -> bool:
    """
    Validate that an amount is a finite number within reasonable bounds.

    Args:
        amount: The amount to validate
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        True if valid, False otherwise
    """
    if amount is None or isinstance(amount, bool):
        return False

    if not isinstance(amount, (int, float)):
        return False

    # Check for NaN or infinity
    if math.isnan(amount) or math.isinf(amount):
        return False

    return min_val <= amount <= max_val


def clean_amount_string(amount_str: str) -> str:
    """
    Clean an amount string for parsing.

    Args:
        amount_str: Raw amount string, e.g. "Rs. 1,23,456.00" or "(500.00)"

    Returns:
        Cleaned amount string ready for float conversion
    """
    if not amount_str:
        return "0"

    cleaned = amount_str.strip()

    # Remove currency markers
    cleaned = re.sub(r"(?i)^(inr|rs\.?)", "", cleaned)
    cleaned = re.sub(r"(?i)(inr)$", "", cleaned)
    cleaned = cleaned.replace("₹", "").replace("$", "").replace(" ", "")

    # Remove thousand separators (both 1,234,567 and 12,34,567 styles)
    cleaned = cleaned.replace(",", "")

    # Handle parentheses for negative numbers
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = "-" + cleaned[1:-1]

    # Handle trailing minus sign
    if cleaned.endswith("-"):
        cleaned = "-" + cleaned[:-1]

    return cleaned


def parse_amount_safe(amount_str: str, default: float = 0.0) -> tuple[float, bool]:
    """
    Safely parse an amount string.

    Args:
        amount_str: Raw amount string
        default: Default value if parsing fails

    Returns:
        Tuple of (parsed amount, success flag)
    """
    try:
        cleaned = clean_amount_string(amount_str)
        if not cleaned or cleaned == "-":
            return default, False

        amount = float(cleaned)

        if not validate_amount(amount):
            return default, False

        return amount, True
    except (ValueError, TypeError):
        return default, False


def is_placeholder(value: Any) -> bool:
    """True for empty values and the fillers LLMs use for unknown fields."""
    if value is None:
        return True
    text = str(value).strip()
    if text.lower() in PLACEHOLDER_VALUES:
        return True
    # "XXXX", "XXXX-XXXX" with no digits at all
    return bool(re.fullmatch(r"[Xx*\-\s]+", text))


# ==================== ACCEPTANCE RULES ====================


class AcceptancePolicy(str, Enum):
    """How a rule failure is treated."""

    LENIENT = "lenient"  # sanitizer: drop the record, report nothing
    STRICT = "strict"  # quality validator: report, fail the batch on errors


BOTH_POLICIES = frozenset({AcceptancePolicy.LENIENT, AcceptancePolicy.STRICT})


@dataclass(frozen=True)
class RecordRule:
    """A named predicate over a sanitized record."""

    name: str
    check: Callable[[Any], bool]
    message: str
    policies: frozenset[AcceptancePolicy]
    severity: Literal["error", "warning"] = "error"

    def applies_to(self, policy: AcceptancePolicy) -> bool:
        return policy in self.policies


def _has_account_identity(account: BankAccount) -> bool:
    return not is_placeholder(account.account_number_masked) or not is_placeholder(account.bank_name)


BANK_ACCOUNT_RULES: tuple[RecordRule, ...] = (
    RecordRule(
        "identity",
        _has_account_identity,
        "Missing account number and bank name",
        frozenset({AcceptancePolicy.LENIENT}),
    ),
    RecordRule(
        "account_number",
        lambda a: not is_placeholder(a.account_number_masked),
        "Missing account number",
        frozenset({AcceptancePolicy.STRICT}),
        severity="warning",
    ),
    RecordRule(
        "bank_name",
        lambda a: not is_placeholder(a.bank_name),
        "Missing bank name",
        frozenset({AcceptancePolicy.STRICT}),
        severity="warning",
    ),
)

TRANSACTION_RULES: tuple[RecordRule, ...] = (
    RecordRule("date", lambda t: t.date is not None, "Missing date", BOTH_POLICIES),
    RecordRule(
        "amount",
        lambda t: validate_amount(t.amount) and t.amount != 0,
        "Invalid amount",
        BOTH_POLICIES,
    ),
    RecordRule(
        "type",
        lambda t: t.type in TRANSACTION_TYPES,
        "Invalid type (must be debit or credit)",
        BOTH_POLICIES,
    ),
)

HOLDING_RULES: tuple[RecordRule, ...] = (
    RecordRule(
        "instrument_name",
        lambda h: bool(h.instrument_name and h.instrument_name.strip()),
        "Missing instrument name",
        BOTH_POLICIES,
    ),
    RecordRule(
        "instrument_type",
        lambda h: h.instrument_type in INSTRUMENT_TYPES,
        "Invalid instrument type",
        frozenset({AcceptancePolicy.STRICT}),
    ),
    RecordRule("quantity", lambda h: h.quantity > 0, "Invalid quantity", BOTH_POLICIES),
    RecordRule(
        "average_buy_price",
        lambda h: h.average_buy_price > 0,
        "Invalid average buy price",
        frozenset({AcceptancePolicy.LENIENT}),
    ),
)


def failed_rules(record: Any, rules: Iterable[RecordRule], policy: AcceptancePolicy) -> list[RecordRule]:
    """Return the rules of `policy` that `record` does not satisfy, in table order."""
    return [rule for rule in rules if rule.applies_to(policy) and not rule.check(record)]


def passes_policy(record: Any, rules: Iterable[RecordRule], policy: AcceptancePolicy) -> bool:
    """True when no error-severity rule of `policy` fails for `record`."""
    return not any(rule.severity == "error" for rule in failed_rules(record, rules, policy))


# ==================== PER-RECORD SCHEMA VALIDATORS ====================


def validate_bank_account(account: BankAccount) -> list[str]:
    """Validate a bank account before it is written. Returns error messages."""
    errors = []

    if not account.account_type:
        errors.append("Account type is required")
    if not account.account_number_masked:
        errors.append("Account number is required")
    if not validate_amount(account.current_balance):
        errors.append("Current balance must be a number")
    if not account.currency:
        errors.append("Currency is required")

    return errors


def validate_transaction(transaction: Transaction) -> list[str]:
    """Validate a transaction before it is written. Returns error messages."""
    errors = []

    if transaction.date is None:
        errors.append("Transaction date is required")
    if not validate_amount(transaction.amount) or transaction.amount <= 0:
        errors.append("Valid amount is required")
    if transaction.type not in TRANSACTION_TYPES:
        errors.append("Type must be 'debit' or 'credit'")
    if not transaction.description:
        errors.append("Description is required")
    if not transaction.category:
        errors.append("Category is required")
    elif transaction.category not in TRANSACTION_CATEGORIES:
        errors.append(f"Category must be one of: {', '.join(c.value for c in TransactionCategory)}")

    return errors


def validate_holding(holding: Holding) -> list[str]:
    """Validate a holding before it is written. Returns error messages."""
    errors = []

    if not holding.instrument_name:
        errors.append("Instrument name is required")
    if holding.instrument_type not in INSTRUMENT_TYPES:
        errors.append("Instrument type must be 'MF', 'Equity', or 'Bond'")
    if holding.category and holding.category not in HOLDING_CATEGORIES:
        errors.append(f"Category must be one of: {', '.join(c.value for c in HoldingCategory)}")
    if not validate_amount(holding.quantity) or holding.quantity <= 0:
        errors.append("Quantity must be a positive number")
    if not validate_amount(holding.average_buy_price) or holding.average_buy_price <= 0:
        errors.append("Average buy price must be a positive number")
    if not validate_amount(holding.current_price) or holding.current_price < 0:
        errors.append("Current price must be a non-negative number")

    return errors
