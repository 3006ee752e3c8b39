"""Normalization of untrusted LLM output into FinancialData.

Every field of every record is treated as optional and of unknown type.
Values are coerced with the explicit helpers below, defaults are applied, and
records failing the LENIENT rules are dropped without being reported.

`sanitize` is a fixed point: `sanitize(sanitize(raw).to_raw()) == sanitize(raw)`.
"""

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any

from finvault.models import (
    AccountType,
    BankAccount,
    FinancialData,
    Holding,
    HoldingCategory,
    InstrumentType,
    Transaction,
    TransactionCategory,
    TransactionMetadata,
)
from finvault.parsers.llm_client import MalformedResponseError
from finvault.parsers.validation import (
    BANK_ACCOUNT_RULES,
    HOLDING_RULES,
    TRANSACTION_RULES,
    AcceptancePolicy,
    is_placeholder,
    parse_amount_safe,
    passes_policy,
    validate_amount,
)

logger = logging.getLogger(__name__)

EXTRACTION_KEYS = ("bankAccounts", "transactions", "holdings")

# "XXXX1234", "****1234", "XXXX"
MASKED_ACCOUNT_NUMBER = re.compile(r"[Xx*]+\d{0,4}")

DATE_FORMATS = ("%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y", "%d %b %Y", "%d-%b-%Y", "%d %B %Y", "%Y/%m/%d")

ACCOUNT_TYPE_ALIASES = {
    "savings account": AccountType.SAVINGS.value,
    "current account": AccountType.CURRENT.value,
    "credit card": AccountType.CREDIT.value,
}

INSTRUMENT_TYPE_ALIASES = {
    "mutual fund": InstrumentType.MF.value,
    "stock": InstrumentType.EQUITY.value,
}


def normalize_shape(payload: Any) -> dict[str, list[Any]]:
    """
    Coerce the top-level payload into the three record arrays.

    A missing or non-list key becomes an empty array.

    Raises:
        MalformedResponseError: If the payload is not a JSON object
    """
    if not isinstance(payload, Mapping):
        raise MalformedResponseError(
            f"Expected a JSON object with bankAccounts/transactions/holdings, got {type(payload).__name__}"
        )
    return {key: payload[key] if isinstance(payload.get(key), list) else [] for key in EXTRACTION_KEYS}


# ==================== COERCION HELPERS ====================


def parse_number_or(value: Any, default: float | None) -> float | None:
    """Parse ints, floats and amount strings ("Rs. 1,200.50"); anything else gives `default`."""
    if isinstance(value, bool):
        return default

    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            # Integers beyond float range
            return default
    elif isinstance(value, str):
        number, ok = parse_amount_safe(value)
        if not ok:
            return default
    else:
        return default

    return number if validate_amount(number) else default


def parse_text(value: Any, default: str = "") -> str:
    """Return a stripped string for scalar values, `default` for empty or structured ones."""
    if value is None or isinstance(value, (bool, Mapping, list)):
        return default
    try:
        text = str(value).strip()
    except ValueError:
        # int too long to render as a string
        return default
    return text or default


def parse_enum_or(
    value: Any,
    enum_cls: type[Enum],
    default: str | None,
    aliases: Mapping[str, str] | None = None,
) -> str | None:
    """Map `value` case-insensitively onto an enum member's value, else `default`."""
    if not isinstance(value, str):
        return default

    key = value.strip().lower()
    for member in enum_cls:
        if member.value.lower() == key:
            return member.value
    if aliases and key in aliases:
        return aliases[key]
    return default


def parse_date_or_none(value: Any) -> date | None:
    """Parse ISO dates (with or without a time part) and common Indian statement formats."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if re.match(r"^\d{4}-\d{2}-\d{2}", text):
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def mask_account_number(value: Any) -> str:
    """
    Mask an account number down to its last four digits.

    Already-masked values ("XXXX1234", "****1234") are returned unchanged.
    """
    text = parse_text(value)
    if not text or MASKED_ACCOUNT_NUMBER.fullmatch(text):
        return text

    digits = re.sub(r"\D", "", text)
    if len(digits) < 4:
        return text
    return f"XXXX{digits[-4:]}"


def normalize_transaction_category(category: Any) -> str:
    """Map a category onto the closed set; unknown values become "Other"."""
    return parse_enum_or(category, TransactionCategory, TransactionCategory.OTHER.value)


def infer_holding_category(
    instrument_name: str, instrument_type: str | None, category: str | None
) -> tuple[str, str | None]:
    """
    Fill in a missing holding category, and a missing instrument type.

    Order matters:
      Equity -> Stock; MF named like a SIP -> SIP; MF -> Mutual Fund;
      anything else -> Mutual Fund, with the instrument type forced to MF.

    Returns:
        (category, instrument_type)
    """
    if not category:
        if instrument_type == InstrumentType.EQUITY.value:
            category = HoldingCategory.STOCK.value
        elif instrument_type == InstrumentType.MF.value:
            if "sip" in instrument_name.lower():
                category = HoldingCategory.SIP.value
            else:
                category = HoldingCategory.MUTUAL_FUND.value
        else:
            category = HoldingCategory.MUTUAL_FUND.value
            instrument_type = InstrumentType.MF.value

    if not instrument_type:
        if category == HoldingCategory.STOCK.value:
            instrument_type = InstrumentType.EQUITY.value
        else:
            instrument_type = InstrumentType.MF.value

    return category, instrument_type


# ==================== PER-ENTITY SANITIZERS ====================


def _sanitize_bank_account(raw: Mapping[str, Any]) -> BankAccount:
    masked = mask_account_number(raw.get("accountNumberMasked"))
    if is_placeholder(masked):
        masked = mask_account_number(raw.get("accountNumber"))

    return BankAccount(
        account_type=parse_enum_or(
            raw.get("accountType"), AccountType, AccountType.SAVINGS.value, ACCOUNT_TYPE_ALIASES
        ),
        account_number_masked="XXXX" if is_placeholder(masked) else masked,
        ifsc=parse_text(raw.get("ifsc")),
        current_balance=parse_number_or(raw.get("currentBalance"), 0.0),
        currency=parse_text(raw.get("currency"), "INR"),
        bank_name=parse_text(raw.get("bankName")),
    )


def _sanitize_metadata(raw: Mapping[str, Any]) -> TransactionMetadata | None:
    source = raw.get("metadata")
    if not isinstance(source, Mapping):
        source = {}

    metadata = TransactionMetadata(
        mode=parse_text(source.get("mode", raw.get("mode"))),
        reference=parse_text(source.get("reference", raw.get("reference"))),
        merchant=parse_text(source.get("merchant", raw.get("merchant"))),
    )
    if not (metadata.mode or metadata.reference or metadata.merchant):
        return None
    return metadata


def _sanitize_transaction(raw: Mapping[str, Any]) -> Transaction:
    amount = parse_number_or(raw.get("amount"), None)
    txn_type = raw.get("type")

    return Transaction(
        date=parse_date_or_none(raw.get("date")),
        amount=abs(amount) if amount is not None else None,
        # Case-sensitive: "Debit" is not coerced and gets dropped
        type=txn_type if isinstance(txn_type, str) else None,
        description=parse_text(raw.get("description"), "Transaction"),
        category=normalize_transaction_category(raw.get("category")),
        balance=parse_number_or(raw.get("balance"), None),
        metadata=_sanitize_metadata(raw),
    )


def _sanitize_holding(raw: Mapping[str, Any]) -> Holding:
    instrument_name = parse_text(raw.get("instrumentName"))

    raw_type = parse_text(raw.get("instrumentType")) or None
    instrument_type = parse_enum_or(raw_type, InstrumentType, raw_type, INSTRUMENT_TYPE_ALIASES)

    raw_category = parse_text(raw.get("category")) or None
    category = parse_enum_or(raw_category, HoldingCategory, raw_category)

    category, instrument_type = infer_holding_category(instrument_name, instrument_type, category)

    average_buy_price = parse_number_or(raw.get("averageBuyPrice"), 0.0)
    current_price = parse_number_or(raw.get("currentPrice"), 0.0)
    if current_price <= 0:
        current_price = average_buy_price

    return Holding(
        instrument_name=instrument_name,
        instrument_type=instrument_type,
        category=category,
        quantity=parse_number_or(raw.get("quantity"), 0.0),
        average_buy_price=average_buy_price,
        current_price=current_price,
        currency=parse_text(raw.get("currency"), "INR"),
        symbol=parse_text(raw.get("symbol")),
        isin=parse_text(raw.get("isin")),
        purchase_date=parse_date_or_none(raw.get("purchaseDate")),
    )


def sanitize(raw: Mapping[str, Any]) -> FinancialData:
    """
    Turn a raw extraction payload into FinancialData.

    Every returned record satisfies its minimal required-field contract, but
    may still be flagged by the quality validator or the per-record schema
    validators.
    """
    shape = normalize_shape(raw)

    bank_accounts = [
        account
        for account in (_sanitize_bank_account(item) for item in shape["bankAccounts"] if isinstance(item, Mapping))
        if passes_policy(account, BANK_ACCOUNT_RULES, AcceptancePolicy.LENIENT)
    ]

    transactions = [
        txn
        for txn in (_sanitize_transaction(item) for item in shape["transactions"] if isinstance(item, Mapping))
        if passes_policy(txn, TRANSACTION_RULES, AcceptancePolicy.LENIENT)
    ]

    holdings = [
        holding.with_derived_values()
        for holding in (_sanitize_holding(item) for item in shape["holdings"] if isinstance(item, Mapping))
        if passes_policy(holding, HOLDING_RULES, AcceptancePolicy.LENIENT)
    ]

    dropped = {
        "bankAccounts": len(shape["bankAccounts"]) - len(bank_accounts),
        "transactions": len(shape["transactions"]) - len(transactions),
        "holdings": len(shape["holdings"]) - len(holdings),
    }
    if any(dropped.values()):
        logger.info(f"Sanitizer dropped unusable records: {dropped}")

    return FinancialData(bank_accounts=bank_accounts, transactions=transactions, holdings=holdings)
