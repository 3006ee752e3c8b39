"""Batch-level quality gate for sanitized extractions.

One bad transaction or holding rejects the whole document. Bank-account gaps
only produce warnings.
"""

import logging
from collections.abc import Sequence
from typing import Any

from finvault.models import ExtractionValidation, FinancialData
from finvault.parsers.validation import (
    BANK_ACCOUNT_RULES,
    HOLDING_RULES,
    TRANSACTION_RULES,
    AcceptancePolicy,
    RecordRule,
    failed_rules,
)

logger = logging.getLogger("finvault.parsers")

NO_DATA_ERROR = "No financial data could be extracted from the document"


def _check_records(
    label: str,
    records: Sequence[Any],
    rules: Sequence[RecordRule],
    validation: ExtractionValidation,
) -> None:
    for index, record in enumerate(records, start=1):
        for rule in failed_rules(record, rules, AcceptancePolicy.STRICT):
            message = f"{label} {index}: {rule.message}"
            if rule.severity == "warning":
                validation.warnings.append(message)
            else:
                validation.errors.append(message)
                validation.is_valid = False


def validate_extraction(data: FinancialData) -> ExtractionValidation:
    """
    Run the STRICT rules over every sanitized record.

    Returns:
        ExtractionValidation with itemized errors (which invalidate the batch)
        and warnings (which do not)
    """
    validation = ExtractionValidation()

    if data.total_records == 0:
        validation.is_valid = False
        validation.errors.append(NO_DATA_ERROR)

    _check_records("Bank account", data.bank_accounts, BANK_ACCOUNT_RULES, validation)
    _check_records("Transaction", data.transactions, TRANSACTION_RULES, validation)
    _check_records("Holding", data.holdings, HOLDING_RULES, validation)

    log_validation_result(validation)
    return validation


def log_validation_result(validation: ExtractionValidation) -> None:
    """Log the verdict, with the first few errors and warnings."""
    logger.info(
        f"Extraction quality: {'valid' if validation.is_valid else 'INVALID'} "
        f"({len(validation.errors)} errors, {len(validation.warnings)} warnings)"
    )

    for error in validation.errors[:5]:  # Log first 5 errors
        logger.warning(error)

    for warning in validation.warnings[:5]:  # Log first 5 warnings
        logger.debug(warning)
