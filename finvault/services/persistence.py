"""Writing sanitized extractions to a user's collections."""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any, Protocol

from finvault.models import (
    BankAccount,
    Collection,
    EntityPersistenceResult,
    FinancialData,
    Holding,
    OverallPersistenceResult,
    PersistenceReport,
    Transaction,
    TransactionMetadata,
)
from finvault.parsers.validation import validate_bank_account, validate_holding, validate_transaction

logger = logging.getLogger(__name__)


class DocumentStorage(Protocol):
    """The one storage operation persistence needs."""

    def insert(self, user_id: str, collection: Collection | str, record: dict[str, Any]) -> str: ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_bank_account_document(account: BankAccount) -> dict[str, Any]:
    now = _now()
    return {**account.to_document(), "createdAt": now, "updatedAt": now}


def create_transaction_document(transaction: Transaction) -> dict[str, Any]:
    document = transaction.to_document()
    document["metadata"] = (transaction.metadata or TransactionMetadata()).to_document()
    document["createdAt"] = _now()
    return document


def create_holding_document(holding: Holding) -> dict[str, Any]:
    now = _now()
    return {**holding.with_derived_values().to_document(), "createdAt": now, "updatedAt": now}


def _persist_records(
    store: DocumentStorage,
    user_id: str,
    collection: Collection,
    records: Sequence[Any],
    validator: Callable[[Any], list[str]],
    to_document: Callable[[Any], dict[str, Any]],
) -> EntityPersistenceResult:
    """
    Write records one at a time, in order, accounting for every outcome.

    A failed record never stops the loop and never undoes earlier writes.
    """
    result = EntityPersistenceResult()

    for record in records:
        errors = validator(record)
        if errors:
            result.failed_count += 1
            result.errors.append(f"Validation failed: {', '.join(errors)}")
            continue

        try:
            doc_id = store.insert(user_id, collection, to_document(record))
        except Exception as e:
            logger.error(f"Error saving to {collection.value} for user {user_id}: {e}")
            result.failed_count += 1
            result.errors.append(str(e) or type(e).__name__)
            continue

        result.success_count += 1
        result.ids.append(doc_id)

    if records:
        logger.info(
            f"{collection.value}: saved {result.success_count}/{len(records)}"
            f"{f', {result.failed_count} failed' if result.failed_count else ''}"
        )
    return result


def persist_all(store: DocumentStorage, user_id: str, data: FinancialData) -> PersistenceReport:
    """
    Save bank accounts, then transactions, then holdings for `user_id`.

    Every record is re-validated before its write. Writes are sequential and
    not transactional: partial success is reported, never rolled back.
    """
    report = PersistenceReport(
        bank_accounts=_persist_records(
            store, user_id, Collection.BANK_ACCOUNTS, data.bank_accounts,
            validate_bank_account, create_bank_account_document,
        ),
        transactions=_persist_records(
            store, user_id, Collection.TRANSACTIONS, data.transactions,
            validate_transaction, create_transaction_document,
        ),
        holdings=_persist_records(
            store, user_id, Collection.HOLDINGS, data.holdings,
            validate_holding, create_holding_document,
        ),
    )

    entities = (report.bank_accounts, report.transactions, report.holdings)
    total_saved = sum(entity.success_count for entity in entities)
    total_failed = sum(entity.failed_count for entity in entities)
    report.overall = OverallPersistenceResult(
        total_saved=total_saved,
        total_failed=total_failed,
        success=total_failed == 0,
    )
    return report
