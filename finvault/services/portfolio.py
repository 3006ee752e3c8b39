"""Read-side queries over a user's stored financial data."""

from datetime import date
from typing import Any, Protocol

from finvault.db.document_store import Filter
from finvault.models import Collection

RECENT_TRANSACTIONS = 5


class DocumentReader(Protocol):
    def list_all(
        self,
        user_id: str,
        collection: Collection | str,
        filters: list[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...


def get_bank_accounts(store: DocumentReader, user_id: str) -> list[dict[str, Any]]:
    """All bank accounts of a user, in insertion order."""
    return store.list_all(user_id, Collection.BANK_ACCOUNTS)


def get_transactions(
    store: DocumentReader,
    user_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
    txn_type: str | None = None,
    category: str | None = None,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """A user's transactions, newest first, with optional filters."""
    filters: list[Filter] = []
    if start_date:
        filters.append(("date", ">=", start_date.isoformat()))
    if end_date:
        filters.append(("date", "<=", end_date.isoformat()))
    if txn_type:
        filters.append(("type", "==", txn_type))
    if category:
        filters.append(("category", "==", category))

    return store.list_all(
        user_id, Collection.TRANSACTIONS, filters=filters, order_by="date", descending=True, limit=limit
    )


def get_holdings(store: DocumentReader, user_id: str, category: str | None = None) -> list[dict[str, Any]]:
    """A user's holdings, optionally restricted to one category (e.g. "SIP")."""
    filters: list[Filter] = [("category", "==", category)] if category else []
    return store.list_all(user_id, Collection.HOLDINGS, filters=filters)


def get_financial_summary(store: DocumentReader, user_id: str) -> dict[str, Any]:
    """Counts, recent activity and portfolio totals for the dashboard."""
    bank_accounts = get_bank_accounts(store, user_id)
    transactions = get_transactions(store, user_id)
    holdings = get_holdings(store, user_id)

    invested = sum(float(h.get("investedValue") or 0) for h in holdings)
    current = sum(float(h.get("currentValue") or 0) for h in holdings)
    profit_loss = current - invested

    return {
        "bankAccountsCount": len(bank_accounts),
        "transactionsCount": len(transactions),
        "holdingsCount": len(holdings),
        "recentTransactions": transactions[:RECENT_TRANSACTIONS],
        "totalBalance": round(sum(float(a.get("currentBalance") or 0) for a in bank_accounts), 2),
        "portfolio": {
            "investedValue": round(invested, 2),
            "currentValue": round(current, 2),
            "profitLoss": round(profit_loss, 2),
            "profitLossPercentage": round(profit_loss / invested * 100, 2) if invested else 0.0,
        },
    }
