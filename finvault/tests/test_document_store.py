"""Tests for the SQLite document store."""

import pytest

from finvault.db.document_store import DocumentStore, StorageError
from finvault.models import Collection


@pytest.fixture
def store(tmp_path):
    return DocumentStore(db_path=tmp_path / "test.db")


def _seed_transactions(store, user_id="user-1"):
    for day, amount, txn_type in [("2024-01-10", 100, "debit"), ("2024-01-20", 5000, "credit"), ("2024-01-15", 250, "debit")]:
        store.insert(user_id, Collection.TRANSACTIONS, {"date": day, "amount": amount, "type": txn_type})


class TestInsert:
    """Test document insertion."""

    def test_returns_unique_ids(self, store):
        first = store.insert("user-1", Collection.BANK_ACCOUNTS, {"bankName": "A"})
        second = store.insert("user-1", Collection.BANK_ACCOUNTS, {"bankName": "B"})
        assert first != second
        assert store.count("user-1", Collection.BANK_ACCOUNTS) == 2

    def test_accepts_collection_name_string(self, store):
        store.insert("user-1", "holdings", {"instrumentName": "Fund"})
        assert store.count("user-1", Collection.HOLDINGS) == 1

    def test_requires_user(self, store):
        with pytest.raises(StorageError, match="user id"):
            store.insert("", Collection.TRANSACTIONS, {"amount": 1})

    def test_rejects_unknown_collection(self, store):
        with pytest.raises(ValueError):
            store.insert("user-1", "receipts", {"amount": 1})


class TestListAll:
    """Test document queries."""

    def test_returns_documents_with_ids_in_insertion_order(self, store):
        ids = [store.insert("user-1", Collection.BANK_ACCOUNTS, {"bankName": name}) for name in ("A", "B", "C")]
        docs = store.list_all("user-1", Collection.BANK_ACCOUNTS)
        assert [doc["id"] for doc in docs] == ids
        assert [doc["bankName"] for doc in docs] == ["A", "B", "C"]

    def test_isolates_users(self, store):
        _seed_transactions(store, "user-1")
        store.insert("user-2", Collection.TRANSACTIONS, {"date": "2024-01-01", "amount": 1, "type": "debit"})
        assert len(store.list_all("user-1", Collection.TRANSACTIONS)) == 3
        assert len(store.list_all("user-2", Collection.TRANSACTIONS)) == 1
        assert store.list_all("user-3", Collection.TRANSACTIONS) == []

    def test_filters_by_equality_and_range(self, store):
        _seed_transactions(store)
        debits = store.list_all("user-1", Collection.TRANSACTIONS, filters=[("type", "==", "debit")])
        assert [doc["amount"] for doc in debits] == [100, 250]

        later = store.list_all(
            "user-1",
            Collection.TRANSACTIONS,
            filters=[("date", ">=", "2024-01-12"), ("date", "<=", "2024-01-31")],
        )
        assert sorted(doc["date"] for doc in later) == ["2024-01-15", "2024-01-20"]

    def test_orders_and_limits(self, store):
        _seed_transactions(store)
        docs = store.list_all("user-1", Collection.TRANSACTIONS, order_by="date", descending=True, limit=2)
        assert [doc["date"] for doc in docs] == ["2024-01-20", "2024-01-15"]

    def test_filters_nested_fields(self, store):
        store.insert("user-1", Collection.TRANSACTIONS, {"amount": 1, "metadata": {"mode": "UPI"}})
        store.insert("user-1", Collection.TRANSACTIONS, {"amount": 2, "metadata": {"mode": "Card"}})
        docs = store.list_all("user-1", Collection.TRANSACTIONS, filters=[("metadata.mode", "==", "UPI")])
        assert [doc["amount"] for doc in docs] == [1]

    def test_rejects_unknown_operator(self, store):
        with pytest.raises(StorageError, match="operator"):
            store.list_all("user-1", Collection.TRANSACTIONS, filters=[("amount", "LIKE", "%")])

    def test_rejects_injected_field_name(self, store):
        with pytest.raises(StorageError, match="Invalid field name"):
            store.list_all("user-1", Collection.TRANSACTIONS, order_by="date; DROP TABLE documents")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
