"""Data models for FinVault."""

from datetime import date as date_type
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AccountType(str, Enum):
    """Bank account kinds shown on the dashboard."""

    SAVINGS = "Savings"
    CURRENT = "Current"
    CREDIT = "Credit"


class TransactionType(str, Enum):
    """Direction of money movement. Matched case-sensitively."""

    DEBIT = "debit"
    CREDIT = "credit"


class TransactionCategory(str, Enum):
    """Closed set of transaction categories."""

    FOOD = "Food"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    BILLS = "Bills"
    HEALTHCARE = "Healthcare"
    INVESTMENT = "Investment"
    SALARY = "Salary"
    OTHER = "Other"


class InstrumentType(str, Enum):
    """Instrument families a holding can belong to."""

    MF = "MF"
    EQUITY = "Equity"
    BOND = "Bond"


class HoldingCategory(str, Enum):
    """Display category of a holding."""

    STOCK = "Stock"
    MUTUAL_FUND = "Mutual Fund"
    SIP = "SIP"
    ETF = "ETF"
    INDEX_FUND = "Index Fund"
    DEBT_FUND = "Debt Fund"
    EQUITY = "Equity"
    BOND = "Bond"


class Collection(str, Enum):
    """Per-user collections in the document store."""

    BANK_ACCOUNTS = "bankAccounts"
    TRANSACTIONS = "transactions"
    HOLDINGS = "holdings"
    GOALS = "goals"
    CHAT_HISTORY = "chatHistory"


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys (the stored document shape)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """Dump as a JSON-compatible camelCase dict."""
        return self.model_dump(by_alias=True, mode="json")


class BankAccount(CamelModel):
    """A bank account extracted from a statement."""

    account_type: str = AccountType.SAVINGS.value
    account_number_masked: str = "XXXX"
    ifsc: str = ""
    current_balance: float = 0.0
    currency: str = "INR"
    bank_name: str = ""


class TransactionMetadata(CamelModel):
    """Free-form transaction details."""

    mode: str = ""  # UPI, Card, Net Banking, Cash
    reference: str = ""
    merchant: str = ""


class Transaction(CamelModel):
    """A single statement line. The sign lives in `type`, never in `amount`."""

    date: date_type | None = None
    amount: float | None = None
    type: str | None = None
    description: str = "Transaction"
    category: str = TransactionCategory.OTHER.value
    balance: float | None = None
    metadata: TransactionMetadata | None = None


class Holding(CamelModel):
    """An investment position (stock, mutual fund, SIP, bond)."""

    instrument_name: str = ""
    instrument_type: str | None = None
    category: str | None = None
    quantity: float = 0.0
    average_buy_price: float = 0.0
    current_price: float = 0.0
    currency: str = "INR"
    symbol: str = ""
    isin: str = ""
    purchase_date: date_type | None = None

    # Derived, never taken from the model output
    invested_value: float = 0.0
    current_value: float = 0.0
    profit_loss: float = 0.0
    profit_loss_percentage: float = 0.0

    def with_derived_values(self) -> "Holding":
        """Return a copy with invested/current value and P&L recomputed."""
        invested_value = self.quantity * self.average_buy_price
        current_value = self.quantity * self.current_price
        profit_loss = current_value - invested_value
        percentage = round(profit_loss / invested_value * 100, 2) if invested_value else 0.0
        return self.model_copy(
            update={
                "invested_value": invested_value,
                "current_value": current_value,
                "profit_loss": profit_loss,
                "profit_loss_percentage": percentage,
            }
        )


class FinancialData(CamelModel):
    """The three record arrays produced from one document."""

    bank_accounts: list[BankAccount] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    holdings: list[Holding] = Field(default_factory=list)

    @property
    def total_records(self) -> int:
        return len(self.bank_accounts) + len(self.transactions) + len(self.holdings)

    def counts(self) -> dict[str, int]:
        return {
            "bankAccounts": len(self.bank_accounts),
            "transactions": len(self.transactions),
            "holdings": len(self.holdings),
        }

    def to_raw(self) -> dict[str, Any]:
        """Dump back into the shape the LLM is asked to produce."""
        return self.to_document()


class ExtractionErrorKind(str, Enum):
    """Why an extraction attempt failed."""

    MODEL_CALL_FAILED = "MODEL_CALL_FAILED"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"


class ExtractionError(CamelModel):
    """Failure details for an extraction attempt."""

    message: str
    kind: ExtractionErrorKind
    details: str = (
        "Failed to extract financial data from the document. "
        "Please ensure the document is a valid bank statement or financial document."
    )


class ExtractionMetadata(CamelModel):
    """Counts and timing for a successful extraction."""

    bank_accounts_count: int = 0
    transactions_count: int = 0
    holdings_count: int = 0
    raw_counts: dict[str, int] = Field(default_factory=dict)
    extracted_at: str = ""
    attempts: int = 1


class ExtractionOutcome(CamelModel):
    """Result of asking the LLM for structured data."""

    success: bool
    data: FinancialData | None = None
    error: ExtractionError | None = None
    metadata: ExtractionMetadata | None = None


class ExtractionValidation(CamelModel):
    """Batch-level quality verdict on sanitized data."""

    is_valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class EntityPersistenceResult(CamelModel):
    """Write accounting for one record type."""

    success_count: int = 0
    failed_count: int = 0
    errors: list[str] = Field(default_factory=list)
    ids: list[str] = Field(default_factory=list)


class OverallPersistenceResult(CamelModel):
    """Totals across all record types."""

    total_saved: int = 0
    total_failed: int = 0
    success: bool = True


class PersistenceReport(CamelModel):
    """Aggregate report returned after writing an extraction."""

    bank_accounts: EntityPersistenceResult = Field(default_factory=EntityPersistenceResult)
    transactions: EntityPersistenceResult = Field(default_factory=EntityPersistenceResult)
    holdings: EntityPersistenceResult = Field(default_factory=EntityPersistenceResult)
    overall: OverallPersistenceResult = Field(default_factory=OverallPersistenceResult)


IngestStage = Literal["ai_extraction", "validation", "processing"]


class IngestResult(CamelModel):
    """Outcome of running one uploaded document through the pipeline."""

    success: bool
    extraction: ExtractionMetadata | None = None
    validation: ExtractionValidation | None = None
    persistence: PersistenceReport | None = None
    data: FinancialData | None = None
    error: str | None = None
    error_details: list[str] = Field(default_factory=list)
    stage: IngestStage | None = None
