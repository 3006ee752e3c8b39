"""Prompt construction for structured financial data extraction."""

from finvault.models import (
    AccountType,
    HoldingCategory,
    InstrumentType,
    TransactionCategory,
    TransactionType,
)


def _choices(enum_cls) -> str:
    return " | ".join(f'"{member.value}"' for member in enum_cls)


def _listing(enum_cls) -> str:
    return ", ".join(member.value for member in enum_cls)


def build_extraction_prompt(document_text: str) -> str:
    """
    Render the extraction instruction for one document.

    Pure and deterministic: the same text always yields the same prompt.
    Enumerations are generated from the model enums so the prompt and the
    validators cannot disagree.
    """
    return f"""You are a financial data extraction expert. Analyze the following bank statement or financial document text and extract structured data.

CRITICAL: Return data in the EXACT structure shown below.

REQUIRED JSON STRUCTURE:
{{
  "bankAccounts": [
    {{
      "accountType": {_choices(AccountType)},
      "accountNumberMasked": "XXXX1234",
      "ifsc": "BANK0001234",
      "currentBalance": 50000,
      "currency": "INR",
      "bankName": "State Bank of India"
    }}
  ],
  "transactions": [
    {{
      "date": "2024-01-15",
      "amount": 5000,
      "type": {_choices(TransactionType)},
      "description": "Grocery Shopping at BigBazaar",
      "category": {_choices(TransactionCategory)},
      "metadata": {{"mode": "UPI", "reference": "412345678901", "merchant": "BigBazaar"}}
    }}
  ],
  "holdings": [
    {{
      "instrumentName": "Reliance Industries",
      "instrumentType": {_choices(InstrumentType)},
      "category": {_choices(HoldingCategory)},
      "quantity": 10,
      "averageBuyPrice": 2450.50,
      "currentPrice": 2580.75,
      "currency": "INR",
      "symbol": "RELIANCE",
      "isin": "INE002A01018"
    }}
  ]
}}

EXTRACTION RULES:
1. TRANSACTIONS:
   - date: YYYY-MM-DD format (ISO-8601)
   - amount: Must be a positive number (absolute value); the direction goes in "type"
   - type: ONLY "debit" (money out) or "credit" (money in), lowercase
   - description: Clear transaction description
   - category: Choose from: {_listing(TransactionCategory)}
   - Intelligently categorize based on merchant/description (e.g., Swiggy→Food, Uber→Transport, Amazon→Shopping, salary credit→Salary, SIP debit→Investment, electricity/phone→Bills)
   - metadata: Include payment mode, reference number and merchant when the statement shows them

2. HOLDINGS (Stocks/Mutual Funds/SIPs/Bonds):
   - instrumentName: Full name (e.g., "Reliance Industries", "HDFC Top 100 Fund")
   - instrumentType: "Equity" for stocks, "MF" for mutual funds/SIPs, "Bond" for bonds
   - category: Choose from: {_listing(HoldingCategory)}
   - quantity: Number of shares/units
   - averageBuyPrice: Average purchase price per unit (MUST be positive number)
   - currentPrice: Current market price (if not available use averageBuyPrice)
   - currency: Default "INR"

3. BANK ACCOUNTS:
   - accountType: Choose from: {_listing(AccountType)}
   - accountNumberMasked: Last 4 digits with XXXX prefix (e.g., "XXXX1234")
   - ifsc: IFSC code if available, otherwise ""
   - currentBalance: Closing/current balance amount
   - bankName: Name of the bank if available
   - currency: Default "INR"

4. CATEGORY INFERENCE:
   - If holding has "SIP" in name → category: "SIP"
   - If instrumentType is "Equity" → category: "Stock"
   - If instrumentType is "MF" and no SIP mention → category: "Mutual Fund"

5. DATA QUALITY:
   - All prices must be positive numbers > 0
   - Numbers must be plain JSON numbers without currency symbols or thousands separators
   - Dates must be valid and parseable
   - Remove any entries with missing critical fields (amount, date, instrumentName)
   - Use empty arrays for sections the document does not contain

DOCUMENT TEXT TO ANALYZE:
{document_text}

RETURN ONLY THE JSON OBJECT - NO MARKDOWN, NO EXPLANATIONS, NO CODE BLOCKS."""
