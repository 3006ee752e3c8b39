"""FastAPI application for FinVault."""

import logging
from datetime import date as date_type
from typing import Any

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from finvault.config import settings
from finvault.db.document_store import DocumentStore, get_document_store
from finvault.models import IngestResult
from finvault.parsers.extractor import FinancialDataExtractor
from finvault.parsers.validation import ValidationError, validate_pdf_contents
from finvault.services import portfolio
from finvault.services.ingest import ingest_document

logger = logging.getLogger(__name__)

STAGE_STATUS_CODES = {"ai_extraction": 500, "validation": 422, "processing": 500}

app = FastAPI(
    title="FinVault",
    description="Personal finance backend with LLM-powered statement extraction",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def configure_logging() -> None:
    """Apply the configured log level to the application loggers."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.on_event("startup")
async def startup():
    """Initialize on startup."""
    configure_logging()
    settings.ensure_directories()
    if settings.dev_mode:
        settings.log_config()


def get_store() -> DocumentStore:
    return get_document_store()


def get_extractor() -> FinancialDataExtractor:
    return FinancialDataExtractor()


def _require_user(user_id: str | None) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="User authentication required")
    return user_id


def _parse_date(value: str | None, name: str) -> date_type | None:
    if not value:
        return None
    try:
        return date_type.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{name} must be a YYYY-MM-DD date")


def _upload_response(result: IngestResult) -> dict[str, Any]:
    """Shape a successful ingestion for the upload page."""
    data = result.data
    persistence = result.persistence
    saved: dict[str, Any] = {
        "bankAccounts": {
            "total": len(data.bank_accounts),
            "saved": persistence.bank_accounts.success_count,
            "failed": persistence.bank_accounts.failed_count,
            "ids": persistence.bank_accounts.ids,
        },
        "transactions": {
            "total": len(data.transactions),
            "saved": persistence.transactions.success_count,
            "failed": persistence.transactions.failed_count,
        },
        "holdings": {
            "total": len(data.holdings),
            "saved": persistence.holdings.success_count,
            "failed": persistence.holdings.failed_count,
            "ids": persistence.holdings.ids,
        },
        "overall": {
            "totalSaved": persistence.overall.total_saved,
            "totalFailed": persistence.overall.total_failed,
        },
    }

    # Include errors if any
    if persistence.overall.total_failed > 0:
        saved["errors"] = {
            "bankAccounts": persistence.bank_accounts.errors,
            "transactions": persistence.transactions.errors,
            "holdings": persistence.holdings.errors,
        }

    return {
        "success": True,
        "message": "Financial document processed successfully",
        "extraction": result.extraction.to_document() if result.extraction else None,
        "validation": {"warnings": result.validation.warnings if result.validation else []},
        "saved": saved,
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "llm_provider": settings.llm_provider}


@app.post("/api/financial/upload-pdf")
async def upload_pdf(
    document: UploadFile | None = File(None),
    user_id: str | None = Form(None, alias="userId"),
    store: DocumentStore = Depends(get_store),
    extractor: FinancialDataExtractor = Depends(get_extractor),
):
    """Upload and process a financial document (bank statement, portfolio report, etc.)."""
    if document is None or not document.filename:
        raise HTTPException(status_code=400, detail="No file uploaded. Please upload a PDF document.")

    user_id = _require_user(user_id)

    contents = await document.read()
    try:
        validate_pdf_contents(contents, max_size=settings.max_upload_bytes)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Processing PDF: {document.filename} for user: {user_id}")
    result = await ingest_document(user_id, contents, extractor=extractor, store=store)

    if not result.success:
        body: dict[str, Any] = {"success": False, "error": result.error, "stage": result.stage}
        if result.stage == "validation" and result.validation:
            body["validationErrors"] = result.validation.errors
            body["warnings"] = result.validation.warnings
        elif result.error_details:
            body["details"] = result.error_details
        return JSONResponse(status_code=STAGE_STATUS_CODES.get(result.stage, 500), content=body)

    return _upload_response(result)


@app.get("/api/financial/bank-accounts")
async def list_bank_accounts(userId: str | None = None, store: DocumentStore = Depends(get_store)):
    """Get all bank accounts for a user."""
    user_id = _require_user(userId)
    return {"success": True, "data": portfolio.get_bank_accounts(store, user_id)}


@app.get("/api/financial/transactions")
async def list_transactions(
    userId: str | None = None,
    startDate: str | None = None,
    endDate: str | None = None,
    type: str | None = None,
    category: str | None = None,
    limit: int | None = None,
    store: DocumentStore = Depends(get_store),
):
    """Get transactions for a user with optional filters."""
    user_id = _require_user(userId)
    transactions = portfolio.get_transactions(
        store,
        user_id,
        start_date=_parse_date(startDate, "startDate"),
        end_date=_parse_date(endDate, "endDate"),
        txn_type=type,
        category=category,
        limit=limit,
    )
    return {"success": True, "data": transactions}


@app.get("/api/financial/holdings")
async def list_holdings(
    userId: str | None = None,
    category: str | None = None,
    store: DocumentStore = Depends(get_store),
):
    """Get all holdings for a user, optionally by category."""
    user_id = _require_user(userId)
    return {"success": True, "data": portfolio.get_holdings(store, user_id, category=category)}


@app.get("/api/financial/summary")
async def financial_summary(userId: str | None = None, store: DocumentStore = Depends(get_store)):
    """Get a summary of all financial data for a user."""
    user_id = _require_user(userId)
    return {"success": True, "summary": portfolio.get_financial_summary(store, user_id)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "finvault.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.dev_mode,
    )
