"""Document ingestion: PDF bytes in, persisted records and a report out."""

import logging
from collections.abc import Callable

from finvault.config import settings
from finvault.models import IngestResult
from finvault.parsers.extractor import FinancialDataExtractor
from finvault.parsers.pdf_text import ensure_enough_text, extract_text
from finvault.parsers.quality import validate_extraction
from finvault.services.persistence import DocumentStorage, persist_all

logger = logging.getLogger(__name__)


async def ingest_document(
    user_id: str,
    contents: bytes,
    *,
    extractor: FinancialDataExtractor,
    store: DocumentStorage,
    text_extractor: Callable[[bytes], str] = extract_text,
    max_attempts: int | None = None,
) -> IngestResult:
    """
    Run one uploaded document through the whole pipeline.

    Steps: text extraction, LLM extraction (with retries), batch validation,
    persistence. Failures are returned, never raised, with `stage` naming the
    step that failed: "ai_extraction", "validation" or "processing".
    """
    try:
        # Step 1: Extract text from PDF
        logger.info(f"🔍 [ingest_document] Step 1: Extracting text for user {user_id}...")
        text = ensure_enough_text(text_extractor(contents), settings.min_document_chars)
        logger.info(f"Extracted {len(text)} characters from document")

        # Step 2: Structured extraction via LLM
        logger.info("🔍 [ingest_document] Step 2: Extracting structured data...")
        outcome = await extractor.extract_with_retry(text, max_attempts=max_attempts)

        if not outcome.success or outcome.data is None:
            error = outcome.error
            logger.error(f"❌ AI extraction failed: {error.message if error else 'no data'}")
            return IngestResult(
                success=False,
                error=error.details if error else "Failed to extract financial data from the document.",
                error_details=[f"{error.kind.value}: {error.message}"] if error else [],
                stage="ai_extraction",
            )

        data = outcome.data

        # Step 3: Validate extracted data
        logger.info("🔍 [ingest_document] Step 3: Validating extracted data...")
        validation = validate_extraction(data)

        if not validation.is_valid:
            return IngestResult(
                success=False,
                extraction=outcome.metadata,
                validation=validation,
                data=data,
                error="Extracted data validation failed",
                error_details=validation.errors,
                stage="validation",
            )

        # Step 4: Persist
        logger.info(f"🔍 [ingest_document] Step 4: Saving {data.total_records} records...")
        persistence = persist_all(store, user_id, data)

        logger.info(
            f"✅ Ingestion complete: {persistence.overall.total_saved} saved, "
            f"{persistence.overall.total_failed} failed"
        )
        return IngestResult(
            success=True,
            extraction=outcome.metadata,
            validation=validation,
            persistence=persistence,
            data=data,
        )

    except Exception as e:
        logger.exception(f"❌ Error processing document for user {user_id}: {e}")
        return IngestResult(
            success=False,
            error=str(e) or "Failed to process financial document",
            stage="processing",
        )
