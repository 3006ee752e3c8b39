"""LLM-backed extraction of bank accounts, transactions and holdings from statement text."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from finvault.config import settings
from finvault.models import (
    ExtractionError,
    ExtractionErrorKind,
    ExtractionMetadata,
    ExtractionOutcome,
)
from finvault.parsers.llm_client import MalformedResponseError, generate_text, parse_json_payload
from finvault.parsers.prompts import build_extraction_prompt
from finvault.parsers.sanitizer import normalize_shape, sanitize

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str], Awaitable[str]]
SleepFn = Callable[[float], Awaitable[None]]


async def retry_then_final(
    operation: Callable[[], Awaitable[ExtractionOutcome]],
    max_attempts: int,
    backoff_seconds: float,
    sleep: SleepFn = asyncio.sleep,
) -> tuple[ExtractionOutcome, int]:
    """
    Run `operation` up to `max_attempts` times, then once more unconditionally.

    Between loop attempts the wait grows linearly (attempt x backoff_seconds).
    The final call's outcome is returned whatever it is, so a persistently
    failing operation is invoked `max_attempts + 1` times in total.

    Returns:
        (outcome, number of calls made)
    """
    calls = 0
    for attempt in range(1, max_attempts + 1):
        calls += 1
        outcome = await operation()
        if outcome.success:
            return outcome, calls

        if attempt < max_attempts:
            wait_time = backoff_seconds * attempt
            logger.warning(f"Extraction attempt {attempt}/{max_attempts} failed, retrying in {wait_time}s...")
            await sleep(wait_time)

    logger.warning(f"Extraction failed {max_attempts} times, making final attempt")
    outcome = await operation()
    return outcome, calls + 1


def _failure(message: str, kind: ExtractionErrorKind) -> ExtractionOutcome:
    return ExtractionOutcome(success=False, error=ExtractionError(message=message, kind=kind))


class FinancialDataExtractor:
    """Turns statement text into sanitized FinancialData via an LLM."""

    def __init__(
        self,
        generate: GenerateFn | None = None,
        sleep: SleepFn = asyncio.sleep,
        backoff_seconds: float | None = None,
    ):
        self._generate = generate or generate_text
        self._sleep = sleep
        self._backoff_seconds = (
            backoff_seconds if backoff_seconds is not None else settings.retry_backoff_seconds
        )

    async def extract(self, document_text: str) -> ExtractionOutcome:
        """
        Make one extraction attempt.

        Never raises for model or payload problems; they come back as a
        failed ExtractionOutcome with MODEL_CALL_FAILED or MALFORMED_RESPONSE.
        """
        prompt = build_extraction_prompt(document_text)

        try:
            content = await self._generate(prompt)
        except Exception as e:
            logger.error(f"LLM call failed: {e}")
            return _failure(str(e) or type(e).__name__, ExtractionErrorKind.MODEL_CALL_FAILED)

        try:
            shape = normalize_shape(parse_json_payload(content))
        except MalformedResponseError as e:
            logger.error(f"Malformed LLM response: {e}")
            return _failure(str(e), ExtractionErrorKind.MALFORMED_RESPONSE)

        data = sanitize(shape)
        metadata = ExtractionMetadata(
            bank_accounts_count=len(data.bank_accounts),
            transactions_count=len(data.transactions),
            holdings_count=len(data.holdings),
            raw_counts={key: len(items) for key, items in shape.items()},
            extracted_at=datetime.now(timezone.utc).isoformat(),
        )
        logger.info(f"Extracted {data.counts()} (raw {metadata.raw_counts})")
        return ExtractionOutcome(success=True, data=data, metadata=metadata)

    async def extract_with_retry(self, document_text: str, max_attempts: int | None = None) -> ExtractionOutcome:
        """
        Extract with bounded retries.

        Total model calls for a failing document: max_attempts + 1 (the loop
        attempts plus one final unconditional attempt).
        """
        if max_attempts is None:
            max_attempts = settings.extraction_max_attempts

        outcome, calls = await retry_then_final(
            lambda: self.extract(document_text),
            max_attempts=max_attempts,
            backoff_seconds=self._backoff_seconds,
            sleep=self._sleep,
        )
        if outcome.metadata is not None:
            outcome.metadata.attempts = calls
        return outcome
