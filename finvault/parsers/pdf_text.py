"""Plain-text extraction from uploaded PDF statements."""

import logging
from io import BytesIO

import pdfplumber

from finvault.parsers.llm_client import ParsingError

logger = logging.getLogger(__name__)


class EmptyDocumentError(ParsingError):
    """Raised when a document has too little text to be worth extracting."""

    pass


def extract_text(contents: bytes) -> str:
    """
    Extract the text of every page of a PDF, one page per block.

    Raises:
        ParsingError: If the PDF cannot be opened or read
    """
    pages = []

    try:
        with pdfplumber.open(BytesIO(contents)) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text() or "")
    except Exception as e:
        logger.error(f"PDF extraction failed: {e}")
        raise ParsingError(f"Failed to extract PDF content: {e}") from e

    text = "\n".join(pages)
    logger.info(f"Extracted {len(text)} characters from {len(pages)} pages")
    return text


def ensure_enough_text(text: str, min_chars: int) -> str:
    """
    Reject documents whose text is shorter than `min_chars` once stripped.

    Raises:
        EmptyDocumentError: If the text is too short
    """
    if not text or len(text.strip()) < min_chars:
        raise EmptyDocumentError("PDF appears to be empty or contains insufficient text")
    return text
