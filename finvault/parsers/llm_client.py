"""Thin LLM client for document extraction.

Only this module talks to litellm. Everything it returns is treated as
untrusted text; callers parse it with `parse_json_payload`.
"""

import json
import logging
from typing import Any, Optional

from litellm import acompletion

from finvault.config import settings

logger = logging.getLogger(__name__)


class ParsingError(Exception):
    """Raised when document text or LLM output cannot be turned into data."""

    pass


class MalformedResponseError(ParsingError):
    """Raised when the LLM response is not a usable JSON document."""

    pass


def _get_model_name() -> str:
    """Get the appropriate model name based on provider."""
    if settings.llm_provider == "gemini":
        return f"gemini/{settings.gemini_model}"
    elif settings.llm_provider == "openai":
        return settings.openai_model
    else:
        return f"ollama/{settings.ollama_model}"


def _get_api_base() -> Optional[str]:
    """Get the API base URL for Ollama."""
    if settings.llm_provider == "ollama":
        return settings.ollama_host
    return None


def _get_api_key() -> Optional[str]:
    if settings.llm_provider == "gemini":
        return settings.gemini_api_key or None
    if settings.llm_provider == "openai":
        return settings.openai_api_key or None
    return None


async def generate_text(prompt: str, timeout: float | None = None) -> str:
    """
    Send a single-turn prompt to the configured LLM and return the raw completion text.

    Args:
        prompt: The prompt to send to the LLM
        timeout: Deadline in seconds for the call (defaults to settings.llm_timeout)

    Returns:
        The completion text, stripped of surrounding whitespace

    Raises:
        Whatever litellm raises (network, auth, quota, timeout)
    """
    model = _get_model_name()
    logger.debug(f"Calling {model} with a {len(prompt)} char prompt")

    response = await acompletion(
        model=model,
        messages=[{"role": "user", "content": prompt}],
        api_base=_get_api_base(),
        api_key=_get_api_key(),
        temperature=settings.llm_temperature,  # Low temperature for consistency
        max_tokens=settings.llm_max_tokens,
        timeout=timeout if timeout is not None else settings.llm_timeout,
    )

    content = response.choices[0].message.content or ""
    logger.debug(f"Got {len(content)} chars back from {model}")
    return content.strip()


def strip_code_fences(content: str) -> str:
    """
    Remove markdown code fences around a JSON payload.

    Handles both "```json" and "```" styles, text before the block, and an
    unterminated fence from a truncated response.
    """
    content = content.strip()
    if "```" not in content:
        return content

    # Content between the first and second ``` markers, or everything after
    # a lone marker when the response was cut off
    json_content = content.split("```")[1]

    # Remove language identifier (e.g., "json\n")
    json_content = json_content.lstrip()
    if json_content.lower().startswith("json"):
        json_content = json_content[4:]
    return json_content.strip()


def parse_json_payload(content: str) -> Any:
    """
    Parse the JSON document contained in an LLM response.

    Raises:
        MalformedResponseError: If no JSON value can be decoded
    """
    content = strip_code_fences(content)

    # Skip any leading prose: start at the first { or [
    starts = [i for i in (content.find("{"), content.find("[")) if i >= 0]
    if not starts:
        raise MalformedResponseError("LLM response does not contain JSON")
    content = content[min(starts):]

    try:
        # raw_decode tolerates trailing prose after the JSON value
        data, _ = json.JSONDecoder().raw_decode(content)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON from LLM: {e}")
        logger.error(f"Content length: {len(content)} chars")
        if not content.rstrip().endswith(("}", "]")):
            logger.error("Response appears truncated (doesn't end with } or ])")
        raise MalformedResponseError(f"LLM returned invalid JSON: {e}") from e
    except (ValueError, RecursionError) as e:
        # Over-long integer literals or nesting deeper than the decoder allows
        logger.error(f"Undecodable JSON from LLM: {type(e).__name__}: {e}")
        raise MalformedResponseError(f"LLM returned undecodable JSON: {type(e).__name__}") from e

    return data
