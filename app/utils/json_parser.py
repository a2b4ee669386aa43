import json
import re
from typing import Any, Dict, List, Union

from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_safely(text: str) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from text, handling common LLM formatting issues.

    Handles:
    - Markdown code blocks (```json ... ```)
    - Leading/trailing whitespace
    - Prose before or after the JSON value ("Here is the JSON: {...}")

    Args:
        text: The text containing JSON

    Returns:
        Parsed JSON value or None if parsing fails
    """
    if not text:
        return None

    cleaned_text = _FENCE_PATTERN.sub("", text.strip()).strip()

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, searching for an embedded object...")

    embedded = _find_first_json_value(cleaned_text)
    if embedded is not None:
        return embedded

    LOGGER.error(f"Failed to parse JSON from model output: {cleaned_text[:200]!r}")
    return None


def _find_first_json_value(text: str) -> Union[Dict[str, Any], List[Any], None]:
    """Decode the first complete JSON object or array found in text."""
    decoder = json.JSONDecoder()
    for match in re.finditer(r"[\{\[]", text):
        try:
            value, _ = decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue
        LOGGER.info(f"Parsed JSON value embedded at position {match.start()}")
        return value
    return None
