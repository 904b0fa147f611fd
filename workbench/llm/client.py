"""Helpers for reading structured data out of free-form LLM text."""

import json
import logging
from typing import Optional

logger = logging.getLogger(__name__)


def parse_llm_json_response(raw_text: Optional[str]) -> Optional[dict]:
    """Parse the JSON object embedded in an LLM response.

    Models often wrap JSON in prose or ```json fences despite being told not
    to, so the text between the first '{' and the last '}' is parsed.

    Returns:
        The parsed object, or None if no object could be parsed.
    """
    if not raw_text:
        return None

    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None

    try:
        parsed = json.loads(raw_text[start:end + 1])
    except json.JSONDecodeError as e:
        logger.debug(f"Could not parse JSON from response: {e}")
        return None

    return parsed if isinstance(parsed, dict) else None
