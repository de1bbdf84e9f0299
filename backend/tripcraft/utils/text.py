"""Text helpers: normalisation, trigrams and model-output JSON extraction."""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Lowercase and collapse whitespace."""
    return _WHITESPACE.sub(" ", text or "").strip().lower()


def trigrams(text: str) -> set[str]:
    """Character trigrams of the normalised text.

    Texts shorter than three characters yield no trigrams; callers fall
    back to a scan for those.
    """
    norm = normalize(text)
    return {norm[i:i + 3] for i in range(len(norm) - 2)}


def extract_json(text: str) -> str:
    if "```json" in text:
        return text.split("```json")[1].split("```")[0].strip()
    if "```" in text:
        return text.split("```")[1].split("```")[0].strip()
    return text.strip()


def parse_model_json(text: str) -> Any | None:
    """Parse JSON emitted by a generative model, tolerating code fences."""
    try:
        return json.loads(extract_json(text))
    except (json.JSONDecodeError, IndexError) as e:
        logger.error(f"[DRAFT] JSON parse error: {e}")
        return None
