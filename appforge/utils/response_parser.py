"""
JSON extraction from model output

The model is told to answer with a bare JSON object, but in practice it
sometimes wraps it in a ```json fence or adds a sentence before it.
"""

from typing import Any, Dict
import json
import re

from appforge.core.exceptions import AIResponseParseError
from appforge.core.logging_config import logger

FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*\n(.*?)\n?```", re.DOTALL)
# Whole response is one fenced block; greedy so fences inside file contents survive
OUTER_FENCE_PATTERN = re.compile(r"^\s*```(?:json|JSON)?[ \t]*\n(.*)\n[ \t]*```\s*$", re.DOTALL)

def _outermost_object(text: str) -> str:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return ""
    return text[start:end + 1]

class JSONResponseParser:
    """Pull the first JSON object out of a model response"""

    @staticmethod
    def strip_fences(response: str) -> str:
        match = OUTER_FENCE_PATTERN.match(response) or FENCE_PATTERN.search(response)
        if match:
            return match.group(1).strip()
        return response.strip()

    @staticmethod
    def extract_object(response: str) -> Dict[str, Any]:
        """
        Parse a JSON object from raw model text.

        Tries the fence-stripped text, then the outermost {...} span of the
        stripped text, then the outermost {...} span of the raw response.

        Raises:
            AIResponseParseError: no decodable JSON object present
        """
        if not response or not response.strip():
            raise AIResponseParseError("Model returned an empty response")

        text = JSONResponseParser.strip_fences(response)
        candidates = (text, _outermost_object(text), _outermost_object(response))

        last_error = None
        for candidate in candidates:
            if not candidate:
                continue
            try:
                data = json.loads(candidate)
                break
            except json.JSONDecodeError as e:
                last_error = e
        else:
            if last_error is None or not _outermost_object(response):
                raise AIResponseParseError("No JSON object found in model response")
            logger.warning(f"[JSONResponseParser] Invalid JSON in model response: {last_error}")
            raise AIResponseParseError(f"Invalid JSON in model response: {last_error.msg}") from last_error

        if not isinstance(data, dict):
            raise AIResponseParseError(f"Expected a JSON object, got {type(data).__name__}")

        return data
