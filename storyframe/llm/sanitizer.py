"""
Response Sanitizer

Recovers a validated structure from generation-service text that may be
wrapped in markdown code fences. Either the whole payload validates or a
SanitizationError is raised; a partially populated structure never escapes.
"""

import json
from typing import Any, Optional, Type, TypeVar

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from storyframe.core.exceptions import SanitizationError
from storyframe.core.logging_config import get_logger

logger = get_logger("llm.sanitizer")

T = TypeVar("T")


def strip_fences(text: str) -> str:
    """Remove a surrounding ``` or ```json fence and outer whitespace."""
    text = (text or "").strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_json(text: str) -> Any:
    """Strip fences and decode JSON."""
    cleaned = strip_fences(text)
    if not cleaned:
        raise SanitizationError("empty response", raw_text=text or "")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise SanitizationError(f"invalid JSON: {e.msg}", raw_text=text)


def _type_name(expected) -> str:
    return getattr(expected, "__name__", None) or str(expected)


class ResponseSanitizer:
    """
    Parses and validates generation-service output.

    ``expected`` may be a pydantic model or any type pydantic can validate,
    e.g. ``List[Shot]``. With ``key`` the value under that top-level key is
    validated instead of the whole payload.
    """

    def parse(self, raw: str, expected: Type[T], key: Optional[str] = None) -> T:
        payload = parse_json(raw)
        name = _type_name(expected)

        if key is not None:
            if not isinstance(payload, dict) or key not in payload:
                raise SanitizationError(
                    f"missing top-level key '{key}'", raw_text=raw, expected=name
                )
            payload = payload[key]

        try:
            return TypeAdapter(expected).validate_python(payload)
        except PydanticValidationError as e:
            logger.warning(f"Response failed validation as {name}: {e.error_count()} error(s)")
            raise SanitizationError(
                f"response does not match {name}: {e.errors()[0]['msg']}",
                raw_text=raw,
                expected=name
            )


_default_sanitizer = ResponseSanitizer()


def sanitize(raw: str, expected: Type[T], key: Optional[str] = None) -> T:
    """Parse ``raw`` with the shared sanitizer."""
    return _default_sanitizer.parse(raw, expected, key=key)
