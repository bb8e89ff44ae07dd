"""
Parsing of JSON returned by LLMs.

Models often wrap JSON in markdown fences (```json ... ```). Fences are
stripped, then the payload is parsed strictly: a reply that is not valid JSON
raises instead of being guessed at.
"""

import json
import re
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import LLMResponseParseError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.COMPOSITION)

_LEADING_FENCE = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?```\s*$")

ModelT = TypeVar("ModelT", bound=BaseModel)


def strip_code_fences(raw: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    text = raw.strip()
    text = _LEADING_FENCE.sub("", text)
    text = _TRAILING_FENCE.sub("", text)
    return text.strip()


def parse_llm_json(raw: Optional[str], context: str) -> Any:
    """Parse LLM output as JSON.

    Args:
        raw: Raw model output, possibly fenced.
        context: Short label of the caller, included in logs and errors.

    Returns:
        The decoded JSON value.

    Raises:
        LLMResponseParseError: If the output is empty or not valid JSON.
    """
    if raw is None or not raw.strip():
        logger.warning("llm_json_empty_response", context=context)
        raise LLMResponseParseError(
            f"Empty LLM response for {context}",
            context={"parse_context": context},
        )

    cleaned = strip_code_fences(raw)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        preview = cleaned[: Defaults.LOG_PREVIEW_CHARS]
        logger.warning(
            "llm_json_parse_failed",
            context=context,
            error=str(exc),
            preview=preview,
        )
        raise LLMResponseParseError(
            f"Failed to parse LLM JSON for {context}: {exc.msg}",
            context={"parse_context": context, "preview": preview},
        ) from exc


def parse_llm_model(raw: Optional[str], model: Type[ModelT], context: str) -> ModelT:
    """Parse LLM output into a pydantic model.

    Raises:
        LLMResponseParseError: If the JSON is invalid or does not fit the model.
    """
    data = parse_llm_json(raw, context)
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        logger.warning(
            "llm_json_schema_mismatch",
            context=context,
            model=model.__name__,
            error_count=exc.error_count(),
        )
        raise LLMResponseParseError(
            f"LLM JSON for {context} does not match {model.__name__}",
            context={"parse_context": context},
        ) from exc
