"""
FastAPI backend for the sales assistant.

Endpoints:
    GET  /health          — Health check
    POST /api/v1/ask      — Classify, route and answer one question
"""

from typing import List

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
import uvicorn

from shared_utils.config_loader import get_settings
from shared_utils.logging_utils import ContextualLogger, configure_logging
from shared_utils.constants import LogScope, APIEndpoints
from shared_utils.error_handler import (
    AppException, ValidationError, handle_error
)
from shared_utils.validation import InputValidator
from shared_utils.di_container import get_di_container
from domain.models import ThreadMessage


# ---------------------------------------------------------------------------
# Application bootstrap
# ---------------------------------------------------------------------------

settings = get_settings()
configure_logging(settings.log_level)
logger = ContextualLogger(scope=LogScope.API)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=settings.app_description,
)

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter

logger.info(
    "api_initialized",
    environment=settings.environment,
    default_llm_provider=settings.default_llm_provider,
)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get(APIEndpoints.HEALTH)
def health_check() -> dict:
    """Health check endpoint."""
    logger.debug("health_check_requested")
    return {
        "status": "healthy",
        "environment": settings.environment,
        "default_llm_provider": settings.default_llm_provider,
    }


# ---------------------------------------------------------------------------
# Ask
# ---------------------------------------------------------------------------

def _parse_thread_context(raw) -> List[ThreadMessage]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("threadContext must be a list", context={"type": type(raw).__name__})
    try:
        return [ThreadMessage.model_validate(m) for m in raw]
    except ValueError as e:
        raise ValidationError("threadContext has an invalid message", context={"error": str(e)}) from e


@app.post(APIEndpoints.ASK)
@limiter.limit("30/minute")
async def ask(
    request: Request,
    body: dict,
) -> JSONResponse:
    """Answer a question about meetings, the product or sales work.

    Body JSON:
        question (str): Natural-language question.
        meetingId (str, optional): Meeting the question is about.
        meetingIds (list[str], optional): Meetings for cross-meeting analysis.
        threadContext (list, optional): Earlier turns, ``{text, isBot}``.
        eventId (str, optional): Idempotency key of the inbound event.
    """
    try:
        container = get_di_container()

        event_id = InputValidator.validate_optional_identifier(body.get("eventId"), "eventId")
        if event_id and container.get_event_deduplicator().is_duplicate(event_id):
            return JSONResponse(content={"duplicate": True})

        meeting_ids = body.get("meetingIds") or []
        if not isinstance(meeting_ids, list):
            raise ValidationError("meetingIds must be a list", context={"type": type(meeting_ids).__name__})

        assistant = container.get_assistant_service()
        response = await assistant.answer(
            body.get("question") or "",
            meeting_id=body.get("meetingId"),
            meeting_ids=meeting_ids,
            thread_context=_parse_thread_context(body.get("threadContext")),
        )

        logger.info(
            "ask_answered",
            intent=response.intent.value,
            data_source=response.data_source,
            contracts=[c.value for c in response.contracts],
        )
        return JSONResponse(
            content=response.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    except AppException as e:
        logger.warning("ask_error", error_code=e.error_code)
        return JSONResponse(status_code=e.http_status, content=e.to_dict())
    except Exception as e:
        error_response = handle_error(e, scope=LogScope.API)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )


if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.api_port,
        log_level=settings.log_level.lower()
    )
