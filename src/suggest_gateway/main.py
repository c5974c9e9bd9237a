"""FastAPI entrypoint for the suggestion gateway."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config import get_settings, settings_dict
from .dependencies import build_matcher, build_provider
from .lexicon.base import LexiconProvider
from .matching.matcher import TaskMatcher
from .middleware import install, mask_secret
from .models import ErrorResponse, SuggestTaskRequest, SuggestTaskResponse
from .observability.events import RequestEvent
from .observability.logging import configure_logging

_logger = structlog.get_logger(__name__)

app = FastAPI(title="Task Suggestion Gateway")
install(app)


def _ensure_components() -> None:
    settings = get_settings()
    if not hasattr(app.state, "lexicon"):
        app.state.lexicon = build_provider(settings) if settings.matcher_mode == "two_tier" else None
    if not hasattr(app.state, "matcher"):
        app.state.matcher = build_matcher(settings, app.state.lexicon)


async def get_matcher(request: Request) -> TaskMatcher:
    _ensure_components()
    return request.app.state.matcher


@app.on_event("startup")
async def on_startup() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    _ensure_components()
    _logger.info("gateway started", settings=settings_dict())


@app.on_event("shutdown")
async def on_shutdown() -> None:
    lexicon: Optional[LexiconProvider] = getattr(app.state, "lexicon", None)
    if lexicon is not None:
        await lexicon.aclose()
    _logger.info("gateway stopped")


@app.post(
    "/suggestTask",
    response_model=SuggestTaskResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def suggest_task(payload: SuggestTaskRequest, matcher: TaskMatcher = Depends(get_matcher)) -> SuggestTaskResponse:
    structlog.contextvars.bind_contextvars(user_id=payload.user_id, session_id=mask_secret(payload.session_id))
    _logger.debug(RequestEvent.ENRICHED.value)
    task = await matcher.match(payload.utterance)
    return SuggestTaskResponse(task=task, timestamp=datetime.now(timezone.utc))


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/metrics")
async def metrics() -> PlainTextResponse:
    return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)
