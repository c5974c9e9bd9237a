"""Pydantic models used by the suggestion API."""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import get_settings

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


class SuggestTaskRequest(BaseModel):
    """Request body for `/suggestTask`."""

    model_config = ConfigDict(populate_by_name=True)

    utterance: str
    user_id: str = Field(alias="userId")
    session_id: str = Field(alias="sessionId")
    timestamp: datetime

    @field_validator("utterance")
    @classmethod
    def utterance_present_and_bounded(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Utterance is required.")
        limit = get_settings().max_utterance_length
        if len(value) > limit:
            raise ValueError(f"Utterance is too long (max {limit}).")
        return value

    @field_validator("timestamp", mode="before")
    @classmethod
    def timestamp_is_iso_string(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str) or not _ISO_DATE.match(value.strip()):
            raise ValueError("Timestamp must be a valid ISO-8601 UTC value.")
        return value

    @field_validator("user_id", "session_id")
    @classmethod
    def identifier_present(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Value is required.")
        return value


class SuggestTaskResponse(BaseModel):
    task: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Uniform error envelope for 4xx/5xx responses."""

    model_config = ConfigDict(populate_by_name=True)

    error: str
    details: Optional[Dict[str, List[str]]] = None
    trace_id: Optional[str] = Field(default=None, alias="traceId")
