"""Lexicon provider backed by a remote HTTP service."""
from __future__ import annotations

from typing import List, Optional, Tuple

import httpx
import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..matching.lexicon import LexiconEntry
from ..matching.normalizer import normalize
from .base import LexiconProvider, LexiconProviderError, TransientLexiconError

_logger = structlog.get_logger(__name__)


class LexiconEntryPayload(BaseModel):
    task: str
    phrases: List[str]


_PAYLOAD = TypeAdapter(List[LexiconEntryPayload])

_RETRYABLE_STATUS = {408, 429}


class HttpLexiconProvider(LexiconProvider):
    """Fetches ``GET {base_url}/lexicon?utterance=...`` and parses a JSON list of entries."""

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 5.0) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def get_lexicon(self, utterance: str) -> Tuple[LexiconEntry, ...]:
        url = f"{self.base_url}/lexicon"
        try:
            response = await self._client.get(url, params={"utterance": utterance})
        except httpx.TransportError as exc:
            raise TransientLexiconError(f"lexicon request failed: {exc!r}") from exc

        if response.status_code >= 500 or response.status_code in _RETRYABLE_STATUS:
            raise TransientLexiconError(f"lexicon service returned {response.status_code}")
        if response.status_code >= 400:
            raise LexiconProviderError(f"lexicon service rejected request with {response.status_code}")

        try:
            payload = _PAYLOAD.validate_json(response.content)
        except ValidationError as exc:
            raise LexiconProviderError("lexicon service returned a malformed payload") from exc

        entries = []
        for item in payload:
            phrases = tuple(p for p in (normalize(phrase) for phrase in item.phrases) if p)
            entries.append(LexiconEntry(task=item.task, phrases=phrases))
        _logger.debug("lexicon fetched", url=url, entries=len(entries))
        return tuple(entries)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
