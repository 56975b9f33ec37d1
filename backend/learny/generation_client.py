"""HTTP client for the hosted flashcard generation function."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .config import Settings
from .models import Difficulty

logger = logging.getLogger(__name__)

GENERATE_PATH = "/generate-flashcards"


class FlashcardGenerationError(RuntimeError):
    """Raised when the generation endpoint is unreachable or answers with garbage."""


class GenerationRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1)
    difficulty: Difficulty
    count: int = Field(default=10, ge=1, le=50)
    context: str = Field(default="", max_length=2000)
    language: str = Field(default="swedish", min_length=2)


class GeneratedFlashcard(BaseModel):
    question: str
    answer: str
    category: Optional[str] = None
    subcategory: Optional[str] = None
    difficulty: Optional[Difficulty] = None


class GenerationResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    flashcards: List[GeneratedFlashcard] = Field(default_factory=list)
    module_id: Optional[str] = None
    saved: bool = False
    error: Optional[str] = None


class FlashcardGenerationClient:
    def __init__(self, settings: Settings, *, client: Optional[httpx.Client] = None) -> None:
        if not settings.functions_url:
            raise FlashcardGenerationError("LEARNY_FUNCTIONS_URL is not configured.")
        self._endpoint = settings.functions_url.rstrip("/") + GENERATE_PATH
        self._anon_key = settings.functions_anon_key
        self._timeout = max(settings.generation_timeout_ms, 1000) / 1000
        self._client = client

    def _headers(self, access_token: Optional[str]) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._anon_key:
            headers["apikey"] = self._anon_key
        token = access_token or self._anon_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def generate(self, request: GenerationRequest, access_token: Optional[str] = None) -> GenerationResult:
        local_client = self._client or httpx.Client(timeout=self._timeout)
        close_client = self._client is None
        try:
            response = local_client.post(
                self._endpoint,
                json=request.model_dump(mode="json"),
                headers=self._headers(access_token),
            )
        except httpx.HTTPError as exc:
            raise FlashcardGenerationError(f"Flashcard generation call failed: {exc}") from exc
        finally:
            if close_client:
                local_client.close()

        try:
            result = GenerationResult.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise FlashcardGenerationError(
                f"Flashcard generation returned invalid payload (status {response.status_code}): {exc}"
            ) from exc

        if response.is_error and not result.error:
            raise FlashcardGenerationError(f"Flashcard generation failed with status {response.status_code}")

        logger.debug(
            "Generated %d flashcards for topic %r (saved=%s, module=%s)",
            len(result.flashcards),
            request.topic,
            result.saved,
            result.module_id,
        )
        return result


__all__ = [
    "FlashcardGenerationClient",
    "FlashcardGenerationError",
    "GeneratedFlashcard",
    "GenerationRequest",
    "GenerationResult",
]
