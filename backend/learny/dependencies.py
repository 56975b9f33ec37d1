"""Process-wide singletons handed to routes through FastAPI dependencies."""

from __future__ import annotations

from typing import Optional

from .app_state import LearnerRegistry
from .config import get_settings
from .generation_client import FlashcardGenerationClient

_registry: Optional[LearnerRegistry] = None


def get_registry() -> LearnerRegistry:
    global _registry
    if _registry is None:
        _registry = LearnerRegistry(get_settings())
    return _registry


def reset_registry() -> None:
    global _registry
    if _registry is not None:
        _registry.clear()
    _registry = None


def get_generation_client() -> Optional[FlashcardGenerationClient]:
    settings = get_settings()
    if not settings.functions_url:
        return None
    return FlashcardGenerationClient(settings)


__all__ = ["get_generation_client", "get_registry", "reset_registry"]
