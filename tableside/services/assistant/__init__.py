"""
Assistant Service Factory

Environment Switching:
    - ENV_MODE=development → MockAssistantService (no API calls)
    - ENV_MODE=staging/production → OpenAIAssistantService
"""

import logging
from functools import lru_cache

from tableside.core.config import get_settings
from tableside.services.assistant.base import BaseAssistantService, CompletionResult
from tableside.services.assistant.mock import MockAssistantService
from tableside.services.assistant.openai_service import OpenAIAssistantService

logger = logging.getLogger(__name__)


@lru_cache()
def get_assistant_service() -> BaseAssistantService:
    """Get the configured assistant service instance (cached)."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Assistant Service: Using MockAssistantService (development mode)")
        return MockAssistantService()

    logger.info(
        f"Assistant Service: Using OpenAIAssistantService "
        f"({settings.env_mode.value} mode)"
    )
    return OpenAIAssistantService()


def reset_assistant_service() -> None:
    get_assistant_service.cache_clear()
    logger.debug("Assistant service cache cleared")


__all__ = [
    "get_assistant_service",
    "reset_assistant_service",
    "BaseAssistantService",
    "CompletionResult",
    "MockAssistantService",
    "OpenAIAssistantService",
]
