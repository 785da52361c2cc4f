"""
OpenAI Assistant Service Implementation

Production chat completions through the official OpenAI SDK.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - OPENAI_API_KEY (or LLM_API_KEY) must be set in environment

Retries:
    Failed calls are retried ``openai_max_retries`` times with exponential
    backoff (1s, 2s, ...). After the last failure the result carries the
    error instead of raising.

Version: 1.0.0
"""

import asyncio
import logging
from datetime import datetime

from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError, RateLimitError

from tableside.core.config import get_settings
from tableside.services.assistant.base import BaseAssistantService, CompletionResult

logger = logging.getLogger(__name__)


class OpenAIAssistantService(BaseAssistantService):
    """Chat completions against the OpenAI API."""

    def __init__(self, backoff_base: float = 1.0):
        settings = get_settings()
        api_key = settings.assistant_api_key

        if not api_key:
            raise ValueError(
                "OPENAI_API_KEY is required outside development mode. "
                "Set it (or LLM_API_KEY) in your .env file or environment variables."
            )

        self._client = AsyncOpenAI(api_key=api_key, timeout=settings.openai_timeout)
        self._model = settings.openai_model
        self._max_tokens = settings.openai_max_tokens
        self._temperature = settings.openai_temperature
        self._retries = settings.openai_max_retries
        self._backoff_base = backoff_base

        logger.info(f"OpenAIAssistantService initialized (model={self._model})")

    @property
    def provider_name(self) -> str:
        return "openai"

    async def complete(self, messages: list[dict]) -> CompletionResult:
        start_time = datetime.now()
        last_error = None
        error_code = "openai_error"

        for attempt in range(self._retries + 1):
            if attempt:
                delay = self._backoff_base * (2 ** (attempt - 1))
                logger.debug(f"OpenAI: retry {attempt}/{self._retries} in {delay:.1f}s")
                await asyncio.sleep(delay)

            try:
                response = await self._client.chat.completions.create(
                    model=self._model,
                    messages=messages,
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                )
            except RateLimitError as e:
                last_error, error_code = e, "rate_limited"
                logger.warning(f"OpenAI: rate limited (attempt {attempt + 1}) - {e}")
                continue
            except APIConnectionError as e:
                last_error, error_code = e, "connection_error"
                logger.warning(f"OpenAI: connection error (attempt {attempt + 1}) - {e}")
                continue
            except APIStatusError as e:
                last_error, error_code = e, f"status_{e.status_code}"
                logger.error(f"OpenAI: API error {e.status_code} (attempt {attempt + 1}) - {e}")
                continue
            except OpenAIError as e:
                last_error, error_code = e, "openai_error"
                logger.error(f"OpenAI: error (attempt {attempt + 1}) - {e}")
                continue

            content = (response.choices[0].message.content or "").strip() if response.choices else ""
            usage = response.usage
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

            if not content:
                logger.warning("OpenAI: empty completion")
                return CompletionResult(
                    success=False,
                    model=response.model,
                    attempts=attempt + 1,
                    error_message="Model returned an empty reply",
                    error_code="empty_reply",
                    response_time_ms=elapsed_ms,
                )

            return CompletionResult(
                success=True,
                content=content,
                model=response.model,
                attempts=attempt + 1,
                prompt_tokens=usage.prompt_tokens if usage else None,
                completion_tokens=usage.completion_tokens if usage else None,
                response_time_ms=elapsed_ms,
            )

        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
        logger.error(f"OpenAI: giving up after {self._retries + 1} attempts - {last_error}")
        return CompletionResult(
            success=False,
            model=self._model,
            attempts=self._retries + 1,
            error_message=str(last_error),
            error_code=error_code,
            response_time_ms=elapsed_ms,
        )

    async def health_check(self) -> bool:
        try:
            await self._client.models.retrieve(self._model)
            return True
        except OpenAIError as e:
            logger.error(f"OpenAI: Health check failed - {e}")
            return False
