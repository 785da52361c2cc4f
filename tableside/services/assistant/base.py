"""
Assistant Service Abstract Base Class

Interface for the chat-completion backend behind the menu assistant.
Implementations take an OpenAI-style message list (``{"role", "content"}``
dicts, system prompt first) and return a CompletionResult.

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class CompletionResult:
    """
    Standardized result from a chat completion.

    Attributes:
        success: Whether the model produced a reply
        content: Reply text (None when the call failed)
        model: Model that answered
        attempts: Calls made, including retries
        prompt_tokens: Tokens billed for the prompt, if reported
        completion_tokens: Tokens billed for the reply, if reported
        error_message: Error description if the call failed
        error_code: Machine-readable error code
        response_time_ms: Wall time across all attempts
    """
    success: bool
    content: Optional[str] = None
    model: Optional[str] = None
    attempts: int = 1
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "content": self.content,
            "model": self.model,
            "attempts": self.attempts,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "response_time_ms": self.response_time_ms,
        }


class BaseAssistantService(ABC):
    """
    Abstract base class for assistant services.

    ``complete`` never raises provider errors; it reports them on the result.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def complete(self, messages: list[dict]) -> CompletionResult:
        """
        Run one chat completion.

        Args:
            messages: System prompt followed by the conversation window
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
