"""
Mock Assistant Service Implementation

Answers chat turns locally, without calling a model, so the assistant and
its recommendation extraction can be exercised in development.

Behavior:
    - Reads menu lines (``- Name: description ($price) [Category]``) back
      out of the system prompt
    - Suggests items whose name, category or tags share a word with the
      latest user message; otherwise suggests the first items listed
    - Can simulate failures to exercise the fallback reply

Version: 1.0.0
"""

import logging
import random
import re
from typing import Optional

from tableside.services.assistant.base import BaseAssistantService, CompletionResult

logger = logging.getLogger(__name__)

MENU_LINE = re.compile(
    r"^- (?P<name>[^:]+): .*\(\$(?P<price>[\d.]+)\) \[(?P<category>[^\]]*)\](?: Tags: (?P<tags>.*))?$"
)
WORD = re.compile(r"[a-z0-9']+")


class MockAssistantService(BaseAssistantService):
    """
    Deterministic stand-in for the OpenAI assistant.

    Attributes:
        failure_rate: Probability that a completion fails (0.0-1.0)
        max_suggestions: Items named in one reply
    """

    def __init__(self, failure_rate: float = 0.0, max_suggestions: int = 2):
        self.failure_rate = failure_rate
        self.max_suggestions = max_suggestions
        logger.info(f"MockAssistantService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    @staticmethod
    def _menu_from_prompt(system_prompt: str) -> list[dict]:
        items = []
        for line in system_prompt.splitlines():
            match = MENU_LINE.match(line.strip())
            if match:
                tags = match.group("tags") or ""
                items.append({
                    "name": match.group("name").strip(),
                    "price": float(match.group("price")),
                    "category": match.group("category").strip(),
                    "tags": [t.strip() for t in tags.split(",") if t.strip()],
                })
        return items

    @staticmethod
    def _last_user_message(messages: list[dict]) -> Optional[str]:
        for message in reversed(messages):
            if message.get("role") == "user":
                return message.get("content")
        return None

    def _pick(self, menu: list[dict], text: str) -> list[dict]:
        words = set(WORD.findall(text.lower()))
        scored = []
        for index, item in enumerate(menu):
            vocabulary = set(WORD.findall(item["name"].lower()))
            vocabulary |= set(WORD.findall(item["category"].lower()))
            vocabulary |= {t.lower() for t in item["tags"]}
            overlap = len(words & vocabulary)
            if overlap:
                scored.append((-overlap, index, item))
        if scored:
            return [item for _, _, item in sorted(scored)[: self.max_suggestions]]
        return menu[: self.max_suggestions]

    async def complete(self, messages: list[dict]) -> CompletionResult:
        if random.random() < self.failure_rate:
            logger.debug("Mock: Simulated assistant failure")
            return CompletionResult(
                success=False,
                model="mock",
                error_message="Simulated assistant outage",
                error_code="mock_failure",
            )

        system_prompt = messages[0]["content"] if messages and messages[0].get("role") == "system" else ""
        menu = self._menu_from_prompt(system_prompt)
        question = self._last_user_message(messages) or ""

        if not menu:
            reply = "Our menu is being updated right now. Please check back shortly!"
        else:
            picks = self._pick(menu, question)
            suggestions = " and ".join(f"{item['name']} (${item['price']:.2f})" for item in picks)
            reply = f"You might enjoy the {suggestions}. Would you like to add anything to your order?"

        return CompletionResult(success=True, content=reply, model="mock")

    async def health_check(self) -> bool:
        return True
