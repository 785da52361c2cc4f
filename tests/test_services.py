from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError

from tableside.core.config import get_settings
from tableside.models import MenuItem
from tableside.services.assistant import MockAssistantService, get_assistant_service, reset_assistant_service
from tableside.services.assistant.openai_service import OpenAIAssistantService
from tableside.services.chat_session import build_system_prompt, extract_recommendations
from tableside.services.payment import (
    MockPaymentService,
    StripePaymentService,
    get_payment_service,
    reset_payment_service,
)


def _menu():
    return [
        MenuItem(id=1, name="Spicy Thai Curry", description="Red curry", price=15.49,
                 category="Mains", tags=["spicy"], image_url=None),
        MenuItem(id=2, name="Tiramisu", description="Coffee dessert", price=7.99,
                 category="Desserts", tags=["sweet"], image_url=None),
        MenuItem(id=3, name="Sparkling Lemonade", description="Fizzy", price=3.99,
                 category="Drinks", tags=[], image_url=None),
    ]


async def test_mock_assistant_suggests_items_from_prompt():
    menu = _menu()
    assistant = MockAssistantService(max_suggestions=1)
    messages = [
        {"role": "system", "content": build_system_prompt(menu, {})},
        {"role": "user", "content": "Something sweet for dessert?"},
    ]

    result = await assistant.complete(messages)

    assert result.success
    assert "Tiramisu ($7.99)" in result.content
    assert [r["name"] for r in extract_recommendations(result.content, menu)] == ["Tiramisu"]


async def test_mock_assistant_without_menu():
    result = await MockAssistantService().complete([{"role": "user", "content": "hi"}])
    assert "menu is being updated" in result.content


class _FlakyCompletions:
    def __init__(self, failures: int, reply: str = "Try the Tiramisu"):
        self.failures = failures
        self.reply = reply
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=f"  {self.reply}  "))],
            usage=SimpleNamespace(prompt_tokens=120, completion_tokens=8),
            model=kwargs["model"],
        )


def _openai_service(monkeypatch, completions):
    monkeypatch.setattr(get_settings(), "openai_api_key", "sk-test")
    service = OpenAIAssistantService(backoff_base=0)
    service._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return service


async def test_openai_retries_connection_errors(monkeypatch):
    completions = _FlakyCompletions(failures=2)
    service = _openai_service(monkeypatch, completions)

    result = await service.complete([{"role": "user", "content": "dessert?"}])

    assert result.success
    assert result.content == "Try the Tiramisu"
    assert result.attempts == 3
    assert result.prompt_tokens == 120


async def test_openai_gives_up_after_retries(monkeypatch):
    completions = _FlakyCompletions(failures=10)
    service = _openai_service(monkeypatch, completions)

    result = await service.complete([{"role": "user", "content": "dessert?"}])

    assert not result.success
    assert result.error_code == "connection_error"
    assert completions.calls == get_settings().openai_max_retries + 1


async def test_openai_empty_reply_is_failure(monkeypatch):
    service = _openai_service(monkeypatch, _FlakyCompletions(failures=0, reply=""))
    result = await service.complete([{"role": "user", "content": "hello"}])
    assert not result.success
    assert result.error_code == "empty_reply"


def test_real_services_require_keys(monkeypatch):
    monkeypatch.setattr(get_settings(), "openai_api_key", None)
    monkeypatch.setattr(get_settings(), "llm_api_key", None)
    monkeypatch.setattr(get_settings(), "stripe_secret_key", None)

    with pytest.raises(ValueError):
        OpenAIAssistantService()
    with pytest.raises(ValueError):
        StripePaymentService()


async def test_stripe_webhook_needs_signature(monkeypatch):
    monkeypatch.setattr(get_settings(), "stripe_secret_key", "sk_test_123")
    monkeypatch.setattr(get_settings(), "stripe_webhook_secret", "whsec_123")
    service = StripePaymentService()

    assert await service.verify_webhook(b'{"type": "checkout.session.completed"}', None) is None
    assert await service.verify_webhook(b'{"type": "checkout.session.completed"}', "t=1,v1=bad") is None


def test_factories_use_mocks_in_development():
    reset_payment_service()
    reset_assistant_service()

    assert isinstance(get_payment_service(), MockPaymentService)
    assert get_payment_service() is get_payment_service()
    assert get_assistant_service().provider_name == "mock"
