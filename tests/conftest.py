"""
Shared fixtures for the assistant engine tests
"""

from datetime import datetime, timedelta, timezone

import pytest
from langchain_core.messages import AIMessage

from config.app_config import AppConfig
from infrastructure.resilience.retry_service import RetryService
from infrastructure.storage.context_store import InMemoryContextStore
from services.ai_service.ai_service import AIService
from services.chat_service.conversation_manager import ConversationManager
from services.knowledge_service.knowledge_base import KnowledgeBase


class FrozenClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeChatClient:
    """Stands in for OpenAIClient; replies are queued strings or exceptions"""

    def __init__(self, replies=None, configured: bool = True, model: str = "gpt-3.5-turbo"):
        self.replies = list(replies or ["Hello from the model"])
        self.configured = configured
        self.model = model
        self.calls = []

    def is_configured(self) -> bool:
        return self.configured

    def invoke(self, messages, callbacks=None):
        self.calls.append(messages)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return AIMessage(content=reply, usage_metadata={"input_tokens": 10, "output_tokens": 5, "total_tokens": 15})

    def test_connection(self) -> bool:
        return self.configured


class DisabledTracing:
    def get_callback_handler(self):
        return None


@pytest.fixture
def app_config():
    """Default configuration without credentials, so the AI path is off"""
    config = AppConfig()
    config.api.openai_api_key = ""
    return config


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return InMemoryContextStore()


@pytest.fixture(scope="session")
def knowledge_base():
    return KnowledgeBase()


@pytest.fixture
def conversation_manager(app_config, store, clock):
    return ConversationManager(
        store=store,
        config=app_config.conversation,
        assistant=app_config.assistant,
        clock=clock,
    )


@pytest.fixture
def retry_service():
    return RetryService(sleep=lambda seconds: None)


@pytest.fixture
def fake_client_cls():
    return FakeChatClient


@pytest.fixture
def make_ai_service(app_config, retry_service):
    """Build an AIService around a FakeChatClient"""

    def _make(client=None, config=None):
        return AIService(
            config=config or app_config,
            client=client or FakeChatClient(),
            retry_service=retry_service,
            tracing=DisabledTracing(),
        )

    return _make
