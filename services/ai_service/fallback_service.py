"""
Static canned replies used when the language-model provider cannot answer.
"""

from typing import Optional

from config.app_config import AssistantConfig, get_config
from services.chat_service.models import Intent
from utils.logging_config import get_logger

_CANNED_INTENTS = {
    Intent.GREETING: "greeting",
    Intent.SKILLS: "skills",
    Intent.EXPERIENCE: "experience",
    Intent.PROJECTS: "projects",
    Intent.CONTACT: "contact",
}


class FallbackService:
    """
    Provides one fixed reply per intent.
    Part of the AI service's graceful degradation.
    """

    def __init__(self, assistant: Optional[AssistantConfig] = None):
        self.logger = get_logger(__name__)
        self.assistant = assistant or get_config().assistant

    def get_fallback_response(self, intent: Intent) -> str:
        key = _CANNED_INTENTS.get(intent, "unknown")
        template = self.assistant.fallback_responses.get(key) or self.assistant.fallback_responses["unknown"]
        self.logger.info(f"Using canned fallback response for intent: {key}")
        return template.format(name=self.assistant.name)
