"""
Response service data models.
"""

from dataclasses import dataclass
from typing import Literal, Optional

from services.chat_service.models import ConversationContext, Intent

ResponseSource = Literal["ai", "knowledge_base", "error"]


@dataclass(frozen=True)
class GeneratedResponse:
    """Answer text plus the context updated with intent and topic"""
    content: str
    intent: Intent
    topic: Optional[str]
    context: ConversationContext
    source: ResponseSource
