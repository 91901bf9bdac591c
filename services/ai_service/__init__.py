"""
AI service - language-model answers, prompts and canned fallbacks.
"""

from .ai_service import AIService
from .fallback_service import FallbackService
from .models import AIStatus
from .prompts import build_conversation_history, build_prompt_messages, build_system_prompt

__all__ = [
    'AIService',
    'FallbackService',
    'AIStatus',
    'build_conversation_history',
    'build_prompt_messages',
    'build_system_prompt'
]
