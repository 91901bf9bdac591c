"""
Response service - intent classification and answer generation.
"""

from .intent_classifier import classify_intent, extract_topic, is_context_aware_question, is_follow_up_question
from .models import GeneratedResponse
from .response_generator import ResponseGenerator
from .templates import ERROR_RESPONSE, KnowledgeTemplates

__all__ = [
    'ResponseGenerator',
    'GeneratedResponse',
    'KnowledgeTemplates',
    'ERROR_RESPONSE',
    'classify_intent',
    'extract_topic',
    'is_context_aware_question',
    'is_follow_up_question'
]
