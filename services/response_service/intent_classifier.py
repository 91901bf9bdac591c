"""
Rule-based intent classification and topic extraction.

Rules are evaluated in order and the first match wins, so the order of
INTENT_RULES is significant.
"""

import re
from typing import List, Optional, Pattern, Tuple

from services.chat_service.conversation_manager import ContextualInfo
from services.chat_service.models import ConversationContext, Intent

INTENT_RULES: List[Tuple[Pattern, Intent]] = [
    (re.compile(r"^(hi|hello|hey|good\s+(morning|afternoon|evening)|greetings)\b"), Intent.GREETING),
    (re.compile(r"(tell me about yourself|who are you|your background|your bio|about you\b|yourself)"), Intent.PERSONAL),
    (re.compile(r"(skill|technology|tech|programming|language|framework|tool|expertise|proficient|know)"), Intent.SKILLS),
    (re.compile(r"(experience|work|job|career|position|role|company|employer|worked)"), Intent.EXPERIENCE),
    (re.compile(r"(project|portfolio|built|created|developed|app|application|website|github)"), Intent.PROJECTS),
    (re.compile(r"(education|degree|university|college|study|studied|graduate|qualification)"), Intent.EDUCATION),
    (re.compile(r"(contact|email|phone|reach|hire|available|availability|location|where)"), Intent.CONTACT),
]

_QUESTION_PATTERN = re.compile(r"(what|how|when|where|why|can you|do you|are you)")

# Checked in order; "javascript" must come before "java"
SKILL_TOPIC_KEYWORDS = (
    "react", "node", "javascript", "typescript", "python", "java", "css",
    "html", "sql", "next", "express", "mongodb", "postgresql",
)

_CURRENT_PATTERN = re.compile(r"\b(current|recent)")
_WEB_PATTERN = re.compile(r"\bweb")
_AI_PATTERN = re.compile(r"\b(ai|ml)\b")

_CONTEXT_REFERENCE_PATTERN = re.compile(
    r"\b(that|those|it|them|this|these|you mentioned|you said|earlier|before|"
    r"the one|which one|what about that|more about|tell me more)\b"
)

_FOLLOW_UP_PATTERN = re.compile(
    r"\b(tell me more|more about|what about|how about|and what|also|additionally|furthermore|"
    r"can you explain|elaborate|details|specific|which one|what else)\b"
)


def classify_intent(message: str) -> Intent:
    """
    Classify a user message

    Args:
        message: Sanitized user text

    Returns:
        Intent: The first matching rule's intent, GENERAL for other
        questions, UNKNOWN otherwise
    """
    text = message.lower().strip()

    for pattern, intent in INTENT_RULES:
        if pattern.search(text):
            return intent

    if "?" in message or _QUESTION_PATTERN.search(text):
        return Intent.GENERAL

    return Intent.UNKNOWN


def extract_topic(message: str, intent: Intent) -> Optional[str]:
    """Refine the intent into a topic tag such as skills-react or projects-ai"""
    text = message.lower()

    if intent == Intent.SKILLS:
        for keyword in SKILL_TOPIC_KEYWORDS:
            if re.search(rf"\b{keyword}", text):
                return f"skills-{keyword}"
        return "skills-general"

    if intent == Intent.EXPERIENCE:
        return "experience-current" if _CURRENT_PATTERN.search(text) else "experience-general"

    if intent == Intent.PROJECTS:
        if _WEB_PATTERN.search(text):
            return "projects-web"
        if _AI_PATTERN.search(text):
            return "projects-ai"
        return "projects-general"

    if intent in (Intent.EDUCATION, Intent.CONTACT, Intent.PERSONAL):
        return intent.value

    return None


def topic_subject(topic: Optional[str]) -> Optional[str]:
    """The part after the dash of a topic tag, e.g. react for skills-react"""
    if not topic or "-" not in topic:
        return None
    subject = topic.split("-", 1)[1]
    return None if subject == "general" else subject


def has_context_reference(message: str) -> bool:
    return bool(_CONTEXT_REFERENCE_PATTERN.search(message.lower()))


def is_context_aware_question(message: str, info: ContextualInfo) -> bool:
    """A referential phrase plus something recent to refer to"""
    if not has_context_reference(message):
        return False
    return bool(info.recent_topics) or info.conversation_flow == "follow-up"


def is_follow_up_question(message: str, context: ConversationContext) -> bool:
    """Follow-up phrasing while a previous topic is still known"""
    if not _FOLLOW_UP_PATTERN.search(message.lower()):
        return False
    return bool(context.last_asked_about and context.current_topic)
