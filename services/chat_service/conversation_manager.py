"""
Conversation manager service - handles conversation state, limits and persistence.
"""

import json
import re
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from config.app_config import AssistantConfig, ConversationConfig, get_config
from infrastructure.storage.context_store import ContextStore, create_context_store
from services.chat_service.models import (
    ConversationContext,
    Message,
    Sender,
    to_epoch_ms,
    utc_now,
)
from utils.logging_config import get_logger, log_conversation_event

_MENTION_PATTERN = re.compile(
    r"\b(react|javascript|python|node|typescript|next\.?js|tailwind|mongodb|postgresql)\b"
)

_FOLLOW_UP_PHRASES = ("tell me more", "what about", "how about")


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    APPROACHING_LIMIT = "approaching_limit"
    NEEDS_RESET = "needs_reset"


_RECOMMENDATIONS = {
    HealthStatus.HEALTHY: "Conversation is running smoothly.",
    HealthStatus.APPROACHING_LIMIT: "Conversation is getting long. Consider summarizing or trimming.",
    HealthStatus.NEEDS_RESET: "Conversation should be reset due to age or size.",
}


@dataclass(frozen=True)
class ConversationHealth:
    status: HealthStatus
    message_count: int
    age_minutes: int
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "messageCount": self.message_count,
            "ageMinutes": self.age_minutes,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class ContextualInfo:
    recent_topics: List[str] = field(default_factory=list)
    last_user_question: Optional[str] = None
    conversation_flow: str = "initial"  # "initial", "follow-up" or "ongoing"
    mentioned_items: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _unique(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(items))


def _recent_topics(text: str) -> List[str]:
    topics = []
    if "skill" in text or "technology" in text:
        topics.append("skills")
    if "experience" in text or "work" in text:
        topics.append("experience")
    if "project" in text:
        topics.append("projects")
    return topics


class ConversationManager:
    """
    Service for managing conversation state.
    Contexts are immutable values; every operation returns a new one and
    persists it through the configured store on a best-effort basis.
    """

    def __init__(
        self,
        store: Optional[ContextStore] = None,
        config: Optional[ConversationConfig] = None,
        assistant: Optional[AssistantConfig] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.logger = get_logger(__name__)
        if config is None or assistant is None:
            app_config = get_config()
            config = config or app_config.conversation
            assistant = assistant or app_config.assistant
        self.config = config
        self.assistant = assistant
        self.store = store if store is not None else create_context_store(config)
        self._clock = clock

    @property
    def max_messages(self) -> int:
        return self.config.max_messages

    @property
    def storage_key(self) -> str:
        return self.config.storage_key

    def _is_expired(self, moment: datetime) -> bool:
        return (self._clock() - moment).total_seconds() > self.config.session_timeout_seconds

    # Persistence

    def save_context(self, context: ConversationContext) -> None:
        """Persist the context, stamping the current activity time"""
        if not self.store.try_save(self.storage_key, context.to_record(self._clock())):
            self.logger.debug("Conversation context not persisted")

    def load_context(self) -> Optional[ConversationContext]:
        """
        Load the persisted context

        Returns:
            The saved context, or None when nothing usable is stored or the
            session has expired
        """
        record = self.store.try_load(self.storage_key)
        if record is None:
            return None

        last_activity = record.get("lastActivity")
        if isinstance(last_activity, (int, float)):
            idle_ms = to_epoch_ms(self._clock()) - last_activity
            if idle_ms > self.config.session_timeout_seconds * 1000:
                self.logger.info("Saved conversation expired, discarding it")
                self.clear_context()
                return None

        try:
            return ConversationContext.from_record(record)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.warning(f"Failed to load conversation context: {e}")
            self.clear_context()
            return None

    def clear_context(self) -> None:
        self.store.try_clear(self.storage_key)

    def is_storage_available(self) -> bool:
        return self.store.is_available()

    # Mutation

    def add_message_to_context(self, context: ConversationContext, message: Message) -> ConversationContext:
        """
        Append a message, keeping at most max_messages

        Overflow is folded into a summary message so the first message survives.
        """
        updated = context.append(message)

        if len(updated.messages) > self.max_messages:
            updated = self._trim(updated)

        self.save_context(updated)
        return updated

    def update_context(self, context: ConversationContext, **updates) -> ConversationContext:
        """Merge updates into the context and persist it"""
        updated = context.with_updates(**updates)
        self.save_context(updated)
        return updated

    def create_fresh_context(self) -> ConversationContext:
        return ConversationContext()

    # Limits

    def should_reset_context(self, context: ConversationContext) -> bool:
        """True when the conversation is far too long or has gone idle"""
        if len(context.messages) > self.max_messages * self.config.reset_ratio:
            return True

        last_message = context.last_message
        return last_message is not None and self._is_expired(last_message.timestamp)

    def trim_context_gracefully(self, context: ConversationContext) -> ConversationContext:
        """Fold the middle of an over-long conversation into a summary message"""
        if len(context.messages) <= self.max_messages:
            return context

        trimmed = self._trim(context)
        self.save_context(trimmed)
        return trimmed

    def _trim(self, context: ConversationContext) -> ConversationContext:
        keep = self.max_messages - 5
        messages = context.messages
        first_message = messages[0]
        recent_messages = messages[-keep:]
        dropped = messages[1:len(messages) - keep]

        summary_message = Message(
            id=f"summary_{to_epoch_ms(self._clock())}",
            content=f"[Previous conversation summary: {self._summarize_dropped(dropped)}]",
            sender=Sender.BOT,
            timestamp=recent_messages[0].timestamp,
        )

        log_conversation_event(
            self.logger, "trimmed", self.storage_key,
            dropped_messages=len(dropped), kept_messages=len(recent_messages) + 2
        )

        return context.with_updates(messages=(first_message, summary_message) + tuple(recent_messages))

    def _summarize_dropped(self, messages: Sequence[Message]) -> str:
        topics: List[str] = []
        interactions: List[str] = []

        for message in messages:
            if message.sender != Sender.USER:
                continue
            text = message.content.lower()

            if "skill" in text:
                topics.append("skills")
            if "experience" in text or "work" in text:
                topics.append("experience")
            if "project" in text:
                topics.append("projects")
            if "education" in text:
                topics.append("education")
            if "contact" in text:
                topics.append("contact")

            if "tell me about" in text:
                interactions.append("asked for details")
            if "what" in text or "how" in text:
                interactions.append("asked questions")

        topics_text = ", ".join(_unique(topics)) or "general topics"
        interactions_text = f" User {' and '.join(_unique(interactions))}." if interactions else ""
        return f"Discussed {topics_text}.{interactions_text}"

    def handle_context_limits(self, context: ConversationContext) -> ConversationContext:
        """Reset or trim the context when it is outside its limits"""
        if self.should_reset_context(context):
            log_conversation_event(
                self.logger, "reset", self.storage_key, message_count=len(context.messages)
            )
            return self.create_fresh_context()

        if len(context.messages) > self.max_messages:
            return self.trim_context_gracefully(context)

        return context

    # Sessions

    def start_new_session(self) -> ConversationContext:
        """Fresh context seeded with the welcome message"""
        now = self._clock()
        welcome_message = Message(
            id=f"welcome_{to_epoch_ms(now)}",
            content=self.assistant.render_welcome(),
            sender=Sender.BOT,
            timestamp=now,
        )
        log_conversation_event(self.logger, "started", self.storage_key)
        return self.add_message_to_context(self.create_fresh_context(), welcome_message)

    def is_new_session(self, context: Optional[ConversationContext]) -> bool:
        if context is None or not context.messages:
            return True
        return self._is_expired(context.last_message.timestamp)

    def resume_or_start_conversation(self) -> ConversationContext:
        """Resume the saved conversation, or start a new one"""
        if not self.is_storage_available():
            return self.start_new_session()

        saved_context = self.load_context()

        if self.is_new_session(saved_context):
            self.clear_context()
            return self.start_new_session()

        log_conversation_event(
            self.logger, "resumed", self.storage_key, message_count=len(saved_context.messages)
        )
        return saved_context

    # Introspection

    def get_conversation_age(self, context: ConversationContext) -> int:
        """Minutes since the first message"""
        if not context.messages:
            return 0
        age_seconds = (self._clock() - context.messages[0].timestamp).total_seconds()
        return max(0, int(age_seconds // 60))

    def is_conversation_long(self, context: ConversationContext) -> bool:
        return len(context.messages) > self.max_messages * self.config.approaching_limit_ratio

    def get_conversation_health(self, context: ConversationContext) -> ConversationHealth:
        if self.should_reset_context(context):
            status = HealthStatus.NEEDS_RESET
        elif self.is_conversation_long(context):
            status = HealthStatus.APPROACHING_LIMIT
        else:
            status = HealthStatus.HEALTHY

        return ConversationHealth(
            status=status,
            message_count=len(context.messages),
            age_minutes=self.get_conversation_age(context),
            recommendation=_RECOMMENDATIONS[status],
        )

    def get_contextual_info(self, context: ConversationContext) -> ContextualInfo:
        """Topics, mentions and flow derived from the recent user messages"""
        recent_messages = context.messages[-self.config.recent_window:]
        topics: List[str] = []
        mentioned_items: List[str] = []
        last_user_question: Optional[str] = None

        for message in recent_messages:
            if message.sender != Sender.USER:
                continue
            last_user_question = message.content
            text = message.content.lower()
            topics.extend(_recent_topics(text))
            mentioned_items.extend(match.group(0) for match in _MENTION_PATTERN.finditer(text))

        conversation_flow = "initial"
        if len(recent_messages) > 2:
            has_follow_up = any(
                message.sender == Sender.USER
                and any(phrase in message.content.lower() for phrase in _FOLLOW_UP_PHRASES)
                for message in recent_messages
            )
            conversation_flow = "follow-up" if has_follow_up else "ongoing"

        return ContextualInfo(
            recent_topics=_unique(topics),
            last_user_question=last_user_question,
            conversation_flow=conversation_flow,
            mentioned_items=_unique(mentioned_items),
        )

    def get_conversation_summary(self, context: ConversationContext) -> str:
        """Short description of what the recent messages were about"""
        topics: List[str] = []
        key_points: List[str] = []

        for message in context.messages[-self.config.history_window:]:
            if message.sender != Sender.USER:
                continue
            text = message.content.lower()

            if "skill" in text or "technology" in text:
                topics.append("skills")
            if "experience" in text or "work" in text:
                topics.append("experience")
            if "project" in text:
                topics.append("projects")
            if "education" in text or "study" in text:
                topics.append("education")
            if "contact" in text or "hire" in text:
                topics.append("contact")

            if "tell me more" in text or "elaborate" in text:
                key_points.append("User requested more details")
            if "what about" in text or "how about" in text:
                key_points.append("User asking follow-up questions")

        summary = ", ".join(_unique(topics)) or "general conversation"
        if key_points:
            summary += f" ({', '.join(key_points)})"
        return summary

    def get_conversation_stats(self, context: ConversationContext) -> Dict[str, Any]:
        messages = context.messages
        return {
            "total_messages": len(messages),
            "user_messages": sum(1 for m in messages if m.sender == Sender.USER),
            "bot_messages": sum(1 for m in messages if m.sender == Sender.BOT),
            "conversation_started": messages[0].timestamp.isoformat() if messages else None,
            "last_activity": messages[-1].timestamp.isoformat() if messages else None,
        }

    def export_conversation(self, context: ConversationContext) -> str:
        """Serialize the conversation with stats and summary for debugging"""
        wire = context.to_dict()
        return json.dumps({
            "stats": self.get_conversation_stats(context),
            "summary": self.get_conversation_summary(context),
            "messages": wire["messages"],
            "context": {
                "currentTopic": wire["currentTopic"],
                "userIntent": wire["userIntent"],
                "lastAskedAbout": wire["lastAskedAbout"],
            },
        }, indent=2, ensure_ascii=False)
