"""
Chat service data models for conversations and messages.
"""

import random
import string
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Any, Tuple

_ID_ALPHABET = string.digits + string.ascii_lowercase


class Sender(str, Enum):
    USER = "user"
    BOT = "bot"


class MessageKind(str, Enum):
    TEXT = "text"
    TYPING = "typing"


class Intent(str, Enum):
    """Category of a user message, used to select the response strategy"""
    GREETING = "greeting"
    SKILLS = "skills"
    EXPERIENCE = "experience"
    PROJECTS = "projects"
    EDUCATION = "education"
    CONTACT = "contact"
    PERSONAL = "personal"
    GENERAL = "general"
    UNKNOWN = "unknown"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC"""
    if not isinstance(value, str):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def generate_message_id(now: Optional[datetime] = None) -> str:
    """Build an id of the form msg_<epoch-ms>_<7 base36 chars>"""
    moment = now or utc_now()
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"msg_{to_epoch_ms(moment)}_{suffix}"


@dataclass(frozen=True)
class Message:
    """Individual message in a conversation"""
    id: str
    content: str
    sender: Sender
    timestamp: datetime = field(default_factory=utc_now)
    kind: MessageKind = MessageKind.TEXT

    @classmethod
    def create(cls, content: str, sender: Sender, now: Optional[datetime] = None,
               kind: MessageKind = MessageKind.TEXT) -> 'Message':
        moment = now or utc_now()
        return cls(id=generate_message_id(moment), content=content, sender=sender,
                   timestamp=moment, kind=kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "sender": self.sender.value,
            "timestamp": self.timestamp.isoformat(),
            "type": self.kind.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Message':
        return cls(
            id=str(data["id"]),
            content=str(data["content"]),
            sender=Sender(data["sender"]),
            timestamp=parse_timestamp(data["timestamp"]),
            kind=MessageKind(data.get("type", MessageKind.TEXT.value)),
        )


@dataclass(frozen=True)
class ConversationContext:
    """Conversation state; every change produces a new value"""
    messages: Tuple[Message, ...] = ()
    current_topic: Optional[str] = None
    user_intent: Optional[Intent] = None
    last_asked_about: Optional[str] = None

    def with_updates(self, **updates) -> 'ConversationContext':
        if "messages" in updates:
            updates["messages"] = tuple(updates["messages"])
        return replace(self, **updates)

    def append(self, message: Message) -> 'ConversationContext':
        return replace(self, messages=self.messages + (message,))

    @property
    def last_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape used by the chat endpoint"""
        return {
            "messages": [message.to_dict() for message in self.messages],
            "currentTopic": self.current_topic,
            "userIntent": self.user_intent.value if self.user_intent else None,
            "lastAskedAbout": self.last_asked_about,
        }

    def to_record(self, last_activity: datetime) -> Dict[str, Any]:
        """Persisted shape stored under the conversation key"""
        record = self.to_dict()
        record["lastActivity"] = to_epoch_ms(last_activity)
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'ConversationContext':
        """
        Rebuild a context from its persisted shape

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed
        """
        if not isinstance(record, dict) or not isinstance(record.get("messages"), list):
            raise ValueError("Conversation record has no message list")

        intent = record.get("userIntent")
        return cls(
            messages=tuple(Message.from_dict(item) for item in record["messages"]),
            current_topic=record.get("currentTopic"),
            user_intent=Intent(intent) if intent else None,
            last_asked_about=record.get("lastAskedAbout"),
        )
