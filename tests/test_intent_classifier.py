"""
Tests for intent classification and topic extraction
"""

import pytest

from services.chat_service.conversation_manager import ContextualInfo
from services.chat_service.models import ConversationContext, Intent
from services.response_service.intent_classifier import (
    classify_intent,
    extract_topic,
    has_context_reference,
    is_context_aware_question,
    is_follow_up_question,
    topic_subject,
)


class TestClassifyIntent:
    """Test ordered first-match classification"""

    @pytest.mark.parametrize("message,expected", [
        ("Hello", Intent.GREETING),
        ("hi there!", Intent.GREETING),
        ("Good morning", Intent.GREETING),
        ("Who are you?", Intent.PERSONAL),
        ("Tell me about yourself", Intent.PERSONAL),
        ("What are your React skills?", Intent.SKILLS),
        ("Which technologies do you use?", Intent.SKILLS),
        ("Where have you worked?", Intent.EXPERIENCE),
        ("What is your current role?", Intent.EXPERIENCE),
        ("Show me your portfolio", Intent.PROJECTS),
        ("What degree do you have?", Intent.EDUCATION),
        ("How can I contact you?", Intent.CONTACT),
        ("What is the meaning of life?", Intent.GENERAL),
        ("why", Intent.GENERAL),
        ("blah blah", Intent.UNKNOWN),
    ])
    def test_classification(self, message, expected):
        assert classify_intent(message) == expected

    def test_greeting_must_start_the_message(self):
        """Test greeting words in the middle do not count"""
        assert classify_intent("well, hello") != Intent.GREETING

    def test_greeting_needs_a_word_boundary(self):
        assert classify_intent("history of your work") == Intent.EXPERIENCE

    def test_earlier_rules_win(self):
        """Test a message matching several rules gets the first one"""
        assert classify_intent("Which skills did you use at work?") == Intent.SKILLS


class TestExtractTopic:
    """Test topic tags"""

    @pytest.mark.parametrize("message,intent,expected", [
        ("What are your React skills?", Intent.SKILLS, "skills-react"),
        ("Do you know JavaScript?", Intent.SKILLS, "skills-javascript"),
        ("What tools do you use?", Intent.SKILLS, "skills-general"),
        ("Tell me about your current job", Intent.EXPERIENCE, "experience-current"),
        ("Where have you worked?", Intent.EXPERIENCE, "experience-general"),
        ("Any web apps?", Intent.PROJECTS, "projects-web"),
        ("Show me your AI projects", Intent.PROJECTS, "projects-ai"),
        ("Show me your portfolio", Intent.PROJECTS, "projects-general"),
        ("What degree?", Intent.EDUCATION, "education"),
        ("Email?", Intent.CONTACT, "contact"),
        ("Who are you?", Intent.PERSONAL, "personal"),
        ("Hello", Intent.GREETING, None),
        ("blah", Intent.UNKNOWN, None),
    ])
    def test_topics(self, message, intent, expected):
        assert extract_topic(message, intent) == expected

    def test_maintain_is_not_ai(self):
        assert extract_topic("projects I maintain", Intent.PROJECTS) == "projects-general"

    @pytest.mark.parametrize("topic,expected", [
        ("skills-react", "react"),
        ("projects-ai", "ai"),
        ("skills-general", None),
        ("education", None),
        (None, None),
    ])
    def test_topic_subject(self, topic, expected):
        assert topic_subject(topic) == expected


class TestFollowUpDetection:
    """Test context references and follow-up phrasing"""

    def test_context_reference_uses_word_boundaries(self):
        assert has_context_reference("tell me more about that") is True
        assert has_context_reference("did you use it?") is True
        assert has_context_reference("Italy is nice") is False
        assert has_context_reference("whatever") is False

    def test_context_aware_needs_recent_topics_or_follow_up_flow(self):
        assert is_context_aware_question("what about that?", ContextualInfo()) is False
        assert is_context_aware_question("what about that?", ContextualInfo(recent_topics=["skills"])) is True
        assert is_context_aware_question("what about that?", ContextualInfo(conversation_flow="follow-up")) is True
        assert is_context_aware_question("hello", ContextualInfo(recent_topics=["skills"])) is False

    def test_follow_up_needs_previous_topic(self):
        context = ConversationContext(last_asked_about="skills", current_topic="skills-react")

        assert is_follow_up_question("tell me more", context) is True
        assert is_follow_up_question("tell me more", ConversationContext()) is False
        assert is_follow_up_question("hello", context) is False
