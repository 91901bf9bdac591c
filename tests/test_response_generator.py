"""
Tests for response generation
"""

import random
from unittest.mock import Mock

import pytest

from services.chat_service.models import ConversationContext, Intent, Message, Sender
from services.response_service.response_generator import ResponseGenerator
from services.response_service.templates import ERROR_RESPONSE, ChoiceRotator, KnowledgeTemplates, mentions


@pytest.fixture
def generator(knowledge_base, conversation_manager, app_config):
    return ResponseGenerator(
        knowledge_base=knowledge_base,
        conversation_manager=conversation_manager,
        config=app_config,
        rng=random.Random(7),
    )


def _conversation(clock, *contents, **context_fields):
    """Context whose messages alternate user/bot, ending with a user message"""
    messages = []
    offset = (len(contents) - 1) % 2
    for index, content in enumerate(contents):
        sender = Sender.USER if (index + offset) % 2 == 0 else Sender.BOT
        messages.append(Message.create(content, sender, now=clock()))
    return ConversationContext(messages=tuple(messages), **context_fields)


def _ask(generator, clock, *contents, **context_fields):
    context = _conversation(clock, *contents, **context_fields)
    return generator.generate_response(contents[-1], context)


class TestTemplates:
    """Test template helpers"""

    def test_mentions_is_whole_word(self):
        assert mentions("I like java", "Java") is True
        assert mentions("I like javascript", "Java") is False
        assert mentions("next.js apps", "Next.js") is True

    def test_choice_rotator_never_repeats(self):
        rotator = ChoiceRotator(["a", "b", "c"], random.Random(1))
        picks = [rotator.next() for _ in range(50)]

        assert all(first != second for first, second in zip(picks, picks[1:]))

    def test_single_option_rotator(self):
        rotator = ChoiceRotator(["only"], random.Random(1))

        assert [rotator.next() for _ in range(3)] == ["only"] * 3

    def test_find_skill_prefers_exact_match(self, knowledge_base):
        templates = KnowledgeTemplates(knowledge_base)

        assert templates.find_skill("java").name == "Java"
        assert templates.find_skill("react").name == "React"
        assert templates.find_skill("node").name == "Node.js"
        assert templates.find_skill("cobol") is None


class TestScenarios:
    """Test end-to-end answers on the structured path"""

    def test_hello_greets_with_name(self, generator, clock, app_config):
        response = _ask(generator, clock, "Hi! I'm the assistant.", "Hello")

        assert response.intent == Intent.GREETING
        assert "Mohd Uwaish" in response.content
        assert response.source == "knowledge_base"

    def test_greeting_uses_configured_assistant_name(self, knowledge_base, conversation_manager, app_config, clock):
        app_config.assistant.name = "Ada"
        generator = ResponseGenerator(
            knowledge_base=knowledge_base,
            conversation_manager=conversation_manager,
            config=app_config,
            rng=random.Random(7),
        )

        for _ in range(4):
            assert "Ada" in _ask(generator, clock, "Hi! I'm the assistant.", "Hello").content

    def test_react_skills(self, generator, clock, knowledge_base):
        react = next(skill for skill in knowledge_base.get_skills() if skill.name == "React")

        response = _ask(generator, clock, "What are your React skills?")

        assert response.intent == Intent.SKILLS
        assert response.topic == "skills-react"
        assert "React" in response.content
        assert f"{react.level}%" in response.content

    def test_context_carries_intent_and_topic(self, generator, clock):
        response = _ask(generator, clock, "What are your React skills?")

        assert response.context.user_intent == Intent.SKILLS
        assert response.context.current_topic == "skills-react"
        assert response.context.last_asked_about == "skills"

    def test_category_skills(self, generator, clock):
        response = _ask(generator, clock, "What backend skills do you have?")

        assert "backend development" in response.content
        assert "FastAPI" in response.content

    def test_skills_overview(self, generator, clock, knowledge_base):
        response = _ask(generator, clock, "What skills do you have?")

        assert f"{len(knowledge_base.get_skills())} different technologies" in response.content

    def test_experience_overview(self, generator, clock):
        response = _ask(generator, clock, "Where have you worked?")

        assert response.intent == Intent.EXPERIENCE
        assert "Tata Consultancy Services" in response.content
        assert "years of professional experience" in response.content

    def test_current_experience(self, generator, clock, knowledge_base):
        current = knowledge_base.get_current_experience()[0]

        response = _ask(generator, clock, "What is your current role?")

        assert response.topic == "experience-current"
        assert response.content.startswith("Currently")
        assert current.company in response.content

    def test_company_experience(self, generator, clock):
        response = _ask(generator, clock, "Did you work at Tata?")

        assert "Tata Consultancy Services" in response.content
        assert "Software Engineer" in response.content

    def test_ai_projects(self, generator, clock, knowledge_base):
        first_ai = knowledge_base.get_projects_by_category("ai")[0]

        response = _ask(generator, clock, "Show me your AI projects")

        assert response.topic == "projects-ai"
        assert first_ai.title in response.content

    def test_projects_overview(self, generator, clock, knowledge_base):
        response = _ask(generator, clock, "Show me your portfolio")

        assert f"{len(knowledge_base.get_projects())} projects" in response.content

    def test_education(self, generator, clock, knowledge_base):
        response = _ask(generator, clock, "What degree are you studying?")

        assert knowledge_base.get_education().degree in response.content

    def test_contact(self, generator, clock, knowledge_base):
        response = _ask(generator, clock, "How can I contact you?")

        assert knowledge_base.get_contact_info().email in response.content

    def test_personal(self, generator, clock):
        response = _ask(generator, clock, "Who are you?")

        assert response.content.startswith("I'm Mohd Uwaish")

    def test_general_uses_search(self, generator, clock):
        response = _ask(generator, clock, "Do you like geoRAG?")

        assert response.intent == Intent.GENERAL
        assert "geoRAG" in response.content

    def test_unknown_offers_suggestions(self, generator, clock):
        response = _ask(generator, clock, "blah blah")

        assert response.intent == Intent.UNKNOWN
        assert response.content.startswith("I'm not sure I understand")

    def test_unknown_varies_between_calls(self, generator, clock):
        first = _ask(generator, clock, "blah blah").content
        second = _ask(generator, clock, "blah blah").content

        assert first != second

    def test_greeting_varies_between_calls(self, generator, clock):
        assert _ask(generator, clock, "Hello").content != _ask(generator, clock, "Hello").content


class TestFollowUps:
    """Test answers that depend on the previous turn"""

    def test_tell_me_more_about_that_after_react(self, generator, clock):
        response = _ask(
            generator, clock, "tell me more about that",
            last_asked_about="skills", current_topic="skills-react"
        )

        assert "React" in response.content
        assert response.context.current_topic == "skills-react"
        assert response.context.last_asked_about == "skills"

    def test_reference_to_mentioned_skill(self, generator, clock):
        response = _ask(
            generator, clock,
            "What are your React skills?", "I'm proficient in React!", "tell me more about that",
            last_asked_about="skills", current_topic="skills-react"
        )

        assert "React" in response.content
        assert "90%" in response.content

    def test_reference_to_previous_role(self, generator, clock):
        response = _ask(
            generator, clock,
            "Tell me about your work at Tata Consultancy Services", "Sure!", "what did you learn in that role?"
        )

        assert response.content.startswith("In that position")

    def test_skill_follow_up_on_usage(self, generator, clock):
        response = _ask(
            generator, clock, "also used it",
            last_asked_about="skills", current_topic="skills-react"
        )

        assert response.content.startswith("I've been using React")

    def test_projects_reference_uses_last_mentioned_project(self, generator, clock):
        response = _ask(
            generator, clock,
            "Tell me about the geoRAG project", "Sure!", "how was it built?"
        )

        assert response.content.startswith("I built \"geoRAG\" using")

    def test_experience_follow_up(self, generator, clock):
        response = _ask(
            generator, clock, "elaborate on the challenges",
            last_asked_about="experience", current_topic="experience-general"
        )

        assert response.content.startswith("Some of the most rewarding challenges")

    def test_projects_follow_up(self, generator, clock):
        response = _ask(
            generator, clock, "tell me more",
            last_asked_about="projects", current_topic="projects-web"
        )

        assert response.content.startswith("My web projects")


class TestAIPath:
    """Test the language-model path and its fallback"""

    def test_ai_answer_is_used(self, knowledge_base, conversation_manager, app_config, make_ai_service,
                               fake_client_cls, clock):
        generator = ResponseGenerator(
            knowledge_base, conversation_manager,
            ai_service=make_ai_service(client=fake_client_cls(replies=["Straight from the model"])),
            config=app_config,
        )

        response = _ask(generator, clock, "What are your React skills?")

        assert response.source == "ai"
        assert response.content == "Straight from the model"
        assert response.topic == "skills-react"

    def test_ai_failure_falls_back_to_templates(self, knowledge_base, conversation_manager, app_config,
                                                make_ai_service, fake_client_cls, clock):
        app_config.ai.max_retries = 0
        generator = ResponseGenerator(
            knowledge_base, conversation_manager,
            ai_service=make_ai_service(client=fake_client_cls(replies=[RuntimeError("provider down")])),
            config=app_config,
        )

        response = _ask(generator, clock, "What are your React skills?")

        assert response.source == "knowledge_base"
        assert "React" in response.content

    def test_unexpected_ai_error_falls_back_to_templates(self, knowledge_base, conversation_manager, app_config, clock):
        ai_service = Mock()
        ai_service.is_ai_available.return_value = True
        ai_service.generate_response.side_effect = KeyError("prompt")
        generator = ResponseGenerator(
            knowledge_base, conversation_manager, ai_service=ai_service, config=app_config
        )

        response = _ask(generator, clock, "What are your React skills?")

        assert response.source == "knowledge_base"
        assert "React" in response.content
        assert response.content != ERROR_RESPONSE

    def test_ai_disabled_by_feature_flag(self, knowledge_base, conversation_manager, app_config,
                                         make_ai_service, fake_client_cls, clock):
        client = fake_client_cls()
        app_config.features.enable_ai = False
        generator = ResponseGenerator(
            knowledge_base, conversation_manager,
            ai_service=make_ai_service(client=client),
            config=app_config,
        )

        response = _ask(generator, clock, "Hello")

        assert response.source == "knowledge_base"
        assert client.calls == []

    def test_status_passthrough(self, generator):
        assert generator.get_ai_status().available is False
        assert generator.test_ai_connection() is False


class TestErrors:
    def test_internal_error_becomes_apology(self, generator, clock):
        generator.templates.skills = Mock(side_effect=RuntimeError("malformed entity"))

        response = _ask(generator, clock, "What skills do you have?")

        assert response.content == ERROR_RESPONSE
        assert response.source == "error"
        assert response.intent == Intent.SKILLS
