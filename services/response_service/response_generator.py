"""
Response generator - turns a user message and conversation context into an answer.

Order of strategies: language model (when available), context-aware
follow-up, follow-up elaboration on the previous topic, per-intent template.
"""

import random
from typing import List, Optional

from config.app_config import AppConfig, get_config
from services.ai_service.ai_service import AIService
from services.ai_service.models import AIStatus
from services.chat_service.conversation_manager import ContextualInfo, ConversationManager
from services.chat_service.models import ConversationContext, Intent, Sender
from services.knowledge_service.knowledge_base import KnowledgeBase, get_knowledge_base
from services.knowledge_service.models import Experience, Project, Skill
from services.response_service.intent_classifier import (
    classify_intent,
    extract_topic,
    is_context_aware_question,
    is_follow_up_question,
    topic_subject,
)
from services.response_service.models import GeneratedResponse
from services.response_service.templates import (
    ERROR_RESPONSE,
    KnowledgeTemplates,
    join_list,
    mentions,
)
from utils.exceptions import ProviderFailure
from utils.logging_config import get_error_tracker, get_logger

_NO_TOPIC_INTENTS = (Intent.GREETING, Intent.UNKNOWN)


def _contains_any(text: str, *phrases: str) -> bool:
    return any(phrase in text for phrase in phrases)


class ResponseGenerator:
    """
    Orchestrates intent classification, the AI path and the knowledge-base
    templates. generate_response never raises.
    """

    def __init__(
        self,
        knowledge_base: Optional[KnowledgeBase] = None,
        conversation_manager: Optional[ConversationManager] = None,
        ai_service: Optional[AIService] = None,
        config: Optional[AppConfig] = None,
        rng: Optional[random.Random] = None
    ):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self.knowledge_base = knowledge_base or get_knowledge_base()
        self.conversation_manager = conversation_manager or ConversationManager(
            config=self.config.conversation, assistant=self.config.assistant
        )
        self.ai_service = ai_service or AIService(self.config)
        self.templates = KnowledgeTemplates(self.knowledge_base, rng, assistant_name=self.config.assistant.name)

    def generate_response(self, user_message: str, context: ConversationContext) -> GeneratedResponse:
        """
        Answer a user message

        Args:
            user_message: Sanitized user text
            context: Conversation including the user's message

        Returns:
            GeneratedResponse: Answer text and the context updated with
            intent, topic and last_asked_about
        """
        intent = classify_intent(user_message)

        try:
            contextual_info = self.conversation_manager.get_contextual_info(context)

            topic = extract_topic(user_message, intent)
            updated_context = context.with_updates(
                user_intent=intent,
                current_topic=topic if topic is not None else context.current_topic,
                last_asked_about=intent.value if intent not in _NO_TOPIC_INTENTS else context.last_asked_about,
            )

            if self.ai_service.is_ai_available() and self.config.features.enable_ai:
                try:
                    content = self.ai_service.generate_response(
                        user_message, updated_context, self.knowledge_base.get_all_data(), intent,
                        use_fallback=False
                    )
                    return GeneratedResponse(content, intent, updated_context.current_topic, updated_context, "ai")
                except ProviderFailure as e:
                    self.logger.warning(f"AI service failed, falling back to structured responses: {e}")
                except Exception as e:
                    self.logger.error(
                        f"Unexpected error on the AI path, falling back to structured responses: {e}", exc_info=True
                    )
                    get_error_tracker().track_error(e, context="response_generator.ai_path", intent=intent.value)

            content = self._generate_structured_response(user_message, updated_context, intent, contextual_info)
            return GeneratedResponse(
                content, intent, updated_context.current_topic, updated_context, "knowledge_base"
            )

        except Exception as e:
            self.logger.error(f"Error generating response: {e}", exc_info=True)
            get_error_tracker().track_error(e, context="response_generator.generate_response", intent=intent.value)
            return GeneratedResponse(
                ERROR_RESPONSE, intent, context.current_topic, context.with_updates(user_intent=intent), "error"
            )

    def _generate_structured_response(
        self,
        user_message: str,
        context: ConversationContext,
        intent: Intent,
        contextual_info: ContextualInfo
    ) -> str:
        if is_context_aware_question(user_message, contextual_info):
            return self._context_aware_response(user_message, context, contextual_info)

        if is_follow_up_question(user_message, context):
            return self._follow_up_response(user_message, context)

        if intent == Intent.GREETING:
            return self.templates.greeting()
        if intent == Intent.SKILLS:
            return self.templates.skills(user_message)
        if intent == Intent.EXPERIENCE:
            return self.templates.experience(user_message)
        if intent == Intent.PROJECTS:
            return self.templates.projects(user_message)
        if intent == Intent.EDUCATION:
            return self.templates.education()
        if intent == Intent.CONTACT:
            return self.templates.contact()
        if intent == Intent.PERSONAL:
            return self.templates.personal()
        if intent == Intent.GENERAL:
            return self.templates.general(user_message)
        return self.templates.unknown()

    # Context-aware answers

    def _recent_text(self, context: ConversationContext) -> List[str]:
        """Recent message texts, newest first"""
        window = self.conversation_manager.config.recent_window
        return [message.content for message in reversed(context.messages[-window:])]

    def _last_mentioned_experience(self, context: ConversationContext) -> Optional[Experience]:
        for text in self._recent_text(context):
            exp = self.templates.find_mentioned_experience(text)
            if exp:
                return exp
        current = self.knowledge_base.get_current_experience()
        experiences = current or self.knowledge_base.get_experience()
        return experiences[0] if experiences else None

    def _last_mentioned_project(self, context: ConversationContext) -> Optional[Project]:
        for text in self._recent_text(context):
            project = self.templates.find_mentioned_project(text)
            if project:
                return project
        projects = self.knowledge_base.get_projects()
        return projects[0] if projects else None

    def _context_aware_response(
        self,
        user_message: str,
        context: ConversationContext,
        contextual_info: ContextualInfo
    ) -> str:
        text = user_message.lower()
        recent_topics = contextual_info.recent_topics
        mentioned_items = contextual_info.mentioned_items

        if "skills" in recent_topics and mentioned_items and (mentions(text, "that") or mentions(text, "it")):
            return self._skill_context_response(mentioned_items[-1], text)

        if "experience" in recent_topics and _contains_any(text, "that role", "that job"):
            return self._experience_context_response(text, context)

        if "projects" in recent_topics and ("that project" in text or mentions(text, "it")):
            return self._project_context_response(text, context)

        if _contains_any(text, "tell me more", "more about"):
            return self._more_info_response(recent_topics, context)

        if _contains_any(text, "what about", "how about"):
            return self._what_about_response(text, recent_topics)

        return self.templates.general(user_message)

    def _skill_context_response(self, skill_name: str, text: str) -> str:
        skill = self.templates.find_skill(skill_name)
        if skill is None:
            return "I'd be happy to tell you more about that technology! What specific aspect would you like to know about?"

        if _contains_any(text, "experience", "used"):
            return self._skill_experience_response(skill)

        if _contains_any(text, "project", "built"):
            related = self.knowledge_base.get_projects_by_technology(skill_name)
            if related:
                project = related[0]
                return (
                    f"Yes! I used {skill.name} in \"{project.title}\" - {project.description} "
                    f"It was a good fit because of its {skill.category} capabilities."
                )
            return (
                f"I've used {skill.name} in several projects. It's particularly useful for {skill.category} "
                "development and has helped me build robust, scalable applications."
            )

        description = skill.description or "It's a versatile technology that I use regularly."
        return (
            f"{skill.name} is definitely one of my stronger skills! I have {skill.level}% proficiency "
            f"and really enjoy working with it. {description}"
        )

    def _experience_context_response(self, text: str, context: ConversationContext) -> str:
        exp = self._last_mentioned_experience(context)
        if exp is None:
            return "I'd be happy to share more details about my work experience! What specific aspect interests you most?"

        first_achievement = exp.achievements[0] if exp.achievements else None

        if _contains_any(text, "challenge", "difficult"):
            detail = f"the work behind this result: I {first_achievement}" if first_achievement else (
                "implementing complex features while maintaining code quality"
            )
            return (
                f"One of the biggest challenges as {exp.title} at {exp.company} was {detail}. "
                "It pushed me to grow both technically and professionally."
            )

        if _contains_any(text, "skill", "learn"):
            return (
                f"In that position, I primarily worked with {join_list(exp.skills[:4])}. It was a great "
                "opportunity to deepen my expertise and apply these technologies in a production environment."
            )

        enjoyed = f" Among other things, I {first_achievement}." if first_achievement else ""
        return f"That role at {exp.company} was really formative for me. {exp.description}{enjoyed}"

    def _project_context_response(self, text: str, context: ConversationContext) -> str:
        project = self._last_mentioned_project(context)
        if project is None:
            return "I'd love to tell you more about my projects! Which aspect would you like to know more about?"

        highlights = project.highlights or ()

        if _contains_any(text, "technology", "built", "how"):
            technologies = project.technologies or project.tags
            extra = f" {highlights[0]}." if highlights else ""
            return f"I built \"{project.title}\" using {join_list(technologies[:4])}.{extra}"

        if _contains_any(text, "challenge", "difficult"):
            hardest = highlights[1] if len(highlights) > 1 else "getting all the components to work smoothly together"
            return (
                f"The most challenging part of \"{project.title}\" was probably this: {hardest[0].lower()}{hardest[1:]}. "
                "Overcoming it taught me a lot about software architecture and problem-solving."
            )

        extra = f" {highlights[0]}." if highlights else ""
        return f"\"{project.title}\" was really exciting to work on! {project.description}{extra}"

    def _more_info_response(self, recent_topics: List[str], context: ConversationContext) -> str:
        if "skills" in recent_topics:
            top = join_list(s.name for s in self.knowledge_base.get_top_skills(5))
            return (
                "I'd be happy to elaborate on my technical skills! The ones I rely on most are "
                f"{top}. I keep learning through personal projects and new tools. "
                "What specific area would you like me to dive deeper into?"
            )

        if "experience" in recent_topics:
            exp = self._last_mentioned_experience(context)
            where = f" Right now that means my role as {exp.title} at {exp.company}." if exp else ""
            return (
                "My professional journey has been focused on building reliable software and working with "
                f"cross-functional teams.{where} Would you like details about a specific role?"
            )

        if "projects" in recent_topics:
            return (
                f"I've built {len(self.knowledge_base.get_projects())} portfolio projects, and each one taught me "
                "something new. I like projects that are technically challenging while solving real problems. "
                "Would you like to know about the technical details or the problem-solving approach?"
            )

        return (
            "I'd be happy to provide more details! Could you be more specific about what aspect you'd like me to "
            "elaborate on? I can share more about my technical background, project experiences, or career journey."
        )

    def _what_about_response(self, text: str, recent_topics: List[str]) -> str:
        if "backend" in text and "skills" in recent_topics:
            return self.templates.skills("backend development")

        if "frontend" in text and "skills" in recent_topics:
            return self.templates.skills("frontend development")

        if "other projects" in text or ("project" in text and "projects" in recent_topics):
            projects = self.knowledge_base.get_projects()
            if len(projects) > 1:
                other = projects[1]
                return (
                    f"Another project I'm proud of is \"{other.title}\" - {other.description} "
                    f"This one used {join_list(other.tags[:3])}."
                )

        return (
            "That's a great question! Could you be more specific about what aspect you'd like to know about? "
            "I'm happy to discuss any part of my background or experience in more detail."
        )

    # Follow-ups on the previous topic

    def _follow_up_response(self, user_message: str, context: ConversationContext) -> str:
        text = user_message.lower()
        last_topic = context.last_asked_about
        subject = topic_subject(context.current_topic)

        if last_topic == Intent.SKILLS.value:
            skill = self.templates.find_skill(subject) if subject else None
            if _contains_any(text, "experience", "used"):
                return self._skill_experience_response(skill)
            if _contains_any(text, "project", "built"):
                return self._skill_project_response(skill, subject)
            return self._extended_skills_response(skill)

        if last_topic == Intent.EXPERIENCE.value:
            if _contains_any(text, "skill", "technology"):
                return self._experience_skills_response(subject)
            if _contains_any(text, "challenge", "difficult"):
                return self._experience_challenges_response()
            return self._extended_experience_response(subject)

        if last_topic == Intent.PROJECTS.value:
            projects = self._projects_for_subject(subject)
            if _contains_any(text, "technology", "built"):
                return self._project_tech_response(projects)
            if _contains_any(text, "challenge", "learn"):
                return (
                    "Every project teaches me something new, whether it's a technical skill, a better way to solve "
                    "problems, or insights about user needs. I value projects that push me out of my comfort zone."
                )
            return self._extended_projects_response(subject, projects)

        return (
            "I'd be happy to elaborate! Could you be more specific about what aspect you'd like to know more about? "
            "I can share more details about my technical skills, project experiences, or career journey."
        )

    def _skill_experience_response(self, skill: Optional[Skill]) -> str:
        if skill is None:
            return (
                "I've gained most of my experience through hands-on projects and professional work. "
                "I believe in learning by building real applications and solving actual problems."
            )

        roles = [exp for exp in self.knowledge_base.get_experience()
                 if any(mentions(s, skill.name) or mentions(skill.name, s) for s in exp.skills)]
        if roles:
            where = join_list(f"{exp.title} at {exp.company}" for exp in roles[:2])
            return (
                f"I've used {skill.name} professionally as {where}, and I'm at {skill.level}% proficiency. "
                f"It's one of my go-to technologies for {skill.category} work."
            )
        return (
            f"I've been using {skill.name} extensively in my projects. With {skill.level}% proficiency, "
            f"it's become one of my go-to technologies for {skill.category} development."
        )

    def _skill_project_response(self, skill: Optional[Skill], subject: Optional[str]) -> str:
        term = skill.name if skill else subject
        projects = self.knowledge_base.get_projects_by_technology(term) if term else []
        if not projects and subject:
            projects = self.knowledge_base.get_projects_by_technology(subject)
        if not projects:
            projects = self.knowledge_base.get_projects()

        if projects:
            project = projects[0]
            using = f" {skill.name}" if skill else " these skills"
            return (
                f"I've used{using} in projects like \"{project.title}\" - {project.description} "
                "This project really helped me apply these technologies in a real-world scenario."
            )
        return (
            "I've applied these skills in various projects, from web applications to AI-powered tools. "
            "Each project has been a learning opportunity."
        )

    def _extended_skills_response(self, skill: Optional[Skill]) -> str:
        if skill is None:
            return (
                "I'm always learning new technologies and staying up-to-date with industry trends. I particularly "
                "enjoy modern JavaScript/TypeScript, Python, and exploring AI/ML integration in applications. "
                "What specific area would you like to know more about?"
            )

        description = f" {skill.description}" if skill.description else ""
        related = self.knowledge_base.get_projects_by_technology(skill.name)
        projects = f" I've used it in projects like \"{related[0].title}\"." if related else ""
        peers = [s.name for s in self.knowledge_base.get_skills(skill.category) if s.name != skill.name][:3]
        alongside = f" I usually combine it with {join_list(peers)}." if peers else ""
        return (
            f"{skill.name} is one of my core {skill.category} skills, with {skill.level}% proficiency."
            f"{description}{projects}{alongside}"
        )

    def _experience_skills_response(self, subject: Optional[str]) -> str:
        roles = self.knowledge_base.get_current_experience() if subject == "current" else self.knowledge_base.get_experience()
        skills = list(dict.fromkeys(s for exp in roles for s in exp.skills))
        if not skills:
            return "Each role has expanded my technical toolkit and problem-solving abilities."
        return (
            f"In my professional experience, I've worked with {join_list(skills[:8])}. "
            "Each role has expanded my technical toolkit and problem-solving abilities."
        )

    def _experience_challenges_response(self) -> str:
        return (
            "Some of the most rewarding challenges I've faced include optimizing application performance, "
            "implementing complex user interfaces, and integrating multiple systems. These experiences have made me "
            "a more well-rounded developer."
        )

    def _extended_experience_response(self, subject: Optional[str]) -> str:
        if subject == "current":
            current = self.knowledge_base.get_current_experience()
            if current:
                roles = join_list(f"{exp.title} at {exp.company}" for exp in current)
                return (
                    f"At the moment I work as {roles}. {current[0].description} I enjoy contributing to the "
                    "full development lifecycle from planning to deployment."
                )

        return (
            "Throughout my career, I've focused on continuous learning and taking on challenging projects. "
            "I believe in writing clean, maintainable code and sharing knowledge with the team."
        )

    def _projects_for_subject(self, subject: Optional[str]) -> List[Project]:
        if subject in ("web", "ai"):
            return self.knowledge_base.get_projects_by_category(subject)
        return self.knowledge_base.get_projects()

    def _project_tech_response(self, projects: List[Project]) -> str:
        technologies = list(dict.fromkeys(
            tech for project in projects[:3] for tech in (project.technologies or project.tags)
        ))
        listed = f" Across these projects I used {join_list(technologies[:6])}." if technologies else ""
        return (
            "I choose technologies based on the project requirements and goals, balancing proven tools with "
            f"newer ones that add value.{listed}"
        )

    def _extended_projects_response(self, subject: Optional[str], projects: List[Project]) -> str:
        names = join_list(f"\"{p.title}\"" for p in projects[:3])
        if subject == "web" and projects:
            return (
                f"My web projects, such as {names}, focus on responsive, user-friendly applications "
                "that are technically sound and enjoyable to use."
            )
        if subject == "ai" and projects:
            return (
                f"My AI/ML projects, such as {names}, explore how language models and retrieval can solve "
                "real-world problems through usable applications."
            )
        return (
            "Each project I work on teaches me something new and helps me grow as a developer. I choose projects "
            "that challenge me and let me explore new technologies."
        )

    # Status

    def get_ai_status(self) -> AIStatus:
        return self.ai_service.get_status()

    def test_ai_connection(self) -> bool:
        return self.ai_service.test_connection()
