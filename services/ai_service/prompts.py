"""
Prompt construction for the language-model path.
"""

from typing import Dict, List

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from services.chat_service.models import ConversationContext, Intent, MessageKind, Sender
from services.knowledge_service.models import KnowledgeBaseData, Skill

_INTENT_FOCUS = {
    Intent.EDUCATION: "Focus on educational background, relevant coursework, and how it relates to software development.",
    Intent.CONTACT: "Focus on availability, preferred contact methods, and collaboration opportunities.",
    Intent.PERSONAL: "Focus on background, interests, career journey, and what drives you as a developer.",
}

_DEFAULT_FOCUS = (
    "Provide helpful information based on the user's question, drawing from skills, "
    "experience, projects, or personal background as relevant."
)


def _base_prompt(data: KnowledgeBaseData) -> str:
    info = data.personal_info
    education = info.education
    return f"""You are {info.name}'s AI assistant representing them on their portfolio website. Respond as if you ARE {info.name}, using first person ("I", "my", "me").

PERSONALITY & TONE:
- Be friendly, professional, and enthusiastic about technology
- Be conversational but informative
- Keep responses concise but helpful (2-4 sentences typically)
- Use a confident but humble tone

PERSONAL INFORMATION:
Name: {info.name}
Title: {info.title}
Location: {info.location}
Bio: {info.bio}
Availability: {info.availability}
Interests: {', '.join(info.interests)}

EDUCATION:
{education.degree} in {education.specialization}
{education.university}, {education.location}
Status: {education.status}

CONTACT:
Email: {info.email}
GitHub: {info.social_links.github}
LinkedIn: {info.social_links.linkedin}"""


def group_skills_by_category(skills) -> Dict[str, List[Skill]]:
    grouped: Dict[str, List[Skill]] = {}
    for skill in skills:
        grouped.setdefault(skill.category or "other", []).append(skill)
    return grouped


def _skills_block(data: KnowledgeBaseData) -> str:
    lines = [
        f"{category.upper()}: " + ", ".join(f"{s.name} ({s.level}%)" for s in skills)
        for category, skills in group_skills_by_category(data.skills).items()
    ]
    return (
        "SKILLS (respond about these when asked about technical skills):\n"
        + "\n".join(lines)
        + "\n\nFocus on discussing specific technologies, proficiency levels, and how you use them in projects."
    )


def _experience_block(data: KnowledgeBaseData) -> str:
    entries = [
        f"{exp.title} at {exp.company} ({exp.period})\n"
        f"  - {exp.description}\n"
        f"  - Key achievements: {', '.join(exp.achievements[:2])}\n"
        f"  - Technologies: {', '.join(exp.skills)}"
        for exp in data.experience
    ]
    return (
        "WORK EXPERIENCE:\n"
        + "\n\n".join(entries)
        + "\n\nFocus on specific roles, responsibilities, achievements, and technologies used."
    )


def _projects_block(data: KnowledgeBaseData) -> str:
    entries = []
    for project in data.projects:
        lines = [f"{project.title}: {project.description}", f"  - Technologies: {', '.join(project.tags)}"]
        if project.highlights:
            lines.append(f"  - Highlights: {', '.join(project.highlights)}")
        if project.live_url:
            lines.append(f"  - Live: {project.live_url}")
        if project.github_url:
            lines.append(f"  - GitHub: {project.github_url}")
        entries.append("\n".join(lines))
    return (
        "PROJECTS:\n"
        + "\n\n".join(entries)
        + "\n\nFocus on project details, technologies used, challenges solved, and outcomes."
    )


def build_system_prompt(data: KnowledgeBaseData, intent: Intent) -> str:
    """Persona preamble followed by the block for the given intent"""
    if intent == Intent.SKILLS:
        block = _skills_block(data)
    elif intent == Intent.EXPERIENCE:
        block = _experience_block(data)
    elif intent == Intent.PROJECTS:
        block = _projects_block(data)
    else:
        block = _INTENT_FOCUS.get(intent, _DEFAULT_FOCUS)

    return f"{_base_prompt(data)}\n\n{block}"


def build_conversation_history(context: ConversationContext, window: int = 6) -> str:
    """Transcript of the last messages, typing indicators excluded"""
    recent = [m for m in context.messages if m.kind != MessageKind.TYPING][-window:]
    return "\n".join(
        f"{'User' if m.sender == Sender.USER else 'Assistant'}: {m.content}" for m in recent
    )


def build_prompt_messages(
    user_message: str,
    context: ConversationContext,
    data: KnowledgeBaseData,
    intent: Intent,
    history_window: int = 6
) -> List[BaseMessage]:
    messages: List[BaseMessage] = [SystemMessage(content=build_system_prompt(data, intent))]

    history = build_conversation_history(context, history_window)
    if history.strip():
        messages.append(HumanMessage(content=history))

    messages.append(HumanMessage(content=user_message))
    return messages
