"""
Knowledge-base answer templates, one per intent.
"""

import random
import re
from typing import List, Optional, Sequence

from services.knowledge_service.knowledge_base import KnowledgeBase
from services.knowledge_service.models import Experience, Project, Skill

ERROR_RESPONSE = (
    "I'm sorry, I encountered an issue processing your message. Could you please try asking again? "
    "I'm here to help with questions about my skills, experience, and projects!"
)

UNKNOWN_SUGGESTIONS = (
    "I'd be happy to tell you about my skills, experience, or projects!",
    "You can ask me about my technical expertise, work background, or recent projects.",
    "Feel free to ask about my programming skills, professional experience, or portfolio projects.",
    "I can share information about my education, technical skills, or career journey.",
)

GREETING_TEMPLATES = (
    "Hi there! I'm {name}, {title}. How can I help you today?",
    "Hello! I'm {name}. Feel free to ask me about my skills, experience, or projects!",
    "Hey! Nice to meet you. I'm {name}, and I'd love to tell you about my work in software development.",
    "Hi! I'm {name}. What would you like to know about my background or experience?",
)

# keyword -> display label, checked in order
PROJECT_TECH_KEYWORDS = (
    ("react", "React"),
    ("next", "Next.js"),
    ("node", "Node.js"),
    ("python", "Python"),
    ("javascript", "JavaScript"),
    ("typescript", "TypeScript"),
    ("ai", "AI"),
    ("ml", "machine learning"),
)

_CURRENT_WORK_PATTERN = re.compile(r"\b(current|recent|now\b)")
_WEB_PATTERN = re.compile(r"\bweb")

_STOPWORDS = {
    "what", "when", "where", "which", "with", "your", "yours", "have", "does", "about",
    "tell", "there", "that", "this", "these", "those", "would", "could", "should",
    "know", "like", "from", "into", "much", "many", "some", "were", "been", "they",
}


def mentions(text: str, term: str) -> bool:
    """Whole-word, case-insensitive occurrence of term in text"""
    return re.search(rf"(?<![a-z0-9]){re.escape(term.lower())}(?![a-z0-9])", text.lower()) is not None


def _normalize(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower())


def join_list(items: Sequence[str]) -> str:
    return ", ".join(items)


def format_years(value: float) -> str:
    return f"{value:g}"


class ChoiceRotator:
    """Random choice that never repeats the previous pick"""

    def __init__(self, options: Sequence[str], rng: random.Random):
        self.options = tuple(options)
        self.rng = rng
        self._last: Optional[str] = None

    def next(self) -> str:
        candidates = [o for o in self.options if o != self._last] or list(self.options)
        self._last = self.rng.choice(candidates)
        return self._last


class KnowledgeTemplates:
    """Compose answers from knowledge-base facts"""

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        rng: Optional[random.Random] = None,
        assistant_name: Optional[str] = None
    ):
        self.knowledge_base = knowledge_base
        # Greetings introduce the configured persona; the dataset name is the fallback
        self.assistant_name = assistant_name
        rng = rng or random.Random()
        self._greetings = ChoiceRotator(GREETING_TEMPLATES, rng)
        self._suggestions = ChoiceRotator(UNKNOWN_SUGGESTIONS, rng)

    # Lookups shared with the follow-up logic

    def find_skill(self, term: str) -> Optional[Skill]:
        """Exact normalized name first, then the first skill containing the term"""
        wanted = _normalize(term)
        if not wanted:
            return None
        skills = self.knowledge_base.get_skills()
        for skill in skills:
            if _normalize(skill.name) == wanted:
                return skill
        for skill in skills:
            if wanted in _normalize(skill.name):
                return skill
        return None

    def find_mentioned_skill(self, message: str) -> Optional[Skill]:
        for skill in self.knowledge_base.get_skills():
            if mentions(message, skill.name):
                return skill
        return None

    def find_mentioned_experience(self, text: str) -> Optional[Experience]:
        lowered = text.lower()
        for exp in self.knowledge_base.get_experience():
            company = exp.company.lower()
            first_word = company.split()[0] if company.split() else company
            if company in lowered or (len(first_word) >= 4 and mentions(lowered, first_word)):
                return exp
        return None

    def find_mentioned_project(self, text: str) -> Optional[Project]:
        lowered = text.lower()
        for project in self.knowledge_base.get_projects():
            if project.title.lower() in lowered:
                return project
        return None

    def projects_for_keyword(self, keyword: str) -> List[Project]:
        if keyword in ("ai", "ml"):
            return self.knowledge_base.get_projects_by_category("ai")
        return self.knowledge_base.get_projects_by_technology(keyword)

    # Intent templates

    def greeting(self) -> str:
        info = self.knowledge_base.get_personal_info()
        name = self.assistant_name or info.name
        return self._greetings.next().format(name=name, title=info.title)

    def skill_detail(self, skill: Skill) -> str:
        description = f" {skill.description}" if skill.description else ""
        return (
            f"Yes, I'm proficient in {skill.name}! I have a {skill.level}% proficiency level in this technology."
            f"{description} Would you like to know about other skills in the {skill.category} category?"
        )

    def skills(self, message: str) -> str:
        text = message.lower()

        skill = self.find_mentioned_skill(text)
        if skill:
            return self.skill_detail(skill)

        if "frontend" in text or "front-end" in text:
            names = join_list(s.name for s in self.knowledge_base.get_skills("frontend"))
            return (
                f"I have strong frontend development skills! My main frontend technologies include: {names}. "
                "I particularly enjoy working with modern frameworks and creating responsive user interfaces."
            )

        if "backend" in text or "back-end" in text:
            names = join_list(s.name for s in self.knowledge_base.get_skills("backend"))
            return (
                f"I'm experienced in backend development with technologies like: {names}. "
                "I enjoy building scalable APIs and working with databases."
            )

        if "database" in text:
            names = join_list(s.name for s in self.knowledge_base.get_skills("database"))
            return (
                f"I work with various database technologies including: {names}. "
                "I have experience with both SQL and NoSQL databases."
            )

        top_names = join_list(s.name for s in self.knowledge_base.get_top_skills(8))
        stats = self.knowledge_base.get_summary_stats()
        return (
            f"I have expertise in {stats['total_skills']} different technologies! My top skills include: {top_names}. "
            f"My skills span {join_list(stats['skill_categories'])} work, with an average proficiency of "
            f"{stats['average_skill_level']}%. What specific technology would you like to know more about?"
        )

    def experience_detail(self, exp: Experience) -> str:
        highlights = " and ".join(exp.achievements[:2])
        achieved = f" Among other things, I {highlights}." if highlights else ""
        return (
            f"Yes, I worked at {exp.company} as {exp.title} ({exp.period}). {exp.description}{achieved} "
            f"I used technologies like {join_list(exp.skills[:4])}."
        )

    def experience(self, message: str) -> str:
        text = message.lower()

        exp = self.find_mentioned_experience(text)
        if exp:
            return self.experience_detail(exp)

        if _CURRENT_WORK_PATTERN.search(text):
            current = self.knowledge_base.get_current_experience()
            if current:
                exp = current[0]
                recent = f" Recently I {exp.achievements[0]}." if exp.achievements else ""
                return (
                    f"Currently, I'm working as {exp.title} at {exp.company}. {exp.description} "
                    f"I'm focusing on {join_list(exp.skills[:3])}.{recent}"
                )

        experiences = self.knowledge_base.get_experience()
        years = format_years(max(2, len(experiences) * 1.5))
        companies = join_list(exp.company for exp in experiences)
        return (
            f"I have {years} years of professional experience in software development. "
            f"I've worked at companies including {companies}. My experience spans full-stack development, "
            "with a focus on modern web technologies and scalable applications. "
            "Would you like to know more about any specific role?"
        )

    def project_detail(self, project: Project, label: str) -> str:
        highlight = f" {project.highlights[0]}." if project.highlights else ""
        if project.live_url:
            link = f" You can see it live at {project.live_url}."
        elif project.github_url:
            link = f" The code is on GitHub: {project.github_url}."
        else:
            link = ""
        return (
            f"I've built several projects using {label}! One notable project is \"{project.title}\" - "
            f"{project.description}{highlight}{link}"
        )

    def projects(self, message: str) -> str:
        text = message.lower()

        project = self.find_mentioned_project(text)
        if project:
            return self.project_detail(project, join_list(project.tags[:3]))

        for keyword, label in PROJECT_TECH_KEYWORDS:
            if re.search(rf"\b{keyword}\b" if len(keyword) <= 2 else rf"\b{keyword}", text):
                related = self.projects_for_keyword(keyword)
                if related:
                    return self.project_detail(related[0], label)
                break

        if _WEB_PATTERN.search(text):
            web_projects = self.knowledge_base.get_projects_by_category("web")
            if web_projects:
                names = join_list(p.title for p in web_projects[:3])
                return (
                    f"I've developed several web applications including: {names}. These projects showcase my "
                    "skills in modern web development, responsive design, and user experience. "
                    "Which project would you like to know more about?"
                )

        projects = self.knowledge_base.get_projects()
        featured = join_list(f"\"{p.title}\"" for p in projects[:3])
        return (
            f"I've worked on {len(projects)} projects that demonstrate my technical skills! "
            f"Some highlights include: {featured}. These projects span web development, AI/ML, and full-stack "
            "applications. What type of project interests you most?"
        )

    def education(self) -> str:
        education = self.knowledge_base.get_education()
        return (
            f"I'm pursuing my {education.degree} with a specialization in {education.specialization} at "
            f"{education.university}, {education.location}. Status: {education.status}. My studies have given me "
            "a strong foundation in computer science principles, algorithms, and software engineering practices."
        )

    def contact(self) -> str:
        contact = self.knowledge_base.get_contact_info()
        info = self.knowledge_base.get_personal_info()
        return (
            f"I'm {info.availability.lower()} and would love to connect! You can reach me at {contact.email}. "
            f"I'm based in {contact.location}. You can also find me on GitHub ({contact.social_links.github}) "
            f"or LinkedIn ({contact.social_links.linkedin}). Feel free to reach out for collaboration "
            "opportunities or just to chat about technology!"
        )

    def personal(self) -> str:
        info = self.knowledge_base.get_personal_info()
        return (
            f"I'm {info.name}, a {info.title} based in {info.location}. {info.bio} "
            f"I'm passionate about {join_list(info.interests[:3])} and always excited to work on challenging "
            "projects that make a difference. What would you like to know more about?"
        )

    def _search(self, message: str):
        results = self.knowledge_base.search_content(message)
        if results:
            return results

        for word in re.findall(r"[a-z0-9.+#/-]+", message.lower()):
            word = word.strip(".-/")
            if len(word) < 4 or word in _STOPWORDS:
                continue
            results = self.knowledge_base.search_content(word)
            if results:
                return results
        return []

    def general(self, message: str) -> str:
        """Answer from the best search hit, or offer suggestions"""
        results = self._search(message)
        if not results:
            return self.unknown()

        top = results[0]
        data = top.data
        if top.type == "skill":
            description = data.description or "It's one of my key skills."
            return (
                f"I found information about {data.name}! I have {data.level}% proficiency in this "
                f"{data.category} technology. {description}"
            )
        if top.type == "experience":
            return (
                f"That relates to my experience at {data.company}! I worked as {data.title} where "
                f"{data.description[:1].lower()}{data.description[1:]}"
            )
        if top.type == "project":
            return f"I have a project related to that: \"{data.title}\" - {data.description}"
        if top.type == "personal":
            return f"That's about me! {data.bio}"

        return self.unknown()

    def unknown(self) -> str:
        return (
            f"I'm not sure I understand that question completely, but {self._suggestions.next()} "
            "What would you like to know?"
        )
