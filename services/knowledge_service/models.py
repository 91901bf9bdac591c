"""
Knowledge base data models.

Records are validated once when the dataset is loaded and are immutable
afterwards.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

SkillCategory = Literal["frontend", "backend", "database", "rag", "other"]
SearchResultType = Literal["personal", "skill", "experience", "project"]


class KnowledgeModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class Education(KnowledgeModel):
    degree: str
    specialization: str
    university: str
    location: str
    status: str


class SocialLinks(KnowledgeModel):
    github: str
    linkedin: str
    email: str


class PersonalInfo(KnowledgeModel):
    name: str
    title: str
    email: str
    location: str
    availability: str
    bio: str
    interests: Tuple[str, ...] = ()
    education: Education
    social_links: SocialLinks


class Skill(KnowledgeModel):
    name: str
    category: SkillCategory
    level: int = Field(ge=0, le=100)
    description: Optional[str] = None


class Experience(KnowledgeModel):
    id: int
    title: str
    company: str
    location: str
    period: str
    description: str
    achievements: Tuple[str, ...] = ()
    skills: Tuple[str, ...] = ()

    @property
    def is_current(self) -> bool:
        return "present" in self.period.lower()


class Project(KnowledgeModel):
    id: int
    title: str
    description: str
    tags: Tuple[str, ...] = ()
    category: Optional[str] = None
    technologies: Optional[Tuple[str, ...]] = None
    highlights: Optional[Tuple[str, ...]] = None
    live_url: Optional[str] = None
    github_url: Optional[str] = None
    image: Optional[str] = None


class ContactInfo(KnowledgeModel):
    name: str
    email: str
    location: str
    social_links: SocialLinks


class KnowledgeBaseData(KnowledgeModel):
    personal_info: PersonalInfo
    skills: Tuple[Skill, ...] = ()
    experience: Tuple[Experience, ...] = ()
    projects: Tuple[Project, ...] = ()


@dataclass(frozen=True)
class SearchResult:
    type: SearchResultType
    data: Any
    relevance_score: int
    matched_fields: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "data": self.data.model_dump(),
            "relevanceScore": self.relevance_score,
            "matchedFields": list(self.matched_fields),
        }
