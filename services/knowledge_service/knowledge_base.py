"""
Knowledge base service - read-only access to the portfolio dataset.
"""

import json
import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from config.app_config import get_config
from services.knowledge_service.models import (
    ContactInfo,
    Education,
    Experience,
    KnowledgeBaseData,
    PersonalInfo,
    Project,
    SearchResult,
    Skill,
)
from utils.exceptions import ConfigError
from utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_DATA_DIR = Path(__file__).parent / "data"

_FILES = {
    "personal_info": "personal-info.json",
    "skills": "skills.json",
    "experience": "experience.json",
    "projects": "projects.json",
}

ModelT = TypeVar("ModelT", bound=BaseModel)


def _read_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read knowledge file {path}: {e}") from e


def _load_records(path: Path, model: Type[ModelT]) -> List[ModelT]:
    """Validate every record in a JSON list, skipping malformed ones"""
    raw = _read_json(path)
    if not isinstance(raw, list):
        raise ConfigError(f"Knowledge file {path} must contain a list")

    records = []
    for index, item in enumerate(raw):
        try:
            records.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(
                f"Skipping malformed {model.__name__} record #{index} in {path.name}: "
                f"{e.error_count()} validation error(s)"
            )
    return records


def load_knowledge_base_data(data_dir: Optional[Union[str, Path]] = None) -> KnowledgeBaseData:
    """
    Load and validate the dataset

    Args:
        data_dir: Directory holding the four JSON files (bundled data by default)

    Returns:
        KnowledgeBaseData: Validated, immutable dataset

    Raises:
        ConfigError: If a file is unreadable or the personal record is invalid
    """
    directory = Path(data_dir) if data_dir else DEFAULT_DATA_DIR

    try:
        personal_info = PersonalInfo.model_validate(_read_json(directory / _FILES["personal_info"]))
    except ValidationError as e:
        raise ConfigError(f"Invalid personal info record: {e}") from e

    data = KnowledgeBaseData(
        personal_info=personal_info,
        skills=tuple(_load_records(directory / _FILES["skills"], Skill)),
        experience=tuple(_load_records(directory / _FILES["experience"], Experience)),
        projects=tuple(_load_records(directory / _FILES["projects"], Project)),
    )

    logger.info(
        f"Knowledge base loaded: {len(data.skills)} skills, "
        f"{len(data.experience)} roles, {len(data.projects)} projects"
    )
    return data


def _find_matches(item: Any, query: str, path: str, matches: List[str]) -> None:
    if isinstance(item, str):
        if query in item.lower():
            matches.append(path or "content")
    elif isinstance(item, (list, tuple)):
        for index, element in enumerate(item):
            _find_matches(element, query, f"{path}[{index}]", matches)
    elif isinstance(item, dict):
        for key, value in item.items():
            _find_matches(value, query, f"{path}.{key}" if path else key, matches)


def _relevance_score(matches: List[str]) -> int:
    score = len(matches)
    for match in matches:
        if "name" in match or "title" in match:
            score += 2
        if "description" in match or "bio" in match:
            score += 1
    return score


class KnowledgeBase:
    """
    Read-only queries over the portfolio dataset.
    Nothing here mutates the stored records.
    """

    def __init__(self, data: Optional[KnowledgeBaseData] = None, data_dir: Optional[Union[str, Path]] = None):
        self.data = data if data is not None else load_knowledge_base_data(data_dir)

    def get_personal_info(self) -> PersonalInfo:
        return self.data.personal_info

    def get_skills(self, category: Optional[str] = None) -> List[Skill]:
        if category:
            return [skill for skill in self.data.skills if skill.category == category]
        return list(self.data.skills)

    def get_skills_by_level(self, min_level: int = 0, max_level: int = 100) -> List[Skill]:
        return [skill for skill in self.data.skills if min_level <= skill.level <= max_level]

    def get_top_skills(self, limit: int = 10) -> List[Skill]:
        """Skills by descending level; equal levels keep dataset order"""
        return sorted(self.data.skills, key=lambda skill: skill.level, reverse=True)[:max(0, limit)]

    def get_experience(self) -> List[Experience]:
        return list(self.data.experience)

    def get_experience_by_company(self, company: str) -> List[Experience]:
        term = company.lower()
        return [exp for exp in self.data.experience if term in exp.company.lower()]

    def get_current_experience(self) -> List[Experience]:
        return [exp for exp in self.data.experience if exp.is_current]

    def get_projects(self) -> List[Project]:
        return list(self.data.projects)

    def get_projects_by_category(self, category: str) -> List[Project]:
        term = category.lower()
        return [
            project for project in self.data.projects
            if (project.category and term in project.category.lower())
            or any(term in tag.lower() for tag in project.tags)
        ]

    def get_projects_by_technology(self, technology: str) -> List[Project]:
        term = technology.lower()
        return [
            project for project in self.data.projects
            if any(term in tech.lower() for tech in project.technologies or ())
            or any(term in tag.lower() for tag in project.tags)
        ]

    def get_education(self) -> Education:
        return self.data.personal_info.education

    def get_contact_info(self) -> ContactInfo:
        info = self.data.personal_info
        return ContactInfo(
            name=info.name,
            email=info.email,
            location=info.location,
            social_links=info.social_links,
        )

    def search_content(self, query: str) -> List[SearchResult]:
        """
        Case-insensitive substring search over every text field

        Args:
            query: Search term

        Returns:
            Results sorted by relevance; ties keep the order personal info,
            skills, experience, projects. Empty when nothing matches.
        """
        if not query or not query.strip():
            return []

        term = query.lower()
        candidates = [("personal", self.data.personal_info)]
        candidates += [("skill", skill) for skill in self.data.skills]
        candidates += [("experience", exp) for exp in self.data.experience]
        candidates += [("project", project) for project in self.data.projects]

        results = []
        for result_type, record in candidates:
            matches: List[str] = []
            _find_matches(record.model_dump(), term, "", matches)
            if matches:
                results.append(SearchResult(
                    type=result_type,
                    data=record,
                    relevance_score=_relevance_score(matches),
                    matched_fields=matches,
                ))

        return sorted(results, key=lambda result: result.relevance_score, reverse=True)

    def search_skills(self, query: str) -> List[Skill]:
        term = query.lower()
        return [
            skill for skill in self.data.skills
            if term in skill.name.lower()
            or (skill.description and term in skill.description.lower())
            or term in skill.category
        ]

    def get_related_skills(self, technology: str) -> List[Skill]:
        term = technology.lower()
        return [
            skill for skill in self.data.skills
            if term in skill.name.lower()
            or (skill.description and term in skill.description.lower())
        ]

    def get_summary_stats(self) -> Dict[str, Any]:
        skills = self.data.skills
        category_counts: Dict[str, int] = {}
        for skill in skills:
            category_counts[skill.category] = category_counts.get(skill.category, 0) + 1

        average = sum(skill.level for skill in skills) / len(skills) if skills else 0

        return {
            "total_skills": len(skills),
            "total_experience": len(self.data.experience),
            "total_projects": len(self.data.projects),
            "skill_categories": list(category_counts),
            "average_skill_level": math.floor(average + 0.5),
            "top_skill_categories": category_counts,
        }

    def get_all_data(self) -> KnowledgeBaseData:
        return self.data


_knowledge_base: Optional[KnowledgeBase] = None


def get_knowledge_base() -> KnowledgeBase:
    """Get the knowledge base built from the configured data directory"""
    global _knowledge_base
    if _knowledge_base is None:
        _knowledge_base = KnowledgeBase(data_dir=get_config().assistant.knowledge_data_dir or None)
    return _knowledge_base
