"""
Knowledge service - portfolio dataset and queries over it.
"""

from .knowledge_base import KnowledgeBase, get_knowledge_base, load_knowledge_base_data
from .models import (
    ContactInfo,
    Education,
    Experience,
    KnowledgeBaseData,
    PersonalInfo,
    Project,
    SearchResult,
    Skill,
)

__all__ = [
    'KnowledgeBase',
    'get_knowledge_base',
    'load_knowledge_base_data',
    'ContactInfo',
    'Education',
    'Experience',
    'KnowledgeBaseData',
    'PersonalInfo',
    'Project',
    'SearchResult',
    'Skill',
]
