"""
AI service data models.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any


@dataclass(frozen=True)
class AIStatus:
    """Availability of the language-model path"""
    available: bool
    model: str
    provider: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
