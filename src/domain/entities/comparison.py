from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from src.domain.entities.image_version import ImageVersion


class DifferenceType(str, Enum):
    PROMPT = "prompt"
    PARAMETERS = "parameters"
    METADATA = "metadata"
    VISUAL = "visual"


class ComparisonType(str, Enum):
    MANUAL = "manual"
    AUTO = "auto"


@dataclass(frozen=True)
class Difference:
    type: DifferenceType
    field: str
    old_value: Any
    new_value: Any
    description: str


@dataclass(frozen=True)
class Comparison:
    id: str
    version1: ImageVersion
    version2: ImageVersion
    differences: tuple[Difference, ...]
    similarity: float  # 0..1
    compared_at: datetime
    comparison_type: ComparisonType = ComparisonType.MANUAL
