"""
Study material models.

Recommended materials are generated per study scope and cached; generation
returns an explicit Ok/Err result so the fallback path is a named function.

Dependencies: pydantic
System role: Material recommendation payloads
"""

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class GoalType(str, Enum):
    CERTIFICATION = "certification"
    SKILL_IMPROVEMENT = "skill_improvement"


MaterialType = Literal["concept", "practice", "exam", "tip", "tutorial", "resource"]


class StudyMaterial(BaseModel):
    id: str
    title: str
    description: str = ""
    content: str = ""
    type: MaterialType = "concept"
    difficulty: Literal["beginner", "intermediate", "advanced"] = "beginner"
    estimated_time: int = Field(default=10, description="Expected study time in minutes")
    tags: list[str] = Field(default_factory=list)
    priority: int = Field(default=5, ge=1, le=10)
    roadmap_step: int | None = None


class MaterialCategory(BaseModel):
    id: str
    name: str
    icon: str = ""
    description: str = ""
    materials: list[StudyMaterial] = Field(default_factory=list)


@dataclass(frozen=True)
class MaterialsOk:
    categories: list[MaterialCategory]


@dataclass(frozen=True)
class MaterialsErr:
    reason: str


MaterialsResult = MaterialsOk | MaterialsErr
