"""
Study material recommendations.

Generates per-scope study materials with the completion model and caches
them in the response cache. Generation returns MaterialsOk or MaterialsErr;
on error the deterministic `build_fallback_materials` categories are served
and nothing is cached.

Dependencies: langchain_core, tutor_rag.core.cache, tutor_rag.boundary.llm
System role: Material recommendation service
"""

import json
import logging
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from tutor_rag.boundary.llm.completion_client import CompletionClient
from tutor_rag.core.cache.response_cache import VersionedResponseCache, content_signature
from tutor_rag.core.exceptions import CompletionError
from tutor_rag.core.rag.prompts import (
    CERTIFICATION_CATEGORY_SKELETON,
    MATERIAL_PROMPT,
    SKILL_CATEGORY_SKELETON,
)
from tutor_rag.models.materials import (
    GoalType,
    MaterialCategory,
    MaterialsErr,
    MaterialsOk,
    MaterialsResult,
    MaterialType,
    StudyMaterial,
)
from tutor_rag.models.rag import ScopeContext

logger = logging.getLogger(__name__)

_JSON_BLOCK = re.compile(r"```json\s*([\s\S]*?)\s*```")

CATEGORY_TYPES: dict[str, MaterialType] = {
    "concepts": "concept",
    "practice": "practice",
    "exams": "exam",
    "tips": "tip",
    "tutorials": "tutorial",
    "resources": "resource",
}


def category_type(category_id: str) -> MaterialType:
    return CATEGORY_TYPES.get(category_id, "concept")


def parse_materials(response: str, current_step: int) -> MaterialsResult:
    """
    Parse a model response into material categories.

    Accepts a fenced ```json block or raw JSON with a `categories` list.
    """
    match = _JSON_BLOCK.search(response)
    raw = match.group(1) if match else response

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        return MaterialsErr(reason=f"Invalid JSON: {e}")

    categories = data.get("categories") if isinstance(data, dict) else None
    if not isinstance(categories, list):
        return MaterialsErr(reason="Invalid JSON structure: 'categories' list missing")

    try:
        parsed = [_to_category(c, current_step) for c in categories if isinstance(c, dict)]
    except (PydanticValidationError, TypeError) as e:
        return MaterialsErr(reason=f"Invalid material fields: {e}")
    return MaterialsOk(categories=parsed)


def _to_category(category: dict[str, Any], current_step: int) -> MaterialCategory:
    category_id = str(category.get("id") or "concepts")
    materials = [
        StudyMaterial(
            id=f"{category_id}_{i}",
            title=item.get("title") or "제목 없음",
            description=item.get("description") or "",
            content=item.get("content") or "",
            type=category_type(category_id),
            difficulty=item.get("difficulty") or "beginner",
            estimated_time=item.get("estimatedTime") or 10,
            tags=item["tags"] if isinstance(item.get("tags"), list) else [],
            priority=item.get("priority") or 5,
            roadmap_step=current_step,
        )
        for i, item in enumerate(category.get("materials") or [], start=1)
        if isinstance(item, dict)
    ]
    return MaterialCategory(
        id=category_id,
        name=category.get("name") or category_id,
        icon=category.get("icon") or "",
        description=category.get("description") or "",
        materials=materials,
    )


def build_fallback_materials(subject: str, goal_type: GoalType) -> list[MaterialCategory]:
    """Deterministic categories served when generation fails."""
    categories = [
        MaterialCategory(
            id="concepts",
            name="핵심 개념",
            icon="💡",
            description="기본 이론과 핵심 개념 설명",
            materials=[StudyMaterial(
                id="concept_1",
                title=f"{subject} 기본 개념",
                description="핵심 개념과 용어 정리",
                content=(
                    f"{subject} 분야의 기본 개념과 핵심 용어들을 체계적으로 정리한 자료입니다. "
                    "초보자도 이해하기 쉽게 설명되어 있습니다."
                ),
                type="concept",
                difficulty="beginner",
                estimated_time=15,
                tags=["기초", "개념", "용어"],
                priority=9,
            )],
        ),
        MaterialCategory(
            id="practice",
            name="연습 문제",
            icon="✏️",
            description="실력 향상을 위한 연습 문제",
            materials=[StudyMaterial(
                id="practice_1",
                title="기초 연습 문제",
                description="개념 이해도를 점검하는 문제",
                content="학습한 개념을 바탕으로 한 기초적인 연습 문제들입니다. 단계별로 난이도가 조정되어 있습니다.",
                type="practice",
                difficulty="beginner",
                estimated_time=20,
                tags=["연습", "문제"],
                priority=8,
            )],
        ),
    ]

    if goal_type == GoalType.CERTIFICATION:
        categories += [
            MaterialCategory(
                id="exams",
                name="기출 문제",
                icon="📝",
                description="실제 시험 기출 문제",
                materials=[StudyMaterial(
                    id="exam_1",
                    title="최근 기출 문제",
                    description="실제 시험에 출제된 문제",
                    content="최근 시험에서 출제된 실제 문제들을 모아 정리했습니다. 해설과 함께 제공됩니다.",
                    type="exam",
                    difficulty="intermediate",
                    estimated_time=30,
                    tags=["기출", "시험"],
                    priority=10,
                )],
            ),
            MaterialCategory(
                id="tips",
                name="시험 팁",
                icon="🎯",
                description="합격을 위한 실전 팁",
                materials=[StudyMaterial(
                    id="tip_1",
                    title="시험 합격 전략",
                    description="효과적인 시험 준비 방법",
                    content="시험 합격을 위한 체계적인 학습 전략과 시간 관리 방법을 제공합니다.",
                    type="tip",
                    difficulty="beginner",
                    estimated_time=10,
                    tags=["전략", "팁"],
                    priority=7,
                )],
            ),
        ]
    else:
        categories += [
            MaterialCategory(
                id="tutorials",
                name="실습 가이드",
                icon="🛠️",
                description="단계별 실습 가이드",
                materials=[StudyMaterial(
                    id="tutorial_1",
                    title="실습 가이드",
                    description="단계별 실습 방법",
                    content="초보자도 따라할 수 있는 단계별 실습 가이드입니다. 실제 예제와 함께 설명합니다.",
                    type="tutorial",
                    difficulty="beginner",
                    estimated_time=25,
                    tags=["실습", "가이드"],
                    priority=8,
                )],
            ),
            MaterialCategory(
                id="resources",
                name="참고 자료",
                icon="📚",
                description="추가 학습 참고 자료",
                materials=[StudyMaterial(
                    id="resource_1",
                    title="추가 학습 자료",
                    description="심화 학습을 위한 자료",
                    content="더 깊이 있는 학습을 원하는 분들을 위한 추가 자료와 참고 링크를 제공합니다.",
                    type="resource",
                    difficulty="intermediate",
                    estimated_time=15,
                    tags=["참고", "심화"],
                    priority=6,
                )],
            ),
        ]
    return categories


class MaterialRecommendationService:
    """Cached, model-generated study materials with a deterministic fallback."""

    def __init__(self, completion: CompletionClient, cache: VersionedResponseCache) -> None:
        self._completion = completion
        self._cache = cache

    async def recommend(
        self,
        scope: ScopeContext,
        goal_type: GoalType,
        current_step: int = 0,
    ) -> list[MaterialCategory]:
        """
        Materials for a scope at its current roadmap step.

        Args:
            scope: Study scope (subject, level, progress)
            goal_type: Certification or skill improvement
            current_step: Roadmap step the learner is on

        Returns:
            list[MaterialCategory]: Generated categories, or the fallback set
        """
        key = self._cache.build_key(
            scope.scope_id,
            content_signature("materials", scope.subject, goal_type.value, current_step),
            scope.user_level,
            scope.progress,
        )
        cached = self._cache.get(key)
        if cached is not None:
            logger.info(f"{__name__}:recommend - Cache hit for scope {scope.scope_id}")
            return cached

        result = await self.generate(scope, goal_type, current_step)
        if isinstance(result, MaterialsOk):
            self._cache.set(key, result.categories)
            logger.info(
                f"{__name__}:recommend - Generated {len(result.categories)} categories "
                f"for scope {scope.scope_id}"
            )
            return result.categories

        logger.warning(f"{__name__}:recommend - Using fallback materials: {result.reason}")
        return build_fallback_materials(scope.subject, goal_type)

    async def generate(
        self,
        scope: ScopeContext,
        goal_type: GoalType,
        current_step: int = 0,
    ) -> MaterialsResult:
        """One generation attempt; never raises."""
        is_certification = goal_type == GoalType.CERTIFICATION
        messages = MATERIAL_PROMPT.format_messages(
            subject=scope.subject,
            goal_label="자격증 취득" if is_certification else "스킬 향상",
            user_level=scope.user_level.value,
            step_info=(
                f"현재 학습 단계는 {current_step}단계입니다." if current_step > 0
                else "초기 학습 단계입니다."
            ),
            focus="시험 출제 경향을 반영한 내용" if is_certification else "실무 활용 가능한 내용",
            extra_categories=(
                CERTIFICATION_CATEGORY_SKELETON if is_certification else SKILL_CATEGORY_SKELETON
            ),
        )

        settings = self._completion.settings
        try:
            response = await self._completion.complete(
                messages,
                temperature=settings.material_temperature,
                max_tokens=settings.material_max_tokens,
            )
        except CompletionError as e:
            return MaterialsErr(reason=e.message)

        return parse_materials(response, current_step)
