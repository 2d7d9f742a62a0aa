"""
Set Goals Tool - Updates the user's category and muscle goal weights.

Each entry is applied independently and in order: categories first,
then muscles. When the same subject appears twice in one call the last
occurrence wins. A failed entry does not stop the others; it is logged
and reported under ``failed`` while the call as a whole still succeeds.
"""
from typing import Any, Dict, List, Optional, Type, Union
from dataclasses import dataclass, field

from pydantic import BaseModel, ValidationError

from trainer_agent.core.config import settings
from trainer_agent.core.logging import get_logger
from trainer_agent.services.agent.tools.base import Tool
from trainer_agent.services.goals.store import CATEGORY_TABLE, MUSCLE_TABLE, GoalStore

logger = get_logger(__name__)


class CategoryGoalInput(BaseModel):
    category: str
    weight: Union[int, float]


class MuscleGoalInput(BaseModel):
    muscle: str
    weight: Union[int, float]


@dataclass
class GoalUpdateResult:
    """Outcome of one set_goals call."""
    success: bool = True
    category_goals: List[Dict[str, Any]] = field(default_factory=list)
    muscle_goals: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the tool-call result payload."""
        result: Dict[str, Any] = {
            "success": self.success,
            "updated": {
                "category_goals": self.category_goals,
                "muscle_goals": self.muscle_goals,
            },
        }
        if self.failed:
            result["failed"] = self.failed
        return result


def clamp_weight(
    weight: float,
    low: Optional[float] = None,
    high: Optional[float] = None,
) -> float:
    """Clamp a goal weight into the configured range."""
    low = settings.GOAL_WEIGHT_MIN if low is None else low
    high = settings.GOAL_WEIGHT_MAX if high is None else high
    return max(low, min(high, weight))


class SetGoalsTool(Tool):
    """
    Tool to set or update the user's training goals.

    The reported weights echo what the agent asked for; the persisted
    weights are clamped.
    """

    name = "set_goals"
    description = "Set or update category and/or muscle training goals for the user."

    status_message = {
        "start": "Updating your goals...",
        "done": "Goals updated",
    }

    parameters = {
        "type": "object",
        "properties": {
            "category_goals": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "category": {"type": "string", "description": "Category name"},
                        "weight": {"type": "number", "description": "Priority weight (-10 to 10)"},
                    },
                    "required": ["category", "weight"],
                },
                "description": "Array of category goals to set",
            },
            "muscle_goals": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "muscle": {"type": "string", "description": "Muscle name"},
                        "weight": {"type": "number", "description": "Priority weight (-10 to 10)"},
                    },
                    "required": ["muscle", "weight"],
                },
                "description": "Array of muscle goals to set",
            },
        },
    }

    def __init__(self, store: GoalStore):
        super().__init__(name=self.name, description=self.description)
        self.store = store

    async def execute(
        self,
        user_id: str,
        category_goals: Optional[List[Dict[str, Any]]] = None,
        muscle_goals: Optional[List[Dict[str, Any]]] = None,
    ) -> GoalUpdateResult:
        """
        Upsert each goal entry for the user.

        Args:
            user_id: Owner of the goals
            category_goals: Entries like {"category": "strength", "weight": 8}
            muscle_goals: Entries like {"muscle": "Chest", "weight": -2}

        Returns:
            GoalUpdateResult listing the entries that were applied
        """
        result = GoalUpdateResult()

        for raw in category_goals or []:
            await self._apply(
                user_id, raw, CategoryGoalInput, "category", CATEGORY_TABLE,
                result.category_goals, result,
            )

        for raw in muscle_goals or []:
            await self._apply(
                user_id, raw, MuscleGoalInput, "muscle", MUSCLE_TABLE,
                result.muscle_goals, result,
            )

        logger.info(
            "Goals updated",
            user_id=user_id,
            category_count=len(result.category_goals),
            muscle_count=len(result.muscle_goals),
            failed_count=len(result.failed),
        )

        return result

    async def _apply(
        self,
        user_id: str,
        raw: Any,
        input_model: Type[BaseModel],
        subject_field: str,
        table: str,
        applied: List[Dict[str, Any]],
        result: GoalUpdateResult,
    ) -> None:
        try:
            goal = input_model.model_validate(raw)
        except ValidationError as e:
            logger.warning("Invalid goal entry", kind=subject_field, errors=e.error_count())
            result.failed.append({"kind": subject_field, "entry": raw, "error": "invalid entry"})
            return

        subject = getattr(goal, subject_field)
        try:
            await self.store.upsert(
                table,
                {"user_id": user_id, subject_field: subject},
                {"weight": clamp_weight(goal.weight)},
            )
        except Exception as e:
            logger.warning(
                "Goal upsert failed",
                kind=subject_field,
                subject=subject,
                error=str(e),
            )
            result.failed.append(
                {"kind": subject_field, subject_field: subject, "weight": goal.weight, "error": str(e)}
            )
            return

        applied.append({subject_field: subject, "weight": goal.weight})

    def format_result(self, result: GoalUpdateResult) -> str:
        """Summary line, e.g. "Updated goals - Categories: strength(8); Muscles: Chest(3)"."""
        parts = []
        if result.category_goals:
            parts.append(
                "Categories: "
                + ", ".join(f"{g['category']}({g['weight']})" for g in result.category_goals)
            )
        if result.muscle_goals:
            parts.append(
                "Muscles: "
                + ", ".join(f"{g['muscle']}({g['weight']})" for g in result.muscle_goals)
            )
        if not parts:
            return "No goals updated"
        return f"Updated goals - {'; '.join(parts)}"
