"""
Goals API endpoints.
Runs the set_goals tool on behalf of the agent service.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from trainer_agent.core.database import get_db
from trainer_agent.core.logging import get_logger
from trainer_agent.services.agent.tools import SetGoalsTool
from trainer_agent.services.goals import GoalStore, SqlGoalStore

logger = get_logger(__name__)
router = APIRouter()


# ========================================
# Request/Response Schemas
# ========================================

class SetGoalsRequest(BaseModel):
    """set_goals tool-call arguments."""
    category_goals: Optional[list[dict[str, Any]]] = Field(
        default=None, description="Entries like {category, weight}"
    )
    muscle_goals: Optional[list[dict[str, Any]]] = Field(
        default=None, description="Entries like {muscle, weight}"
    )


class SetGoalsResponse(BaseModel):
    """set_goals tool result plus its one-line summary."""
    success: bool
    updated: dict[str, list[dict[str, Any]]]
    failed: Optional[list[dict[str, Any]]] = None
    summary: str


# ========================================
# Dependencies
# ========================================

async def get_goal_store(db: AsyncSession = Depends(get_db)) -> GoalStore:
    return SqlGoalStore(db)


# ========================================
# API Endpoints
# ========================================

@router.post("/{user_id}", response_model=SetGoalsResponse, response_model_exclude_none=True)
async def set_goals(
    user_id: str,
    request: SetGoalsRequest,
    store: GoalStore = Depends(get_goal_store),
):
    """
    Set or update category and/or muscle goals for a user.
    A failing entry is reported under ``failed``; the call still succeeds.
    """
    tool = SetGoalsTool(store)
    result = await tool.execute(
        user_id=user_id,
        category_goals=request.category_goals,
        muscle_goals=request.muscle_goals,
    )
    return {**result.to_dict(), "summary": tool.format_result(result)}
