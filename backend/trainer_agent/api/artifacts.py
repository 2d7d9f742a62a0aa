"""
Artifacts API endpoints.
"""
from typing import Any, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel

from trainer_agent.core.logging import get_logger
from trainer_agent.services.artifacts import build_artifact, validate_workout

logger = get_logger(__name__)
router = APIRouter()


# ========================================
# Request/Response Schemas
# ========================================

class ArtifactResponse(BaseModel):
    """A validated workout in the agent's artifact envelope."""
    artifact_id: str
    type: str
    schema_version: str
    title: Optional[str] = None
    summary: Optional[dict[str, Any]] = None
    payload: dict[str, Any]


# ========================================
# API Endpoints
# ========================================

@router.post("/validate", response_model=ArtifactResponse, response_model_exclude_none=True)
async def validate_artifact(
    raw: Any = Body(..., description="Candidate WorkoutResponse"),
    artifact_id: Optional[str] = None,
):
    """
    Validate a candidate workout and wrap it into an artifact.
    Returns 422 with every violation found if the workout is malformed.
    """
    result = validate_workout(raw)
    if not result.ok:
        logger.info("Rejected candidate workout", violation_count=len(result.violations))
        raise HTTPException(
            status_code=422,
            detail={
                "message": "Workout failed validation",
                "violations": result.error.to_list(),
            },
        )

    artifact = build_artifact(result.unwrap(), artifact_id=artifact_id)
    return artifact.to_wire()
