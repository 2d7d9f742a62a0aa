"""
Artifact module - validation of agent-produced workouts.
"""
from trainer_agent.services.artifacts.validator import (
    ArtifactValidator,
    ValidationResult,
    Violation,
    ViolationKind,
    WorkoutValidationError,
    build_artifact,
    validate_or_raise,
    validate_workout,
)

__all__ = [
    "ArtifactValidator",
    "ValidationResult",
    "Violation",
    "ViolationKind",
    "WorkoutValidationError",
    "build_artifact",
    "validate_or_raise",
    "validate_workout",
]
