"""
Artifact Validator - Checks agent-produced workouts before they become artifacts.

Validation is pure: the raw payload is never mutated and no state is kept
between calls, so a single validator can be shared freely.

All violations are collected in one pass so the agent loop can correct
every problem in a single retry:
- unknown_variant: missing or unrecognised ``exercise_type``
- field_violation: missing field, wrong type or violated bound
- share_sum_mismatch: muscle/goal shares that do not sum to ~1.0
"""
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from trainer_agent.core.config import settings
from trainer_agent.core.logging import get_logger
from trainer_agent.schemas.exercise import (
    EXERCISE_TYPES,
    EXERCISE_VARIANTS,
    Artifact,
    BaseExercise,
    GoalUtilization,
    MuscleUtilization,
    WorkoutResponse,
    WorkoutSummary,
)

logger = get_logger(__name__)

# Absorbs float rounding so a deviation of exactly the tolerance still passes
_FLOAT_SLACK = 1e-9

SHARE_FIELDS = ("muscles_utilized", "goals_addressed")

# Used to recover share lists from an exercise that failed other field checks
_SHARE_ADAPTERS = {
    "muscles_utilized": TypeAdapter(List[MuscleUtilization]),
    "goals_addressed": TypeAdapter(List[GoalUtilization]),
}


class ViolationKind(str, Enum):
    """Categories of validation failure."""
    UNKNOWN_VARIANT = "unknown_variant"
    FIELD_VIOLATION = "field_violation"
    SHARE_SUM_MISMATCH = "share_sum_mismatch"


@dataclass(frozen=True)
class Violation:
    """A single problem found in a candidate workout."""
    kind: ViolationKind
    path: str
    reason: str
    sum: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "kind": self.kind.value,
            "path": self.path,
            "reason": self.reason,
        }
        if self.sum is not None:
            result["sum"] = self.sum
        return result

    def __str__(self) -> str:
        return f"{self.path or '<root>'}: {self.reason}"


class WorkoutValidationError(Exception):
    """Raised (or returned) when a candidate workout is malformed."""

    def __init__(self, violations: Sequence[Violation]):
        self.violations: List[Violation] = list(violations)
        super().__init__(
            f"{len(self.violations)} validation error(s): "
            + "; ".join(str(v) for v in self.violations)
        )

    @property
    def kinds(self) -> set[ViolationKind]:
        return {v.kind for v in self.violations}

    def to_list(self) -> List[dict[str, Any]]:
        return [v.to_dict() for v in self.violations]


@dataclass(frozen=True)
class ValidationResult:
    """Either a validated WorkoutResponse or the error describing why not."""
    value: Optional[WorkoutResponse] = None
    error: Optional[WorkoutValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def violations(self) -> List[Violation]:
        return self.error.violations if self.error else []

    def unwrap(self) -> WorkoutResponse:
        """Return the value or raise the validation error."""
        if self.error is not None:
            raise self.error
        assert self.value is not None
        return self.value


def format_path(loc: Sequence[Any], prefix: str = "") -> str:
    """
    Render a pydantic error location as a path.

    ("reps", 0) with prefix "exercises[1]" -> "exercises[1].reps[0]"
    """
    path = prefix
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path = f"{path}.{part}" if path else str(part)
    return path


def _field_violations(error: ValidationError, prefix: str) -> List[Violation]:
    violations = []
    for detail in error.errors(include_url=False):
        reason = detail["msg"]
        if reason.startswith("Value error, "):
            reason = reason[len("Value error, "):]
        violations.append(
            Violation(
                kind=ViolationKind.FIELD_VIOLATION,
                path=format_path(detail["loc"], prefix),
                reason=reason,
            )
        )
    return violations


class ArtifactValidator:
    """
    Validates candidate WorkoutResponse payloads.

    Handles:
    - Dispatch on the exercise_type tag
    - Per-variant field checks
    - Share-sum invariant (after field checks)
    - Optional summary validation
    """

    def __init__(self, share_tolerance: Optional[float] = None):
        self.share_tolerance = (
            settings.SHARE_SUM_TOLERANCE if share_tolerance is None else share_tolerance
        )

    def validate(self, raw: Any) -> ValidationResult:
        """
        Validate an untyped (JSON-decoded) workout payload.

        Args:
            raw: Candidate payload, usually a dict parsed from agent output

        Returns:
            ValidationResult holding the WorkoutResponse or every violation found
        """
        violations: List[Violation] = []

        if not isinstance(raw, Mapping):
            violations.append(
                Violation(ViolationKind.FIELD_VIOLATION, "", "expected a JSON object")
            )
            return ValidationResult(error=WorkoutValidationError(violations))

        exercises = self._validate_exercises(raw.get("exercises"), violations)

        summary = None
        if raw.get("summary") is not None:
            try:
                summary = WorkoutSummary.model_validate(raw["summary"])
            except ValidationError as e:
                violations.extend(_field_violations(e, "summary"))

        if violations:
            logger.debug(
                "Workout validation failed",
                violation_count=len(violations),
                kinds=sorted({v.kind.value for v in violations}),
            )
            return ValidationResult(error=WorkoutValidationError(violations))

        return ValidationResult(value=WorkoutResponse(exercises=exercises, summary=summary))

    def _validate_exercises(
        self,
        items: Any,
        violations: List[Violation],
    ) -> List[BaseExercise]:
        if items is None:
            violations.append(
                Violation(ViolationKind.FIELD_VIOLATION, "exercises", "Field required")
            )
            return []
        if not isinstance(items, list):
            violations.append(
                Violation(ViolationKind.FIELD_VIOLATION, "exercises", "expected a list")
            )
            return []
        if not items:
            violations.append(
                Violation(
                    ViolationKind.FIELD_VIOLATION,
                    "exercises",
                    "must contain at least one exercise",
                )
            )
            return []

        validated = []
        for index, item in enumerate(items):
            exercise = self.validate_exercise(item, f"exercises[{index}]", violations)
            if exercise is not None:
                validated.append(exercise)
        return validated

    def validate_exercise(
        self,
        item: Any,
        path: str,
        violations: List[Violation],
    ) -> Optional[BaseExercise]:
        """
        Validate one exercise, appending any violations found.

        Returns:
            The typed exercise, or None if it is invalid
        """
        if not isinstance(item, Mapping):
            violations.append(
                Violation(ViolationKind.FIELD_VIOLATION, path, "expected a JSON object")
            )
            return None

        tag = item.get("exercise_type")
        variant = EXERCISE_VARIANTS.get(tag) if isinstance(tag, str) else None
        if variant is None:
            reason = (
                "missing exercise_type"
                if tag is None
                else f"unknown exercise_type {tag!r}"
            )
            violations.append(
                Violation(
                    ViolationKind.UNKNOWN_VARIANT,
                    f"{path}.exercise_type",
                    f"{reason}; expected one of {', '.join(EXERCISE_TYPES)}",
                )
            )
            return None

        try:
            exercise = variant.model_validate(item)
        except ValidationError as e:
            violations.extend(_field_violations(e, path))
            violations.extend(self._check_raw_shares(item, path))
            return None

        mismatches = self.check_shares(exercise, path)
        if mismatches:
            violations.extend(mismatches)
            return None
        return exercise

    def check_shares(self, exercise: BaseExercise, path: str = "") -> List[Violation]:
        """Check that non-empty share lists sum to 1.0 within tolerance."""
        mismatches = []
        for field_name in SHARE_FIELDS:
            mismatch = self._check_share_sum(getattr(exercise, field_name), field_name, path)
            if mismatch is not None:
                mismatches.append(mismatch)
        return mismatches

    def _check_raw_shares(self, item: Mapping, path: str) -> List[Violation]:
        """
        Share-sum check for an exercise whose other fields are invalid.

        Lists that do not parse on their own already carry field violations
        and are skipped.
        """
        mismatches = []
        for field_name in SHARE_FIELDS:
            try:
                entries = _SHARE_ADAPTERS[field_name].validate_python(item.get(field_name))
            except ValidationError:
                continue
            mismatch = self._check_share_sum(entries, field_name, path)
            if mismatch is not None:
                mismatches.append(mismatch)
        return mismatches

    def _check_share_sum(self, entries: Sequence[Any], field_name: str, path: str) -> Optional[Violation]:
        shares = [entry.share for entry in entries]
        if not shares:
            # Unknown attribution is allowed
            return None
        total = math.fsum(shares)
        if abs(total - 1.0) <= self.share_tolerance + _FLOAT_SLACK:
            return None
        return Violation(
            kind=ViolationKind.SHARE_SUM_MISMATCH,
            path=format_path([field_name], path),
            reason=f"shares must sum to 1.0 (±{self.share_tolerance}), got {total:.3f}",
            sum=round(total, 6),
        )


_default_validator = ArtifactValidator()


def validate_workout(raw: Any) -> ValidationResult:
    """Validate a candidate payload with the configured tolerance."""
    return _default_validator.validate(raw)


def validate_or_raise(raw: Any) -> WorkoutResponse:
    """
    Validate a candidate payload.

    Raises:
        WorkoutValidationError: If any violation is found
    """
    return _default_validator.validate(raw).unwrap()


def build_artifact(raw: Any, artifact_id: Optional[str] = None) -> Artifact:
    """
    Validate a payload and wrap it into an immutable Artifact.

    Raises:
        WorkoutValidationError: If the payload is malformed
    """
    response = raw if isinstance(raw, WorkoutResponse) else validate_or_raise(raw)
    artifact = Artifact.from_response(response, artifact_id=artifact_id)
    logger.info(
        "Built workout artifact",
        artifact_id=artifact.artifact_id,
        exercise_count=len(artifact.exercises),
    )
    return artifact
