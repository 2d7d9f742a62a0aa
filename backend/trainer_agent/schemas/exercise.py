"""
Exercise schema definitions for the 4-type exercise system.

Every exercise is one of:
- reps: count repetitions across sets (strength, bodyweight)
- hold: hold positions for time (isometric, balance, static stretches)
- duration: continuous effort (cardio, yoga flows)
- intervals: work/rest cycles (HIIT, tabata)

The union is closed and tagged by ``exercise_type``. Share-sum checks on
``muscles_utilized`` / ``goals_addressed`` are applied by the artifact
validator, after the per-field checks below.
"""
import secrets
from typing import Annotated, Any, List, Literal, Optional, Union, get_args

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationInfo,
    field_validator,
)


MuscleName = Literal[
    "Chest", "Back", "Shoulders", "Biceps", "Triceps", "Abs",
    "Lower Back", "Quadriceps", "Hamstrings", "Glutes", "Calves",
    "Trapezius", "Abductors", "Adductors", "Forearms", "Neck",
]
GroupType = Literal["circuit", "superset", "giant_set", "warmup", "cooldown", "sequence"]
ExerciseType = Literal["reps", "hold", "duration", "intervals"]
Difficulty = Literal["beginner", "intermediate", "advanced"]

VALID_MUSCLES: tuple[str, ...] = get_args(MuscleName)
GROUP_TYPES: tuple[str, ...] = get_args(GroupType)
EXERCISE_TYPES: tuple[str, ...] = get_args(ExerciseType)

# Strict scalars: "3", true and 120.0 are rejected where an integer is expected
# rather than silently coerced. JSON integers are still accepted as floats.
PositiveInt = Annotated[StrictInt, Field(gt=0)]
NonNegativeInt = Annotated[StrictInt, Field(ge=0)]
PositiveFloat = Annotated[StrictFloat, Field(gt=0)]
NonNegativeFloat = Annotated[StrictFloat, Field(ge=0)]
Share = Annotated[StrictFloat, Field(ge=0, le=1)]


class FrozenModel(BaseModel):
    """Read-only once validated."""
    model_config = ConfigDict(frozen=True)


class MuscleUtilization(FrozenModel):
    """Muscle worked and its utilization share."""
    muscle: MuscleName
    share: Share


class GoalUtilization(FrozenModel):
    """How much an exercise addresses a goal category."""
    goal: StrictStr
    share: Share


class ExerciseGroup(FrozenModel):
    """
    Membership in a circuit, superset, etc.

    ``name``, ``rounds`` and ``rest_between_rounds_sec`` are only meaningful
    on the first member of the group.
    """
    id: StrictStr
    type: GroupType
    position: PositiveInt
    name: Optional[StrictStr] = None
    rounds: Optional[PositiveInt] = None
    rest_between_rounds_sec: Optional[NonNegativeInt] = None


class BaseExercise(FrozenModel):
    """Fields shared by all exercise types."""

    # Identity & ordering
    exercise_name: StrictStr
    order: PositiveInt

    # Grouping (circuits, supersets, ...)
    group: Optional[ExerciseGroup] = None

    # Metadata
    muscles_utilized: List[MuscleUtilization]
    goals_addressed: List[GoalUtilization]
    reasoning: StrictStr = Field(max_length=300)
    exercise_description: Optional[StrictStr] = None
    equipment: Optional[List[StrictStr]] = None


def _check_per_set(value: Optional[list], info: ValidationInfo) -> Optional[list]:
    """Per-set lists must have one entry per set."""
    sets = info.data.get("sets")
    if value is not None and sets is not None and len(value) != sets:
        raise ValueError(f"expected {sets} entries (one per set), got {len(value)}")
    return value


class RepsExercise(BaseExercise):
    exercise_type: Literal["reps"]
    sets: PositiveInt
    reps: List[PositiveInt]
    load_each: Optional[List[Optional[NonNegativeFloat]]] = None  # None = bodyweight
    load_unit: Optional[Literal["lbs", "kg"]] = None
    rest_sec: NonNegativeInt

    @field_validator("reps", "load_each")
    @classmethod
    def check_per_set(cls, value: Optional[list], info: ValidationInfo) -> Optional[list]:
        return _check_per_set(value, info)


class HoldExercise(BaseExercise):
    exercise_type: Literal["hold"]
    sets: PositiveInt
    hold_sec: List[PositiveInt]
    rest_sec: NonNegativeInt

    @field_validator("hold_sec")
    @classmethod
    def check_per_set(cls, value: Optional[list], info: ValidationInfo) -> Optional[list]:
        return _check_per_set(value, info)


class DurationExercise(BaseExercise):
    exercise_type: Literal["duration"]
    duration_min: PositiveFloat
    distance: Optional[PositiveFloat] = None
    distance_unit: Optional[Literal["km", "mi"]] = None
    target_pace: Optional[StrictStr] = None


class IntervalsExercise(BaseExercise):
    exercise_type: Literal["intervals"]
    rounds: PositiveInt
    work_sec: PositiveInt
    rest_sec: NonNegativeInt


Exercise = Annotated[
    Union[RepsExercise, HoldExercise, DurationExercise, IntervalsExercise],
    Field(discriminator="exercise_type"),
]

EXERCISE_VARIANTS: dict[str, type[BaseExercise]] = {
    "reps": RepsExercise,
    "hold": HoldExercise,
    "duration": DurationExercise,
    "intervals": IntervalsExercise,
}


class WorkoutSummary(FrozenModel):
    """Optional overview of a generated workout."""
    title: Optional[str] = None
    estimated_duration_min: Optional[PositiveFloat] = None
    primary_goals: Optional[List[str]] = None
    muscles_targeted: Optional[List[str]] = None
    difficulty: Optional[Difficulty] = None


class WorkoutResponse(BaseModel):
    """The full structured payload the agent must produce."""
    exercises: List[Exercise] = Field(min_length=1)
    summary: Optional[WorkoutSummary] = None


def new_artifact_id() -> str:
    """Short artifact identifier, e.g. ``art_x7k2m9p4``."""
    return f"art_{secrets.token_hex(4)}"


class Artifact(BaseModel):
    """
    A validated workout plan attached to a single assistant message.

    Immutable once built. Applying it to the active workout (start, add,
    replace) is delegated to the workout store.
    """
    model_config = ConfigDict(frozen=True)

    artifact_id: str = Field(default_factory=new_artifact_id)
    type: str = "exercise_list"
    schema_version: str = "1.0"
    title: Optional[str] = None
    summary: Optional[WorkoutSummary] = None
    exercises: tuple[Exercise, ...]

    @classmethod
    def from_response(
        cls,
        response: WorkoutResponse,
        artifact_id: Optional[str] = None,
    ) -> "Artifact":
        """Wrap a validated WorkoutResponse. The artifact owns copies of its exercises."""
        summary = response.summary.model_copy(deep=True) if response.summary else None
        fields: dict[str, Any] = {
            "exercises": tuple(e.model_copy(deep=True) for e in response.exercises),
            "summary": summary,
            "title": response.summary.title if response.summary else None,
        }
        if artifact_id:
            fields["artifact_id"] = artifact_id
        return cls(**fields)

    def to_wire(self) -> dict[str, Any]:
        """Serialize in the agent's artifact envelope (exercises under payload)."""
        data = self.model_dump(mode="json", exclude={"exercises"}, exclude_none=True)
        data["payload"] = {
            "exercises": [e.model_dump(mode="json", exclude_none=True) for e in self.exercises],
        }
        return data
