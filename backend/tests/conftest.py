"""Shared fixtures for the trainer agent tests."""

import copy
from typing import Any, AsyncIterator, Dict, List, Optional

import pytest

from trainer_agent.schemas.events import StreamEvent
from trainer_agent.services.adapter.transport import AgentTransport
from trainer_agent.services.goals.store import GoalStore
from trainer_agent.services.stream.session import WorkoutStore


# ========================================
# Fakes
# ========================================

class RecordingGoalStore(GoalStore):
    """In-memory goal store that records every upsert."""

    def __init__(self, fail_on: Optional[set] = None):
        self.calls: List[tuple] = []
        self.rows: Dict[tuple, Dict[str, Any]] = {}
        self.fail_on = fail_on or set()

    async def upsert(self, table, key, fields):
        self.calls.append((table, dict(key), dict(fields)))
        subject = next(v for k, v in key.items() if k != "user_id")
        if subject in self.fail_on:
            raise RuntimeError(f"write failed for {subject}")
        row_key = (table,) + tuple(sorted(key.items()))
        self.rows[row_key] = {**key, **fields}
        return {**key, **fields}

    def stored(self, table, user_id, **subject) -> Optional[Dict[str, Any]]:
        row_key = (table,) + tuple(sorted({"user_id": user_id, **subject}.items()))
        return self.rows.get(row_key)


class ScriptedTransport(AgentTransport):
    """Transport that replays a fixed list of events."""

    def __init__(self, events: List[StreamEvent], error: Optional[Exception] = None):
        self.events = events
        self.error = error
        self.requests: List[tuple] = []
        self.closed = False

    async def stream(self, message, session_id=None) -> AsyncIterator[StreamEvent]:
        self.requests.append((message, session_id))
        try:
            for event in self.events:
                yield event
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


class RecordingWorkoutStore(WorkoutStore):
    def __init__(self):
        self.loaded = []
        self.added = []

    def load_from_artifact(self, artifact):
        self.loaded.append(artifact)

    def add_from_artifact(self, artifact):
        self.added.append(artifact)


# ========================================
# Payloads
# ========================================

REPS_EXERCISE = {
    "exercise_name": "Barbell Back Squat",
    "exercise_type": "reps",
    "order": 1,
    "muscles_utilized": [
        {"muscle": "Quadriceps", "share": 0.5},
        {"muscle": "Glutes", "share": 0.3},
        {"muscle": "Hamstrings", "share": 0.2},
    ],
    "goals_addressed": [{"goal": "strength", "share": 1.0}],
    "reasoning": "Primary lower body strength movement.",
    "sets": 3,
    "reps": [8, 8, 6],
    "load_each": [100.0, 100.0, 110.0],
    "load_unit": "kg",
    "rest_sec": 120,
}

HOLD_EXERCISE = {
    "exercise_name": "Plank",
    "exercise_type": "hold",
    "order": 2,
    "muscles_utilized": [{"muscle": "Abs", "share": 1.0}],
    "goals_addressed": [{"goal": "stability", "share": 1.0}],
    "reasoning": "Core endurance.",
    "sets": 2,
    "hold_sec": [45, 30],
    "rest_sec": 60,
}

DURATION_EXERCISE = {
    "exercise_name": "Easy Run",
    "exercise_type": "duration",
    "order": 3,
    "muscles_utilized": [],
    "goals_addressed": [{"goal": "endurance", "share": 1.0}],
    "reasoning": "Aerobic base.",
    "duration_min": 30,
    "distance": 5.0,
    "distance_unit": "km",
    "target_pace": "6:00/km",
}

INTERVALS_EXERCISE = {
    "exercise_name": "Bike Sprints",
    "exercise_type": "intervals",
    "order": 4,
    "group": {"id": "g1", "type": "circuit", "position": 1, "name": "Finisher", "rounds": 2},
    "muscles_utilized": [
        {"muscle": "Quadriceps", "share": 0.6},
        {"muscle": "Calves", "share": 0.4},
    ],
    "goals_addressed": [],
    "reasoning": "Anaerobic capacity.",
    "rounds": 8,
    "work_sec": 20,
    "rest_sec": 10,
}


@pytest.fixture
def reps_exercise() -> Dict[str, Any]:
    return copy.deepcopy(REPS_EXERCISE)


@pytest.fixture
def all_exercises() -> List[Dict[str, Any]]:
    return copy.deepcopy([REPS_EXERCISE, HOLD_EXERCISE, DURATION_EXERCISE, INTERVALS_EXERCISE])


@pytest.fixture
def workout_payload(all_exercises) -> Dict[str, Any]:
    return {
        "exercises": all_exercises,
        "summary": {
            "title": "Full Body Mix",
            "estimated_duration_min": 55,
            "primary_goals": ["strength", "endurance"],
            "difficulty": "intermediate",
        },
    }


@pytest.fixture
def goal_store() -> RecordingGoalStore:
    return RecordingGoalStore()


@pytest.fixture
def workout_store() -> RecordingWorkoutStore:
    return RecordingWorkoutStore()
