"""
Goals module - persistence of user category and muscle goal weights.
"""
from trainer_agent.services.goals.store import (
    CATEGORY_TABLE,
    MUSCLE_TABLE,
    GoalStore,
    SqlGoalStore,
)

__all__ = ["CATEGORY_TABLE", "MUSCLE_TABLE", "GoalStore", "SqlGoalStore"]
