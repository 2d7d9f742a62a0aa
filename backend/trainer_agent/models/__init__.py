from trainer_agent.models.goal import UserCategoryGoal, UserMuscleGoal

__all__ = [
    "UserCategoryGoal",
    "UserMuscleGoal",
]
