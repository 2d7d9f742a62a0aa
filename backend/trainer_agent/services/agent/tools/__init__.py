"""
Agent Tools - Callable tools and structured-output parsing for the agent loop.
"""
from typing import Any, Dict, List

from trainer_agent.services.agent.tools.base import Tool
from trainer_agent.services.agent.tools.goals import GoalUpdateResult, SetGoalsTool
from trainer_agent.services.agent.tools.response_parser import ParsedWorkout, WorkoutOutputParser

TOOL_CLASSES: List[type[Tool]] = [SetGoalsTool]


def get_openai_tools() -> List[Dict[str, Any]]:
    """Return all tool schemas in OpenAI function-calling format."""
    return [tool.function_schema() for tool in TOOL_CLASSES]


__all__ = [
    "Tool",
    "SetGoalsTool",
    "GoalUpdateResult",
    "WorkoutOutputParser",
    "ParsedWorkout",
    "get_openai_tools",
]
