"""
Response Parser - Centralized parsing of agent workout output.

Handles extraction and validation of structured data from agent replies:
- JSON extraction from markdown blocks
- WorkoutResponse validation
- Retry feedback for the agent loop when validation fails
"""
import json
import re
from typing import Any, List, Optional
from dataclasses import dataclass, field

from trainer_agent.core.logging import get_logger
from trainer_agent.schemas.exercise import Artifact
from trainer_agent.services.artifacts.validator import (
    ArtifactValidator,
    Violation,
    ViolationKind,
)

logger = get_logger(__name__)


@dataclass
class ParsedWorkout:
    """Parsed workout generation result."""
    success: bool
    artifact: Optional[Artifact] = None
    violations: List[Violation] = field(default_factory=list)
    error: Optional[str] = None


class WorkoutOutputParser:
    """
    Parses agent replies that should contain a WorkoutResponse.

    Malformed output never becomes an Artifact: the caller gets the
    violations and a feedback string to send back to the agent instead.
    """

    def __init__(self, validator: Optional[ArtifactValidator] = None):
        self.validator = validator or ArtifactValidator()

    # ========================================
    # JSON Extraction
    # ========================================

    def clean_json_string(self, text: str) -> str:
        """
        Extract JSON from text, handling markdown blocks.

        Args:
            text: Raw agent response text

        Returns:
            Cleaned JSON string
        """
        # Try to find JSON block in markdown
        json_match = re.search(r"```json\s*([\s\S]*?)\s*```", text)
        if json_match:
            return json_match.group(1).strip()

        # Try to find any markdown code block
        code_match = re.search(r"```\s*([\s\S]*?)\s*```", text)
        if code_match:
            return code_match.group(1).strip()

        # Try to find the first '{' and last '}'
        bracket_match = re.search(r"(\{[\s\S]*\})", text)
        if bracket_match:
            return bracket_match.group(1).strip()

        return text.strip()

    def parse_json(self, text: str) -> Optional[Any]:
        """
        Parse JSON from text with error handling.

        Args:
            text: Text containing JSON

        Returns:
            Parsed value or None on failure
        """
        cleaned = self.clean_json_string(text)
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse JSON", error=str(e), length=len(cleaned))
            return None

    # ========================================
    # Workout Parsing
    # ========================================

    def parse(self, content: str, artifact_id: Optional[str] = None) -> ParsedWorkout:
        """
        Parse and validate a workout reply.

        Args:
            content: Agent response content
            artifact_id: Optional id for the resulting artifact

        Returns:
            ParsedWorkout with the artifact or the violations found
        """
        data = self.parse_json(content)

        if data is None:
            return ParsedWorkout(
                success=False,
                error="Failed to parse workout JSON"
            )

        result = self.validator.validate(data)
        if not result.ok:
            logger.info(
                "Agent workout rejected",
                violation_count=len(result.violations),
            )
            return ParsedWorkout(
                success=False,
                violations=result.violations,
                error=str(result.error),
            )

        artifact = Artifact.from_response(result.unwrap(), artifact_id=artifact_id)
        return ParsedWorkout(success=True, artifact=artifact)

    def retry_feedback(self, parsed: ParsedWorkout) -> str:
        """
        Build a correction prompt for the agent from a failed parse.

        Args:
            parsed: A ParsedWorkout with success=False

        Returns:
            Instructions listing every problem, or "" if the parse succeeded
        """
        if parsed.success:
            return ""

        if not parsed.violations:
            return (
                "Your workout could not be parsed as JSON. "
                "Reply with a single JSON object with an \"exercises\" array."
            )

        lines = ["Your workout failed validation. Fix every problem below and resend the full JSON:"]
        for v in parsed.violations:
            line = f"- {v.path or '<root>'}: {v.reason}"
            if v.kind == ViolationKind.SHARE_SUM_MISMATCH:
                line += " (rescale the shares or leave the list empty)"
            lines.append(line)
        return "\n".join(lines)
