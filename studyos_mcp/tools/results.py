"""
Assignment Result Tools
"""

from typing import List

from ..base import BackendTool, ToolParameter
from .knowledge import OUTCOMES, optional_text


class LogCompletionResultTool(BackendTool):
    """Record whether a generated assignment passed, so later answers can improve."""

    acknowledgment = "I logged this assignment outcome so I can learn from it in the future."

    @property
    def name(self) -> str:
        return "log_completion_result"

    @property
    def title(self) -> str:
        return "Log assignment result"

    @property
    def description(self) -> str:
        return (
            "Log whether a generated assignment was successful or failed, "
            "including teacher feedback."
        )

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            optional_text("course", "Course the assignment belongs to"),
            optional_text("assignment_type", "Assignment category"),
            optional_text("subtopic", "Subtopic within the course"),
            ToolParameter(
                name="original_prompt",
                type="string",
                description="The assignment prompt",
                required=True,
            ),
            ToolParameter(
                name="model_answer",
                type="string",
                description="The answer that was submitted",
                required=True,
            ),
            ToolParameter(
                name="outcome",
                type="string",
                description="Whether the attempt succeeded",
                required=True,
                enum=OUTCOMES,
            ),
            ToolParameter(
                name="score",
                type="number",
                description="Grade received",
                required=False,
                nullable=True,
            ),
            optional_text("teacher_feedback", "Feedback from the teacher"),
        ]
