"""
Knowledge Base Tools
Store and retrieve course material in the StudyOS backend.
"""

from typing import List

from ..base import BackendTool, ToolParameter

OUTCOMES = ("success", "fail")


def optional_text(name: str, description: str) -> ToolParameter:
    """An optional string field that also accepts explicit null."""
    return ToolParameter(
        name=name,
        type="string",
        description=description,
        required=False,
        nullable=True,
    )


class IngestContentTool(BackendTool):
    """Save resources or assignment instructions into the knowledge base."""

    acknowledgment = "I saved this content into your StudyOS knowledge base."

    @property
    def name(self) -> str:
        return "ingest_content"

    @property
    def title(self) -> str:
        return "Ingest school content"

    @property
    def description(self) -> str:
        return (
            "Store user-provided resources or assignment instructions "
            "into the StudyOS vector database."
        )

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            optional_text("course", "Course the content belongs to"),
            optional_text("type", "Kind of content, e.g. resource or instructions"),
            optional_text("subtopic", "Subtopic within the course"),
            optional_text("assignment_type", "Assignment category, e.g. essay or lab report"),
            optional_text("source_name", "Where the content came from"),
            ToolParameter(
                name="raw_text",
                type="string",
                description="The content to store",
                required=True,
            ),
            optional_text("original_prompt", "Assignment prompt the content answers"),
            optional_text("model_answer", "Answer that was produced for the prompt"),
            ToolParameter(
                name="outcome",
                type="string",
                description="How the answer was graded",
                required=False,
                nullable=True,
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


class SearchContentTool(BackendTool):
    """Search previously ingested material."""

    acknowledgment = "Here are the most relevant chunks I found in your StudyOS knowledge base."

    @property
    def name(self) -> str:
        return "search_content"

    @property
    def title(self) -> str:
        return "Search StudyOS content"

    @property
    def description(self) -> str:
        return "Search previously ingested resources, instructions, and past assignments."

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            optional_text("course", "Restrict results to a course"),
            ToolParameter(
                name="query",
                type="string",
                description="What to search for",
                required=True,
            ),
            ToolParameter(
                name="types",
                type="array",
                description="Restrict results to these content types",
                required=False,
                nullable=True,
                items_type="string",
            ),
            optional_text("subtopic", "Restrict results to a subtopic"),
            optional_text("assignment_type", "Restrict results to an assignment category"),
            ToolParameter(
                name="top_k",
                type="number",
                description="Maximum number of chunks to return",
                required=False,
                default=8,
            ),
            ToolParameter(
                name="threshold",
                type="number",
                description="Minimum similarity score",
                required=False,
                default=0.3,
            ),
        ]
