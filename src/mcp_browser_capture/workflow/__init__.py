from .validator import (
    WorkflowState,
    ToolRequirements,
    ValidationResult,
    WorkflowValidator,
    NO_REQUIREMENTS,
    BROWSER,
    PAGE,
    CONTENT,
)

__all__ = [
    "WorkflowState",
    "ToolRequirements",
    "ValidationResult",
    "WorkflowValidator",
    "NO_REQUIREMENTS",
    "BROWSER",
    "PAGE",
    "CONTENT",
]
