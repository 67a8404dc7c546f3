"""
Workflow state machine gating tool calls.

The validator tracks whether a browser exists, whether a page has been loaded
and whether its content has been inspected since the last navigation. Tools
declare what they need through ToolRequirements; a call whose requirements are
not met is rejected with a human-readable reason and a suggested next step.
"""

import enum
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional

from ..constants import WORKFLOW_HISTORY_LIMIT

import logging
logger = logging.getLogger(__name__)


class WorkflowState(str, enum.Enum):
    IDLE = "idle"
    BROWSER_READY = "browser_ready"
    PAGE_LOADED = "page_loaded"
    CONTENT_ANALYZED = "content_analyzed"


_RANK = {
    WorkflowState.IDLE: 0,
    WorkflowState.BROWSER_READY: 1,
    WorkflowState.PAGE_LOADED: 2,
    WorkflowState.CONTENT_ANALYZED: 3,
}


@dataclass(frozen=True)
class ToolRequirements:
    require_browser: bool = False
    require_page: bool = False
    require_content: bool = False


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error_message: Optional[str] = None
    suggested_action: Optional[str] = None


NO_REQUIREMENTS = ToolRequirements()
BROWSER = ToolRequirements(require_browser=True)
PAGE = ToolRequirements(require_browser=True, require_page=True)
CONTENT = ToolRequirements(require_browser=True, require_page=True, require_content=True)

TOOL_REQUIREMENTS: Dict[str, ToolRequirements] = {
    "start_browser": NO_REQUIREMENTS,
    "close_browser": NO_REQUIREMENTS,
    "force_close_all_chrome": NO_REQUIREMENTS,
    "navigate_to_url": BROWSER,
    "get_content": PAGE,
    "locate_element": PAGE,
    "click_element": CONTENT,
    "fill_text": CONTENT,
    "extract_media": PAGE,
    "record_network": PAGE,
    "capture_ajax": PAGE,
}

# Successful execution of these tools moves the workflow to the given state.
TRANSITIONS: Dict[str, WorkflowState] = {
    "start_browser": WorkflowState.BROWSER_READY,
    "navigate_to_url": WorkflowState.PAGE_LOADED,
    "get_content": WorkflowState.CONTENT_ANALYZED,
    "locate_element": WorkflowState.CONTENT_ANALYZED,
    "close_browser": WorkflowState.IDLE,
    "force_close_all_chrome": WorkflowState.IDLE,
}


class WorkflowValidator:
    def __init__(self, strict: bool = True, history_limit: int = WORKFLOW_HISTORY_LIMIT):
        self.strict = strict
        self._history_limit = history_limit
        self.reset()

    def reset(self) -> None:
        self.state = WorkflowState.IDLE
        self.history: Deque[dict] = deque(maxlen=self._history_limit)
        self.failures = 0

    @property
    def has_browser(self) -> bool:
        return _RANK[self.state] >= _RANK[WorkflowState.BROWSER_READY]

    @property
    def has_page(self) -> bool:
        return _RANK[self.state] >= _RANK[WorkflowState.PAGE_LOADED]

    @property
    def content_analyzed(self) -> bool:
        return self.state == WorkflowState.CONTENT_ANALYZED

    def validate(self, tool_name: str, requirements: Optional[ToolRequirements] = None) -> ValidationResult:
        req = requirements or TOOL_REQUIREMENTS.get(tool_name, NO_REQUIREMENTS)

        if req.require_browser and not self.has_browser:
            return ValidationResult(
                False,
                f"Cannot run '{tool_name}': no browser is running.",
                "Call start_browser first.",
            )
        if req.require_page and not self.has_page:
            return ValidationResult(
                False,
                f"Cannot run '{tool_name}': no page has been loaded yet.",
                "Call navigate_to_url with the page you want to work on.",
            )
        if req.require_content and self.strict and not self.content_analyzed:
            return ValidationResult(
                False,
                f"Cannot run '{tool_name}': the page content has not been inspected since the last navigation.",
                "Call get_content (or locate_element) to find the right selector first.",
            )
        return ValidationResult(True)

    def record_execution(self, tool_name: str, success: bool, error: Optional[str] = None) -> None:
        self.history.append({
            "tool": tool_name,
            "success": bool(success),
            "error": error,
            "at": time.time(),
            "state_before": self.state.value,
        })
        if not success:
            self.failures += 1
            return

        target = TRANSITIONS.get(tool_name)
        if tool_name == "start_browser" and self.has_browser:
            # Reattaching to a running browser keeps the loaded page
            return
        if target is not None and target != self.state:
            logger.debug("Workflow %s -> %s after %s", self.state.value, target.value, tool_name)
            self.state = target

    def note_navigation(self) -> None:
        """A tool other than navigate_to_url loaded a new document."""
        if self.has_browser:
            self.state = WorkflowState.PAGE_LOADED

    def summary(self) -> str:
        recent = [h["tool"] + ("" if h["success"] else " (failed)") for h in list(self.history)[-5:]]
        return (
            f"Workflow state: {self.state.value}. "
            f"Recent tools: {', '.join(recent) if recent else 'none'}. "
            f"Failed executions: {self.failures}."
        )

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "strict": self.strict,
            "browser_ready": self.has_browser,
            "page_loaded": self.has_page,
            "content_analyzed": self.content_analyzed,
            "failures": self.failures,
            "history": list(self.history),
        }


__all__ = [
    "WorkflowState",
    "ToolRequirements",
    "ValidationResult",
    "WorkflowValidator",
    "NO_REQUIREMENTS",
    "BROWSER",
    "PAGE",
    "CONTENT",
    "TOOL_REQUIREMENTS",
    "TRANSITIONS",
]
