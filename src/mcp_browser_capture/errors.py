"""Error taxonomy shared by the locator, the capture aggregator and the tool layer.

Only precondition failures and ``ElementNotFound`` cross component boundaries.
Channel-local capture errors are absorbed inside the capture session and never
reach this module.
"""

from typing import Any, Dict, List, Optional


class BrowserCaptureError(Exception):
    """Base class for errors surfaced to the calling agent as a JSON payload."""

    kind = "browser_capture_error"

    def __init__(self, message: str, suggested_action: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.suggested_action = suggested_action

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "ok": False,
            "error": self.kind,
            "message": self.message,
        }
        if self.suggested_action:
            payload["suggested_action"] = self.suggested_action
        return payload


class PageUnavailableError(BrowserCaptureError):
    kind = "page_unavailable"

    def __init__(self, message: str = "No active page. The browser has not been started.",
                 suggested_action: Optional[str] = "Call start_browser first, then navigate_to_url."):
        super().__init__(message, suggested_action)


class WorkflowViolation(BrowserCaptureError):
    kind = "workflow_violation"

    def __init__(self, tool_name: str, message: str,
                 suggested_action: Optional[str] = None, workflow_summary: str = ""):
        super().__init__(message, suggested_action)
        self.tool_name = tool_name
        self.workflow_summary = workflow_summary

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["tool"] = self.tool_name
        if self.workflow_summary:
            payload["workflow"] = self.workflow_summary
        return payload


class ElementNotFound(BrowserCaptureError, LookupError):
    """
    Raised by the locator once the primary selector and every fallback strategy
    came back empty.

    Attributes:
        selector: The selector the caller asked for.
        primary: The attempt record for the selector as given.
        diagnostics: One attempt record per fallback strategy, in the order tried.
    """

    kind = "element_not_found"

    def __init__(self, selector: str, primary: Optional[Dict[str, Any]] = None,
                 diagnostics: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            f"No element found for selector {selector!r} after trying all fallback strategies.",
            "Check the selector with get_content, or retry with a different selector.",
        )
        self.selector = selector
        self.primary = primary or {}
        self.diagnostics = list(diagnostics or [])

    @property
    def strategies_tried(self) -> List[str]:
        return [d.get("strategy") for d in self.diagnostics]

    def to_payload(self) -> Dict[str, Any]:
        from .locator.locator import fallback_summary

        payload = super().to_payload()
        payload["selector"] = self.selector
        payload["strategies_tried"] = self.strategies_tried
        payload["diagnostics"] = self.diagnostics
        payload["fallback_summary"] = fallback_summary(self)
        return payload


__all__ = [
    "BrowserCaptureError",
    "PageUnavailableError",
    "WorkflowViolation",
    "ElementNotFound",
]
