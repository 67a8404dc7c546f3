# mcp_browser_capture/decorators/__init__.py
#
# Stack order on every tool, outermost first:
#   tool_envelope -> exclusive_browser_access -> ensure_page_ready -> workflow_gate

from .ensure import ensure_page_ready
from .locking import exclusive_browser_access
from .envelope import tool_envelope
from .workflow import workflow_gate

__all__ = [
    "ensure_page_ready",
    "exclusive_browser_access",
    "tool_envelope",
    "workflow_gate",
]
