# mcp_browser_capture/tools/__init__.py
"""
MCP tool implementations - async functions that return JSON responses.

Each one assumes the decorator stack in __main__ already checked the
configuration, the page and the workflow.
"""

from .browser_management import (
    start_browser,
    close_browser,
    force_close_all_chrome,
)

from .navigation import (
    navigate_to_url,
)

from .content import (
    get_content,
)

from .interaction import (
    locate_element,
    click_element,
    fill_text,
)

from .capture import (
    extract_media,
    record_network,
    capture_ajax,
)

from .monitoring import (
    get_workflow_status,
    get_metrics,
    reset_metrics,
)

from .debugging import (
    get_debug_diagnostics_info,
)

__all__ = [
    # Browser management
    'start_browser',
    'close_browser',
    'force_close_all_chrome',
    # Navigation and content
    'navigate_to_url',
    'get_content',
    # Interaction
    'locate_element',
    'click_element',
    'fill_text',
    # Capture
    'extract_media',
    'record_network',
    'capture_ajax',
    # Monitoring
    'get_workflow_status',
    'get_metrics',
    'reset_metrics',
    # Debugging
    'get_debug_diagnostics_info',
]
