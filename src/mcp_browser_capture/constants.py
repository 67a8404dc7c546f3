"""
Global constants and configuration defaults.
No package dependencies - safe to import from anywhere.
"""

import os

# ============================================================================
# Capture Configuration
# ============================================================================

DEFAULT_CAPTURE_WAIT_MS = int(os.getenv("MCP_CAPTURE_WAIT_MS", "5000"))
"""Default length of a capture window in milliseconds."""

CAPTURE_POLL_INTERVAL_MS = int(os.getenv("MCP_CAPTURE_POLL_MS", "250"))
"""How often a capture session drains the network log and the in-page hooks."""

MAX_INTERACTIONS = int(os.getenv("MCP_CAPTURE_MAX_INTERACTIONS", "3"))
"""Upper bound on play/server/download click iterations per capture session."""

INTERACTION_SETTLE_MS = int(os.getenv("MCP_CAPTURE_SETTLE_MS", "1500"))
"""Pause after each synthetic click so the page can react."""

MAX_RESPONSE_BODY_CHARS = int(os.getenv("MCP_MAX_RESPONSE_BODY_CHARS", "200000"))
"""Response bodies longer than this are not scanned for embedded media URLs."""


# ============================================================================
# Network Recording Configuration
# ============================================================================

NETWORK_RECORD_BODY_CHARS = int(os.getenv("MCP_NETWORK_BODY_CHARS", "5000"))
"""Recorded response bodies are cut to this many characters."""

MAX_NETWORK_RECORDS = int(os.getenv("MCP_MAX_NETWORK_RECORDS", "1000"))
"""Maximum number of responses kept by one recording."""


# ============================================================================
# Rendering Configuration
# ============================================================================

SNAPSHOT_TOKEN_BUDGET = int(os.getenv("MCP_SNAPSHOT_TOKEN_BUDGET", "2000"))
"""Default approximate token cap for get_content."""


# ============================================================================
# Workflow Configuration
# ============================================================================

WORKFLOW_HISTORY_LIMIT = int(os.getenv("MCP_WORKFLOW_HISTORY_LIMIT", "50"))
"""How many tool executions the workflow validator remembers."""


__all__ = [
    "DEFAULT_CAPTURE_WAIT_MS",
    "CAPTURE_POLL_INTERVAL_MS",
    "MAX_INTERACTIONS",
    "INTERACTION_SETTLE_MS",
    "MAX_RESPONSE_BODY_CHARS",
    "NETWORK_RECORD_BODY_CHARS",
    "MAX_NETWORK_RECORDS",
    "SNAPSHOT_TOKEN_BUDGET",
    "WORKFLOW_HISTORY_LIMIT",
]
