# mcp_browser_capture/decorators/locking.py

"""
One logical caller owns the page at a time.

If several agents share the server, their calls still reach the page one after
the other: every page-touching tool runs under the context's asyncio.Lock. A
capture window holds the lock for its whole duration.
"""

import json
import inspect
import functools
from typing import Optional

import logging
logger = logging.getLogger(__name__)


__all__ = [
    "exclusive_browser_access",
]


def _validate_config_or_error() -> Optional[str]:
    """
    Validate browser configuration early to provide clear error messages.

    Returns None if valid, or JSON error string if invalid.
    """
    from ..config.environment import get_env_config
    from ..context import get_context

    try:
        config = get_env_config()
    except EnvironmentError as e:
        logger.info("Invalid configuration: %s", e)
        error_payload = {
            "ok": False,
            "error": "invalid_configuration",
            "message": f"Browser configuration error: {e}. Please check your environment variables.",
            "details": {
                "optional": [
                    "CHROME_EXECUTABLE_PATH",
                    "CHROME_PROFILE_USER_DATA_DIR",
                    "CHROME_PROFILE_NAME",
                    "MCP_HEADLESS",
                    "MCP_WINDOW_SIZE",
                    "MCP_PAGE_LOAD_TIMEOUT",
                    "MCP_STRICT_WORKFLOW",
                ],
            },
        }
        return json.dumps(error_payload)

    ctx = get_context()
    if not ctx.config:
        # The context was created while the environment was still broken
        ctx.config = config
        ctx.workflow.strict = config.get("strict_workflow", True)
    return None


def exclusive_browser_access(_func=None):
    """
    Validate configuration, then serialize calls within this process.
    Use on tools that mutate or depend on exclusive browser access.
    """

    def decorator(func):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"exclusive_browser_access needs an async tool, got {func.__name__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            config_error = _validate_config_or_error()
            if config_error:
                return config_error

            from ..context import get_context

            lock = get_context().get_intra_process_lock()
            async with lock:
                return await func(*args, **kwargs)
        return wrapper

    return decorator if _func is None else decorator(_func)
