# mcp_browser_capture/decorators/envelope.py

import os
import json
import asyncio
import inspect
import datetime
import functools
import traceback
from typing import Any, Callable

from ..errors import BrowserCaptureError

import logging
logger = logging.getLogger(__name__)


__all__ = [
    "tool_envelope",
]


def _normalize(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    try:
        return json.dumps(value, ensure_ascii=False, default=lambda o: getattr(o, "__dict__", repr(o)))
    except (TypeError, ValueError):
        return str(value)


def _error_payload(err: Exception, include_tb: bool) -> str:
    if isinstance(err, BrowserCaptureError):
        logger.info("Tool call refused: %s", err)
        return json.dumps(err.to_payload(), ensure_ascii=False, default=str)

    logger.warning("Tool call failed: %s: %s", err.__class__.__name__, err)
    payload = {
        "ok": False,
        "summary": f"{err.__class__.__name__}: {err}",
        "error": {
            "type": err.__class__.__name__,
            "message": str(err),
        },
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }
    if include_tb:
        payload["error"]["traceback"] = traceback.format_exc()
    return json.dumps(payload, ensure_ascii=False)


def tool_envelope(func: Callable):
    """
    Outermost decorator for MCP tool functions:
      - Works with both async and sync callables.
      - On success: ensures the return value is a string (json.dumps for non-strings).
      - BrowserCaptureError: returns the error's own payload (precondition, not found).
      - Any other error: returns a uniform JSON failure with a summary and optional traceback.
    Environment:
      - Set MCP_TOOL_ERRORS_TRACEBACK=0 to suppress traceback in error payloads.
    """
    include_tb = os.getenv("MCP_TOOL_ERRORS_TRACEBACK", "1") not in ("0", "false", "False")

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                result = await func(*args, **kwargs)
            except asyncio.CancelledError:
                # Preserve cooperative cancellation semantics
                raise
            except Exception as e:
                return _error_payload(e, include_tb)
            return _normalize(result)
        return wrapper
    else:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                return _error_payload(e, include_tb)
            return _normalize(result)
        return wrapper
