# mcp_browser_capture/decorators/ensure.py
import json
import inspect
import functools

import logging
logger = logging.getLogger(__name__)


def _not_ready_payload(include_diagnostics: bool):
    from ..context import get_context

    ctx = get_context()
    page = ctx.page
    if page is None:
        payload = {
            "ok": False,
            "error": "browser_not_started",
            "message": "Browser session not started. Please call 'start_browser' first before using browser actions.",
            "suggested_action": "Call start_browser.",
        }
        if include_diagnostics:
            from ..utils.diagnostics import collect_diagnostics
            payload["diagnostics"] = collect_diagnostics(None, None, ctx.config)
        return json.dumps(payload)

    if not page.is_alive():
        logger.info("Browser window lost; dropping the page handle")
        ctx.reset_browser_state()
        ctx.workflow.reset()
        return json.dumps({
            "ok": False,
            "error": "browser_window_lost",
            "message": "Browser window was lost. Please call 'start_browser' to create a new session.",
            "suggested_action": "Call start_browser.",
        })
    return None


def ensure_page_ready(_func=None, *, include_diagnostics=False):
    """Short-circuit with a JSON payload when there is no live page to work on."""
    def decorator(fn):
        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def wrapper(*args, **kwargs):
                payload = _not_ready_payload(include_diagnostics)
                if payload:
                    return payload
                return await fn(*args, **kwargs)
            return wrapper
        else:
            @functools.wraps(fn)
            def wrapper(*args, **kwargs):
                payload = _not_ready_payload(include_diagnostics)
                if payload:
                    return payload
                return fn(*args, **kwargs)
            return wrapper
    return decorator if _func is None else decorator(_func)


__all__ = ["ensure_page_ready"]
