"""Debugging and diagnostic tool implementations."""

import json

from ..context import get_context
from ..utils.diagnostics import collect_diagnostics


async def get_debug_diagnostics_info() -> str:
    """Get debug diagnostics using context."""
    ctx = get_context()
    page = ctx.page

    listeners = None
    if page is not None:
        listeners = {"request": page.listener_count("request"), "response": page.listener_count("response")}

    return json.dumps({
        "ok": True,
        "summary": collect_diagnostics(page, None, ctx.config),
        "driver_initialized": ctx.is_driver_initialized(),
        "page_listeners": listeners,
        "workflow": ctx.workflow.summary(),
        "config": {k: v for k, v in ctx.config.items()},
    }, default=str)


__all__ = ['get_debug_diagnostics_info']
