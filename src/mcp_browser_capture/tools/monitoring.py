"""Workflow and metrics tool implementations."""

import json

from ..context import get_context


async def get_workflow_status() -> str:
    ctx = get_context()
    return json.dumps({
        "ok": True,
        "summary": ctx.workflow.summary(),
        **ctx.workflow.to_dict(),
    })


async def get_metrics() -> str:
    ctx = get_context()
    return json.dumps({"ok": True, **ctx.metrics.report()}, default=str)


async def reset_metrics() -> str:
    ctx = get_context()
    ctx.metrics.reset()
    return json.dumps({"ok": True, "message": "Metrics reset"})


__all__ = ['get_workflow_status', 'get_metrics', 'reset_metrics']
