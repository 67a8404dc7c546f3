# mcp_browser_capture/decorators/workflow.py

import json
import time
import inspect
import functools
from typing import Callable, Optional, Union

from ..errors import WorkflowViolation
from ..workflow.validator import ToolRequirements

import logging
logger = logging.getLogger(__name__)


__all__ = [
    "workflow_gate",
]


RequirementsSpec = Union[ToolRequirements, Callable[[dict], ToolRequirements], None]


def _succeeded(result) -> bool:
    """Tools report failure in-band as {"ok": false, ...}."""
    if isinstance(result, (str, bytes)):
        try:
            result = json.loads(result)
        except ValueError:
            return True
    if isinstance(result, dict):
        return result.get("ok", True) is not False
    return True


def workflow_gate(tool_name: str, requirements: RequirementsSpec = None):
    """
    Check the workflow validator before the tool runs and record the outcome after.

    ``requirements`` overrides the validator's per-tool table. It may be a
    callable receiving the tool's keyword arguments, for tools whose
    preconditions depend on how they are called.

    A rejected call raises WorkflowViolation (rendered by tool_envelope) and
    counts as a failed execution.
    """

    def decorator(func):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"workflow_gate needs an async tool, got {func.__name__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            from ..context import get_context

            ctx = get_context()
            req: Optional[ToolRequirements] = requirements(kwargs) if callable(requirements) else requirements
            verdict = ctx.workflow.validate(tool_name, req)
            if not verdict.is_valid:
                logger.info("Workflow rejected %s: %s", tool_name, verdict.error_message)
                ctx.workflow.record_execution(tool_name, False, verdict.error_message)
                ctx.metrics.record_performance(tool_name, 0.0, False)
                raise WorkflowViolation(
                    tool_name,
                    verdict.error_message or f"Cannot run '{tool_name}' now.",
                    verdict.suggested_action,
                    ctx.workflow.summary(),
                )

            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed_ms = (time.perf_counter() - started) * 1000
                ctx.workflow.record_execution(tool_name, False, f"{e.__class__.__name__}: {e}")
                ctx.metrics.record_performance(tool_name, elapsed_ms, False)
                ctx.metrics.log_error(e, {"tool": tool_name})
                raise

            elapsed_ms = (time.perf_counter() - started) * 1000
            ok = _succeeded(result)
            ctx.workflow.record_execution(tool_name, ok)
            ctx.metrics.record_performance(tool_name, elapsed_ms, ok)
            return result
        return wrapper

    return decorator
