"""Browser lifecycle management tool implementations."""

import json
import psutil

from ..browser.driver import close_driver, ensure_driver
from ..context import get_context
from ..utils.diagnostics import collect_diagnostics
from ..workflow.validator import WorkflowState

import logging
logger = logging.getLogger(__name__)


async def start_browser() -> str:
    """
    Launch Chrome, or reuse the running one.

    Returns:
        JSON string with whether a new browser was launched and the current URL
    """
    ctx = get_context()

    try:
        launched = ensure_driver()
        if launched:
            # A fresh browser has no page loaded, whatever the workflow remembered
            ctx.workflow.state = WorkflowState.IDLE

        url = ctx.page.url if ctx.page is not None else "about:blank"
        msg = (
            ("Browser launched. " if launched else "Browser already running. ")
            + f"Current URL: {url or 'about:blank'}"
        )
        return json.dumps({
            "ok": True,
            "launched": launched,
            "url": url,
            "headless": ctx.config.get("headless", True),
            "message": msg,
        })

    except Exception as e:
        logger.warning("start_browser failed: %s", e)
        diag = collect_diagnostics(None, e, ctx.config)
        return json.dumps({
            "ok": False,
            "error": "driver_not_initialized",
            "message": f"Failed to launch Chrome: {e}",
            "diagnostics": diag,
        })


async def close_browser() -> str:
    """Quit the browser for this session."""
    closed = close_driver()
    msg = "Browser closed successfully" if closed else "No browser to close"
    return json.dumps({
        "ok": True,
        "closed": bool(closed),
        "message": msg,
    })


def _is_ours(cmdline, user_data_dir: str) -> bool:
    """Chrome started by this server: our profile dir if one is configured, else Selenium's automation flag."""
    args = [a for a in (cmdline or []) if a]
    if user_data_dir:
        wanted = user_data_dir.replace("\\", "/").lower()
        return any(
            "--user-data-dir" in a and wanted in a.replace("\\", "/").lower()
            for a in args
        )
    return "--enable-automation" in args


async def force_close_all_chrome() -> str:
    """
    Quit the driver, kill the Chrome and chromedriver processes this server
    started, and clear the browser state. Use this to recover from stuck Chrome
    instances.
    """
    ctx = get_context()
    killed_processes = []
    errors = []

    # 1. Try to quit the Selenium driver gracefully
    if ctx.driver is not None:
        try:
            ctx.driver.quit()
        except Exception as e:
            errors.append(f"Driver quit failed: {e}")
    ctx.reset_browser_state()

    # 2. Kill leftovers
    user_data_dir = ctx.config.get("user_data_dir") or ""
    for p in psutil.process_iter(["name", "cmdline", "pid"]):
        try:
            name = (p.info.get("name") or "").lower()
            if "chromedriver" in name or ("chrome" in name and _is_ours(p.info.get("cmdline"), user_data_dir)):
                p.kill()
                killed_processes.append(p.info["pid"])
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            errors.append(f"Could not kill process: {e}")

    msg = f"Force closed Chrome. Killed {len(killed_processes)} processes."
    if errors:
        msg += f" Errors: {'; '.join(errors)}"

    return json.dumps({
        "ok": True,
        "killed_processes": killed_processes,
        "errors": errors,
        "message": msg,
    })


__all__ = ['start_browser', 'close_browser', 'force_close_all_chrome']
