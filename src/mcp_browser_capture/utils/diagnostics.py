"""Diagnostics and debugging information utility functions."""

import sys
import platform
from typing import Optional

import selenium

from ..context import get_context


def collect_diagnostics(
    page=None,
    exc: Optional[Exception] = None,
    config: Optional[dict] = None,
) -> str:
    """
    Collect diagnostic information about the browser, driver, and environment.

    Args:
        page: PageHandle (if None, will try to get from context)
        exc: Exception that occurred (can be None)
        config: Configuration dictionary (if None, will get from context)

    Returns:
        str: Formatted diagnostic information
    """
    ctx = get_context()

    if page is None:
        page = ctx.page
    if config is None:
        config = ctx.config
    driver = getattr(page, "driver", None) or ctx.driver

    parts = [
        f"OS                : {platform.system()} {platform.release()}",
        f"Python            : {sys.version.split()[0]}",
        f"Selenium          : {getattr(selenium, '__version__', '?')}",
        f"Chrome binary     : {config.get('chrome_path') or '<selenium manager>'}",
        f"User-data dir     : {config.get('user_data_dir') or '<temporary>'}",
        f"Profile name      : {config.get('profile_name')}",
        f"Headless          : {config.get('headless')}",
        f"Driver initialized: {driver is not None}",
        f"Workflow state    : {ctx.workflow.state.value}",
    ]

    if driver is not None:
        try:
            ver = driver.execute_cdp_cmd("Browser.getVersion", {}) or {}
            parts.append(f"Browser version   : {ver.get('product', '<unknown>')}")
        except Exception:
            parts.append("Browser version   : <unknown>")

        cap = getattr(driver, "capabilities", None) or {}
        chrome_cap = cap.get("chrome") or {}
        drv_ver = chrome_cap.get("chromedriverVersion") or cap.get("browserVersion") or "<unknown>"
        parts.append(f"Driver version    : {drv_ver}")

    if page is not None:
        try:
            parts.append(f"Current URL       : {page.url}")
        except Exception:
            parts.append("Current URL       : <unavailable>")
        parts.append(f"Page listeners    : {page.listener_count()}")

    if exc:
        parts += [
            "---- ERROR ----",
            f"Error type        : {type(exc).__name__}",
            f"Error message     : {exc}",
        ]

    return "\n".join(parts)


__all__ = ['collect_diagnostics']
