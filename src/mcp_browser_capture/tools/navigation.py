"""Navigation tool implementation."""

import json

from selenium.common.exceptions import TimeoutException

from ..context import get_context
from ..utils.diagnostics import collect_diagnostics


async def navigate_to_url(url: str) -> str:
    """Load ``url`` in the current page and report where the browser ended up."""
    ctx = get_context()
    page = ctx.page

    try:
        page.navigate(url)
    except TimeoutException:
        # The document is usually usable even when some subresource never finished
        return json.dumps({
            "ok": True,
            "action": "navigate",
            "url": page.url,
            "title": page.title,
            "warning": f"Page load timed out after {ctx.config.get('page_load_timeout')}s",
        })
    except Exception as e:
        diag = collect_diagnostics(page, e, ctx.config)
        return json.dumps({"ok": False, "error": str(e), "diagnostics": diag})

    return json.dumps({
        "ok": True,
        "action": "navigate",
        "requested_url": url,
        "url": page.url,
        "title": page.title,
    })


__all__ = ['navigate_to_url']
