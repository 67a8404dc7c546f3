"""Element interaction tool implementations."""

import json
from typing import Any, Dict

from ..context import get_context
from ..errors import ElementNotFound
from ..locator import LocatorResult, locate
from ..utils.diagnostics import collect_diagnostics

import logging
logger = logging.getLogger(__name__)


TROUBLESHOOTING = [
    "Call get_content with mode='outline' to list the page's buttons, links and inputs.",
    "Prefer a visible-text selector such as text=Submit.",
    "Prefer stable attributes: [aria-label=...], [name=...], [data-testid=...].",
    "If the element only appears after an interaction, perform that interaction first.",
]


def _healing_note(selector: str, found: LocatorResult) -> Dict[str, Any]:
    if not found.healed:
        return {}
    return {
        "note": (
            f"Self-healing: {selector!r} matched nothing usable; "
            f"used {found.used_selector!r} ({found.strategy})."
        ),
    }


def _not_found_payload(action: str, err: ElementNotFound) -> str:
    payload = err.to_payload()
    payload["action"] = action
    payload["troubleshooting"] = TROUBLESHOOTING
    return json.dumps(payload)


async def locate_element(selector: str, include_attempts: bool = False) -> str:
    """Resolve ``selector`` without acting on it. ElementNotFound propagates to the envelope."""
    ctx = get_context()
    page = ctx.page

    found = locate(page, selector)
    payload = {
        "ok": True,
        "selector": selector,
        **found.to_dict(),
        "text": page.element_text(found.element)[:200],
        **_healing_note(selector, found),
    }
    if include_attempts:
        payload["attempts"] = found.attempts
    return json.dumps(payload)


async def click_element(selector: str) -> str:
    """Click the element ``selector`` resolves to."""
    ctx = get_context()
    page = ctx.page

    try:
        found = locate(page, selector)
    except ElementNotFound as e:
        return _not_found_payload("click", e)

    try:
        page.click(found.element)
    except Exception as e:
        diag = collect_diagnostics(page, e, ctx.config)
        return json.dumps({
            "ok": False,
            "action": "click",
            "error": str(e),
            "usedSelector": found.used_selector,
            "diagnostics": diag,
        })

    return json.dumps({
        "ok": True,
        "action": "click",
        "selector": selector,
        **found.to_dict(),
        "url": page.url,
        **_healing_note(selector, found),
    })


async def fill_text(selector: str, text: str, clear_first: bool = True) -> str:
    """Type ``text`` into the element ``selector`` resolves to."""
    ctx = get_context()
    page = ctx.page

    try:
        found = locate(page, selector)
    except ElementNotFound as e:
        return _not_found_payload("fill_text", e)

    try:
        page.type(found.element, text, clear=clear_first)
    except Exception as e:
        diag = collect_diagnostics(page, e, ctx.config)
        return json.dumps({
            "ok": False,
            "action": "fill_text",
            "error": str(e),
            "usedSelector": found.used_selector,
            "diagnostics": diag,
        })

    return json.dumps({
        "ok": True,
        "action": "fill_text",
        "selector": selector,
        **found.to_dict(),
        "chars": len(text),
        **_healing_note(selector, found),
    })


__all__ = ['locate_element', 'click_element', 'fill_text']
