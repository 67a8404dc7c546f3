"""Page content tool implementation."""

import json
from typing import Optional

from ..constants import SNAPSHOT_TOKEN_BUDGET
from ..content import page_content
from ..context import get_context


async def get_content(
    mode: str = "text",
    selector: Optional[str] = None,
    token_budget: int = SNAPSHOT_TOKEN_BUDGET,
    offset: int = 0,
) -> str:
    """Render the current page (or one element of it) as text, html or outline."""
    ctx = get_context()
    result = page_content(ctx.page, mode=mode, selector=selector, token_budget=token_budget, offset=offset)
    return json.dumps({"ok": True, **result})


__all__ = ['get_content']
