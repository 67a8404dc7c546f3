"""Media capture and network recording tool implementations."""

import json
import asyncio
from typing import List, Optional

from ..capture import (
    CaptureOptions,
    ajax_predicate,
    capture_media,
    record_network as _record_network,
    render_summary,
    resource_type_predicate,
)
from ..constants import DEFAULT_CAPTURE_WAIT_MS, MAX_INTERACTIONS, MAX_NETWORK_RECORDS
from ..context import get_context

import logging
logger = logging.getLogger(__name__)


DEFAULT_RECORD_MS = 10000
DEFAULT_AJAX_MS = 15000


async def extract_media(
    url: Optional[str] = None,
    wait_ms: int = DEFAULT_CAPTURE_WAIT_MS,
    click_play: bool = True,
    max_interactions: int = MAX_INTERACTIONS,
    inspect_response_bodies: bool = True,
    hook_crypto: bool = True,
    hook_fetch: bool = True,
    watch_video: bool = True,
    hook_players: bool = True,
) -> str:
    """Run one capture session on the current page, or on ``url`` after loading it."""
    ctx = get_context()
    options = CaptureOptions(
        url=url or None,
        wait_ms=max(0, int(wait_ms)),
        click_play=click_play,
        max_interactions=max(0, int(max_interactions)),
        response_bodies=inspect_response_bodies,
        hook_crypto=hook_crypto,
        hook_fetch=hook_fetch,
        watch_video=watch_video,
        hook_players=hook_players,
    )

    # The capture loop blocks on WebDriver calls and sleeps
    report = await asyncio.to_thread(capture_media, ctx.page, options)

    if url and "navigation" not in report.channel_errors:
        ctx.workflow.note_navigation()
    ctx.metrics.record_data_quality("media_urls_found", report.total)
    ctx.metrics.record_data_quality(
        "channels_with_results", sum(1 for v in report.channel_counts.values() if v)
    )

    return json.dumps({
        "ok": True,
        "summary": render_summary(report),
        **report.to_dict(),
    }, default=str)


async def record_network(
    duration_ms: int = DEFAULT_RECORD_MS,
    resource_types: Optional[List[str]] = None,
    include_bodies: bool = True,
    max_records: int = MAX_NETWORK_RECORDS,
    url: Optional[str] = None,
) -> str:
    """Record finished responses of the given resource types for ``duration_ms``."""
    ctx = get_context()
    result = await asyncio.to_thread(
        _record_network,
        ctx.page,
        max(0, int(duration_ms)),
        resource_type_predicate(resource_types),
        include_bodies,
        max(1, int(max_records)),
        url=url or None,
    )
    if url:
        ctx.workflow.note_navigation()
    return json.dumps({"ok": True, **result}, default=str)


async def capture_ajax(
    duration_ms: int = DEFAULT_AJAX_MS,
    url_contains: Optional[str] = None,
    include_bodies: bool = True,
    url: Optional[str] = None,
) -> str:
    """Record XHR/fetch responses, optionally only those whose URL contains ``url_contains``."""
    ctx = get_context()
    result = await asyncio.to_thread(
        _record_network,
        ctx.page,
        max(0, int(duration_ms)),
        ajax_predicate(url_contains),
        include_bodies,
        url=url or None,
    )
    if url:
        ctx.workflow.note_navigation()
    return json.dumps({"ok": True, **result}, default=str)


__all__ = ['extract_media', 'record_network', 'capture_ajax']
