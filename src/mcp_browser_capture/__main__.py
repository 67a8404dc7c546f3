#region Overview
"""
## What this server is for

One Chrome page, driven through Selenium, for an agent that needs to find
elements on pages that change under it and to find the media URLs a page
loads, decrypts or hands to its player.

## Typical session

start_browser -> navigate_to_url -> get_content -> click_element / fill_text
-> extract_media. The workflow gate rejects calls made out of order and says
which tool to call first. Clicking and typing require that the page content
was looked at (get_content or locate_element) since the last navigation,
unless MCP_STRICT_WORKFLOW=0.

## Selectors heal themselves

click_element, fill_text and locate_element accept CSS, XPath or text
selectors (text=Submit). When the selector matches nothing usable, the
locator tries, in order: the visible text, a relaxed version of the selector,
attributes containing the selector's keywords, and finally any element of the
targeted kind. The response says which strategy won and what selector it used.

## Capture sessions hold the browser

extract_media, record_network and capture_ajax block the page for their whole
window (wait_ms / duration_ms). Other tool calls wait for them.

## Logging

Logs go to stderr; stdout carries the MCP transport. Set MCP_LOG_LEVEL=DEBUG
to see every swallowed capture-channel error.
"""
#endregion

#region Imports
import os
import sys
import logging
from typing import List, Optional
from mcp.server.fastmcp import FastMCP
#endregion

#region Import from your package __init__.py
from mcp_browser_capture.constants import (
    DEFAULT_CAPTURE_WAIT_MS,
    MAX_INTERACTIONS,
    MAX_NETWORK_RECORDS,
    SNAPSHOT_TOKEN_BUDGET,
)
from mcp_browser_capture.decorators import (
    tool_envelope,
    exclusive_browser_access,
    ensure_page_ready,
    workflow_gate,
)
from mcp_browser_capture.workflow.validator import BROWSER, PAGE
from mcp_browser_capture.tools import (
    browser_management,
    navigation,
    content,
    interaction,
    capture,
    monitoring,
    debugging,
)
#endregion

#region Logger
logger = logging.getLogger(__name__)
#endregion

#region FastMCP Initialization
mcp = FastMCP("mcp_browser_capture")
#endregion

#region Workflow requirements
def _page_unless_url(kwargs):
    """Tools that load `url` themselves only need a running browser."""
    return BROWSER if kwargs.get("url") else PAGE
#endregion

#region Tools -- Session management
@mcp.tool()
@tool_envelope
@exclusive_browser_access
@workflow_gate("start_browser")
async def mcp_browser_capture__start_browser() -> str:
    """
    Start Chrome, or reuse the one that is already running.

    Returns:
        str: JSON with `launched` (False when an existing browser was reused) and the current URL.
    """
    return await browser_management.start_browser()


@mcp.tool()
@tool_envelope
@exclusive_browser_access
@workflow_gate("close_browser")
async def mcp_browser_capture__close_browser() -> str:
    """
    Quit the browser. The next page-touching call needs start_browser again.

    Do not call this without an explicit request from the user.
    """
    return await browser_management.close_browser()


@mcp.tool()
@tool_envelope
@workflow_gate("force_close_all_chrome")
async def mcp_browser_capture__force_close_all_chrome() -> str:
    """
    Kill the Chrome and chromedriver processes this server started and clear all browser state.

    Use this to recover from a stuck Chrome when close_browser does not help.
    It does not wait for a running capture to finish.

    Returns:
        str: JSON with status, killed process IDs, and any errors encountered
    """
    return await browser_management.force_close_all_chrome()
#endregion

#region Tools -- Navigation and content
@mcp.tool()
@tool_envelope
@exclusive_browser_access
@ensure_page_ready
@workflow_gate("navigate_to_url")
async def mcp_browser_capture__navigate_to_url(url: str) -> str:
    """
    Navigate the page to the given URL.

    Args:
        url: Absolute URL to navigate to (e.g., "https://example.com").

    Returns:
        str: JSON with the final URL and page title.
    """
    return await navigation.navigate_to_url(url)


@mcp.tool()
@tool_envelope
@exclusive_browser_access
@ensure_page_ready
@workflow_gate("get_content")
async def mcp_browser_capture__get_content(
    mode: str = "text",
    selector: Optional[str] = None,
    token_budget: int = SNAPSHOT_TOKEN_BUDGET,
    offset: int = 0,
) -> str:
    """
    Return the page content, cleaned of scripts and styles.

    Args:
        mode: "text" (visible text), "html" (cleaned HTML) or "outline"
            (headings plus the page's buttons, links and inputs).
            **Recommendation**: use "outline" before clicking or typing.
        selector: Optional CSS/XPath/text selector; only that element is rendered.
        token_budget: Approximate token cap (~4 chars per token). `hard_capped`
            in the response is true when content was cut.
        offset: Characters of cleaned content to skip, for paging through large pages.
    """
    return await content.get_content(mode=mode, selector=selector, token_budget=token_budget, offset=offset)
#endregion

#region Tools -- Page interaction
@mcp.tool()
@tool_envelope
@exclusive_browser_access
@ensure_page_ready
@workflow_gate("locate_element")
async def mcp_browser_capture__locate_element(selector: str, include_attempts: bool = False) -> str:
    """
    Find the element a selector refers to, without touching it.

    Useful to check a selector before clicking. When the selector itself matches
    nothing usable, the fallback strategies run and the response names the one
    that succeeded (`strategy`) and the selector it used (`usedSelector`).

    Args:
        selector: CSS selector, XPath (starting with "/" or "("), or text selector ("text=Log in").
        include_attempts: Include every candidate selector tried, with match counts.
    """
    return await interaction.locate_element(selector, include_attempts=include_attempts)


@mcp.tool()
@tool_envelope
@exclusive_browser_access
@ensure_page_ready
@workflow_gate("click_element")
async def mcp_browser_capture__click_element(selector: str) -> str:
    """
    Click an element.

    Args:
        selector: CSS selector, XPath, or text selector ("text=Play").

    Returns:
        str: JSON with the selector actually used. A `note` is present when the
        selector had to be healed. On failure, `fallback_summary` lists what was tried.
    """
    return await interaction.click_element(selector)


@mcp.tool()
@tool_envelope
@exclusive_browser_access
@ensure_page_ready
@workflow_gate("fill_text")
async def mcp_browser_capture__fill_text(selector: str, text: str, clear_first: bool = True) -> str:
    """
    Type text into an input, textarea or contenteditable element.

    Args:
        selector: CSS selector, XPath, or text selector of the field.
        text: Text to enter into the field.
        clear_first: Whether to clear the field before entering text.
    """
    return await interaction.fill_text(selector, text, clear_first=clear_first)
#endregion

#region Tools -- Capture
@mcp.tool()
@tool_envelope
@exclusive_browser_access
@ensure_page_ready
@workflow_gate("extract_media", _page_unless_url)
async def mcp_browser_capture__extract_media(
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
    """
    Find the video/audio URLs a page uses, for `wait_ms` milliseconds.

    Five channels run at once and feed one deduplicated list: outgoing requests,
    responses (including media URLs inside JSON/text bodies), hooks on the page's
    own crypto/fetch/XHR functions, <video>/<source> elements, and the Hls.js,
    dash.js, JW Player and Video.js players. If `click_play` is set, up to
    `max_interactions` play/server/download controls are clicked to make the
    page load its sources.

    Args:
        url: Load this URL first, with the hooks in place before page scripts run.
            Recommended: hooks only see what the page decrypts or fetches after they
            were installed.
        wait_ms: Length of the capture window. The call always takes this long.

    Returns:
        str: JSON with `resourcesByKind` (hls, dash, direct, other), `channelCounts`,
        `platformsDetected` and a plain-text `summary`.
    """
    return await capture.extract_media(
        url=url,
        wait_ms=wait_ms,
        click_play=click_play,
        max_interactions=max_interactions,
        inspect_response_bodies=inspect_response_bodies,
        hook_crypto=hook_crypto,
        hook_fetch=hook_fetch,
        watch_video=watch_video,
        hook_players=hook_players,
    )


@mcp.tool()
@tool_envelope
@exclusive_browser_access
@ensure_page_ready
@workflow_gate("record_network", _page_unless_url)
async def mcp_browser_capture__record_network(
    duration_ms: int = capture.DEFAULT_RECORD_MS,
    resource_types: Optional[List[str]] = None,
    include_bodies: bool = True,
    max_records: int = MAX_NETWORK_RECORDS,
    url: Optional[str] = None,
) -> str:
    """
    Record network responses for `duration_ms` milliseconds.

    Args:
        resource_types: e.g. ["xhr", "fetch", "media", "document"]. Empty or ["all"] records everything.
        include_bodies: Include text bodies, cut to 5000 characters.
        url: Navigate here after recording started, to capture the page load itself.
    """
    return await capture.record_network(
        duration_ms=duration_ms,
        resource_types=resource_types,
        include_bodies=include_bodies,
        max_records=max_records,
        url=url,
    )


@mcp.tool()
@tool_envelope
@exclusive_browser_access
@ensure_page_ready
@workflow_gate("capture_ajax", _page_unless_url)
async def mcp_browser_capture__capture_ajax(
    duration_ms: int = capture.DEFAULT_AJAX_MS,
    url_contains: Optional[str] = None,
    include_bodies: bool = True,
    url: Optional[str] = None,
) -> str:
    """
    Record XHR and fetch responses, e.g. the JSON an API returns to the page.

    Args:
        url_contains: Only keep responses whose URL contains this string.
    """
    return await capture.capture_ajax(
        duration_ms=duration_ms,
        url_contains=url_contains,
        include_bodies=include_bodies,
        url=url,
    )
#endregion

#region Tools -- Workflow and monitoring
@mcp.tool()
@tool_envelope
async def mcp_browser_capture__get_workflow_status() -> str:
    """Current workflow state, recent tool calls and what the next call may be."""
    return await monitoring.get_workflow_status()


@mcp.tool()
@tool_envelope
async def mcp_browser_capture__get_metrics() -> str:
    """Per-tool call counts, failure counts and durations, recent errors and capture yields."""
    return await monitoring.get_metrics()


@mcp.tool()
@tool_envelope
async def mcp_browser_capture__reset_metrics() -> str:
    return await monitoring.reset_metrics()
#endregion

#region Tools -- Debugging
@mcp.tool()
@tool_envelope
async def mcp_browser_capture__get_debug_diagnostics_info() -> str:
    """
    Environment, browser and driver versions, configuration and page state.

    Use this when start_browser fails or a tool behaves unexpectedly.
    """
    return await debugging.get_debug_diagnostics_info()
#endregion


def main() -> None:
    logging.basicConfig(
        level=os.getenv("MCP_LOG_LEVEL", "WARNING").upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    mcp.run()


if __name__ == "__main__":
    main()
