"""
Multi-source capture aggregator.

``capture_media`` opens a CaptureSession on the page, optionally navigates and
nudges the page into playing, then polls every channel until the wait window
runs out. The window always runs to completion. The only error it raises is
PageUnavailableError, checked once on entry; every channel failure ends up in
``channel_errors`` instead.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..constants import CAPTURE_POLL_INTERVAL_MS, DEFAULT_CAPTURE_WAIT_MS, INTERACTION_SETTLE_MS, MAX_INTERACTIONS
from ..errors import PageUnavailableError
from .collection import CapturedResource
from .hooks import HookOptions
from .interaction import PLAY_RULES, nudge
from .media import detect_platforms
from .session import CaptureSession

import logging
logger = logging.getLogger(__name__)


@dataclass
class CaptureOptions:
    url: Optional[str] = None
    wait_ms: int = DEFAULT_CAPTURE_WAIT_MS
    poll_interval_ms: int = CAPTURE_POLL_INTERVAL_MS
    click_play: bool = True
    max_interactions: int = MAX_INTERACTIONS
    settle_ms: int = INTERACTION_SETTLE_MS
    network: bool = True
    response_bodies: bool = True
    hook_crypto: bool = True
    hook_fetch: bool = True
    watch_video: bool = True
    hook_players: bool = True
    dom_scan: bool = True

    def hook_options(self) -> Optional[HookOptions]:
        opts = HookOptions(self.hook_crypto, self.hook_fetch, self.watch_video, self.hook_players)
        if not any((opts.hook_crypto, opts.hook_fetch, opts.watch_video, opts.hook_players)):
            return None
        return opts


@dataclass
class CaptureReport:
    page_url: str = ""
    resources: List[CapturedResource] = field(default_factory=list)
    by_kind: Dict[str, List[str]] = field(default_factory=dict)
    channel_counts: Dict[str, int] = field(default_factory=dict)
    channel_errors: Dict[str, int] = field(default_factory=dict)
    platforms: List[str] = field(default_factory=list)
    players: List[str] = field(default_factory=list)
    dom: Dict[str, Any] = field(default_factory=dict)
    interactions: List[Dict[str, Any]] = field(default_factory=list)
    duplicates: int = 0
    elapsed_ms: int = 0

    @property
    def total(self) -> int:
        return len(self.resources)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pageUrl": self.page_url,
            "total": self.total,
            "resourcesByKind": self.by_kind,
            "resources": [r.to_dict() for r in self.resources],
            "channelCounts": self.channel_counts,
            "channelErrors": self.channel_errors,
            "platformsDetected": self.platforms,
            "playersDetected": self.players,
            "dom": self.dom,
            "interactions": self.interactions,
            "duplicates": self.duplicates,
            "elapsedMs": self.elapsed_ms,
        }


def capture_media(
    page,
    options: Optional[CaptureOptions] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> CaptureReport:
    if page is None:
        raise PageUnavailableError()
    options = options or CaptureOptions()
    interval = max(options.poll_interval_ms, 1) / 1000.0

    started = clock()
    session = CaptureSession(
        page,
        network=options.network,
        response_bodies=options.response_bodies,
        hooks=options.hook_options(),
        dom_scan=options.dom_scan,
    )
    interactions: List[Dict[str, Any]] = []

    with session:
        deadline = clock() + max(options.wait_ms, 0) / 1000.0

        if options.url:
            try:
                page.navigate(options.url)
            except Exception:
                logger.debug("Navigation to %s failed during capture", options.url, exc_info=True)
                session.note_error("navigation")

        if options.click_play and options.max_interactions > 0:
            try:
                interactions = nudge(
                    page,
                    PLAY_RULES,
                    max_iterations=options.max_interactions,
                    deadline=deadline,
                    clock=clock,
                    sleep=sleep,
                    settle_ms=options.settle_ms,
                )
            except Exception:
                session.note_error("interaction")

        while True:
            left = deadline - clock()
            if left <= 0:
                break
            session.poll()
            left = deadline - clock()
            if left > 0:
                sleep(min(interval, left))
        session.poll()

    try:
        page_url = page.url
    except Exception:
        page_url = options.url or ""

    platforms = list(session.platforms)
    for name in detect_platforms(page_url):
        if name not in platforms:
            platforms.append(name)

    collection = session.collection
    report = CaptureReport(
        page_url=page_url,
        resources=collection.resources(),
        by_kind=collection.by_kind(),
        channel_counts=collection.channel_counts(),
        channel_errors=dict(session.channel_errors),
        platforms=platforms,
        players=list(session.players),
        dom=dict(session.dom),
        interactions=interactions,
        duplicates=collection.duplicates,
        elapsed_ms=int((clock() - started) * 1000),
    )
    logger.info(
        "Capture on %s finished: %d resource(s) in %d ms",
        page_url or "<unknown>", report.total, report.elapsed_ms,
    )
    return report


def render_summary(report: CaptureReport) -> str:
    """Short plain-text account of a capture, for the agent reading the tool result."""
    lines = [f"Captured {report.total} media URL(s) in {report.elapsed_ms} ms"]
    for kind in ("hls", "dash", "direct", "other"):
        urls = report.by_kind.get(kind) or []
        if urls:
            lines.append(f"{kind.upper()} ({len(urls)}):")
            lines += [f"  {u}" for u in urls]
    counts = ", ".join(f"{k}={v}" for k, v in report.channel_counts.items())
    lines.append(f"Channels: {counts}")
    if report.channel_errors:
        lines.append("Channel errors: " + ", ".join(f"{k}={v}" for k, v in report.channel_errors.items()))
    if report.platforms:
        lines.append("Platforms: " + ", ".join(report.platforms))
    if report.players:
        lines.append("Players: " + ", ".join(report.players))
    if report.interactions:
        lines.append(f"Clicked {len(report.interactions)} control(s): "
                     + ", ".join(i["rule"] for i in report.interactions))
    if not report.total:
        lines.append("Nothing found. Try a longer wait_ms, or navigate to the player page first.")
    return "\n".join(lines)


__all__ = ["CaptureOptions", "CaptureReport", "capture_media", "render_summary"]
