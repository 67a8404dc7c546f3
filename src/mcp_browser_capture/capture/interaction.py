"""
Bounded "nudge" that clicks likely play/server/download controls.

The rules are plain data, tried in order. One iteration clicks at most one
element: the first visible match of the highest-priority rule that has one and
that was not clicked before. The loop ends after ``max_iterations``, when an
iteration finds nothing left to click, or when the deadline passes.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..constants import INTERACTION_SETTLE_MS, MAX_INTERACTIONS
from ..locator.selectors import INTERACTIVE_PREDICATE, detect_selector_type, lowered, xpath_literal

import logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClickRule:
    name: str
    selector: Optional[str] = None
    keywords: Tuple[str, ...] = ()

    def candidates(self) -> List[Tuple[str, str]]:
        if self.selector:
            return [(self.selector, detect_selector_type(self.selector))]
        return [
            (f"//*[{INTERACTIVE_PREDICATE}][contains({lowered('.')}, {xpath_literal(kw.lower())})]", "xpath")
            for kw in self.keywords
        ]


PLAY_RULES: Tuple[ClickRule, ...] = (
    ClickRule("first-server-option", 'li[data-nume="1"]'),
    ClickRule("dooplay-first-server", '.dooplay_player_option[data-nume="1"]'),
    ClickRule("server-item", ".server-item"),
    ClickRule("server-button", ".server-btn"),
    ClickRule("play-class-button", 'button[class*="play"]'),
    ClickRule("play-button", ".play-button"),
    ClickRule("play-btn", ".play-btn"),
    ClickRule("aria-play", '[aria-label*="Play"]'),
    ClickRule("title-play", '[title*="Play"]'),
    ClickRule("jwplayer-play", ".jw-icon-playback"),
    ClickRule("videojs-play", ".vjs-big-play-button"),
    ClickRule("plyr-overlay", ".plyr__control--overlaid"),
    ClickRule("plyr-play", '[data-plyr="play"]'),
    ClickRule("download-link", 'a[href*="download"]'),
    ClickRule("download-button", ".download-btn"),
    ClickRule("get-link-class", ".get-link"),
    ClickRule("get-link-id", "#get-link"),
    ClickRule("keyword-text", keywords=("play", "watch", "server", "stream", "download", "get link")),
)


def _first_unclicked(page, rule: ClickRule, clicked: List[Any]):
    for selector, selector_type in rule.candidates():
        try:
            elements = page.query(selector, selector_type)
        except Exception:
            logger.debug("Nudge rule %s: query %r failed", rule.name, selector, exc_info=True)
            continue
        for element in elements:
            if element in clicked:
                continue
            if page.is_usable(element):
                return element, selector
    return None, None


def nudge(
    page,
    rules: Sequence[ClickRule] = PLAY_RULES,
    max_iterations: int = MAX_INTERACTIONS,
    deadline: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    settle_ms: int = INTERACTION_SETTLE_MS,
) -> List[Dict[str, Any]]:
    """
    Click through ``rules`` at most ``max_iterations`` times.

    ``deadline`` is a ``clock()`` value; no click starts at or after it and no
    settle pause runs past it. Returns one record per click, in order.
    """
    clicked: List[Any] = []
    log: List[Dict[str, Any]] = []

    def time_left() -> Optional[float]:
        return None if deadline is None else deadline - clock()

    for iteration in range(max_iterations):
        left = time_left()
        if left is not None and left <= 0:
            break

        target = None
        for rule in rules:
            element, selector = _first_unclicked(page, rule, clicked)
            if element is not None:
                target = (rule, element, selector)
                break
        if target is None:
            break

        rule, element, selector = target
        clicked.append(element)
        entry = {"iteration": iteration + 1, "rule": rule.name, "selector": selector, "ok": True}
        try:
            page.click(element)
        except Exception as e:
            # A refused click still counts as this iteration's attempt
            entry["ok"] = False
            entry["error"] = e.__class__.__name__
            logger.debug("Nudge click via %s failed", rule.name, exc_info=True)
        log.append(entry)

        pause = settle_ms / 1000.0
        left = time_left()
        if left is not None:
            pause = min(pause, max(0.0, left))
        if pause > 0:
            sleep(pause)

    return log


__all__ = ["ClickRule", "PLAY_RULES", "nudge"]
