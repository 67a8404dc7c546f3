"""Scoped attach/detach of page event listeners."""

import contextlib
from typing import Callable, Iterator, List, Optional, Tuple

import logging
logger = logging.getLogger(__name__)


@contextlib.contextmanager
def listening(
    page,
    request: Optional[Callable] = None,
    response: Optional[Callable] = None,
) -> Iterator[List[Tuple[str, Callable]]]:
    """
    Attach the given callbacks for the duration of the ``with`` block.

    All of them are detached together on exit, whether the block returned
    normally or raised. A callback that failed to attach is never detached.
    """
    attached: List[Tuple[str, Callable]] = []
    try:
        for event, cb in (("request", request), ("response", response)):
            if cb is None:
                continue
            page.on(event, cb)
            attached.append((event, cb))
        yield attached
    finally:
        for event, cb in reversed(attached):
            try:
                page.off(event, cb)
            except Exception:
                logger.debug("Detaching %s listener failed", event, exc_info=True)


__all__ = ["listening"]
