"""Plain network recording: every finished response matching a predicate, for a fixed window."""

import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..constants import CAPTURE_POLL_INTERVAL_MS, MAX_NETWORK_RECORDS, NETWORK_RECORD_BODY_CHARS
from ..errors import PageUnavailableError
from .listeners import listening
from .media import is_textual

import logging
logger = logging.getLogger(__name__)


Predicate = Callable[[Any], bool]

UNREADABLE_BODY = "[Binary or Too Large]"


def ajax_predicate(url_contains: Optional[str] = None) -> Predicate:
    """XHR and fetch responses, optionally only those whose URL contains ``url_contains``."""
    def predicate(response) -> bool:
        if (response.resource_type or "").lower() not in ("xhr", "fetch"):
            return False
        return not url_contains or url_contains in (response.url or "")
    return predicate


def resource_type_predicate(types: Optional[Iterable[str]] = None) -> Predicate:
    """Responses whose resource type is one of ``types``. Empty or ``"all"`` accepts everything."""
    wanted = {t.lower() for t in (types or [])}
    def predicate(response) -> bool:
        if not wanted or "all" in wanted:
            return True
        return (response.resource_type or "").lower() in wanted
    return predicate


def record_network(
    page,
    duration_ms: int,
    predicate: Optional[Predicate] = None,
    include_bodies: bool = True,
    max_records: int = MAX_NETWORK_RECORDS,
    body_chars: int = NETWORK_RECORD_BODY_CHARS,
    url: Optional[str] = None,
    *,
    poll_interval_ms: int = CAPTURE_POLL_INTERVAL_MS,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Dict[str, Any]:
    """
    Record responses for ``duration_ms``.

    When ``url`` is given the page is navigated there after the listeners are
    attached, so the load itself is recorded. Returns the records plus the
    number of responses dropped by ``max_records``.
    """
    if page is None:
        raise PageUnavailableError()
    predicate = predicate or resource_type_predicate()
    methods: Dict[str, str] = {}
    records: List[Dict[str, Any]] = []
    stats = {"seen": 0, "matched": 0, "dropped": 0, "errors": 0}

    def on_request(request) -> None:
        methods[request.request_id] = request.method

    def on_response(response) -> None:
        stats["seen"] += 1
        try:
            if not predicate(response):
                return
            stats["matched"] += 1
            if len(records) >= max_records:
                stats["dropped"] += 1
                return
            record = {
                "url": response.url,
                "method": methods.get(response.request_id, "GET"),
                "type": response.resource_type,
                "status": response.status,
                "contentType": response.content_type,
                "headers": response.headers,
            }
            if include_bodies:
                body = UNREADABLE_BODY
                if is_textual(response.content_type):
                    try:
                        body = response.text()
                    except Exception:
                        logger.debug("Body of %s unavailable", response.url, exc_info=True)
                record["body"] = body[:body_chars]
            records.append(record)
        except Exception:
            stats["errors"] += 1
            logger.debug("Recording response failed", exc_info=True)

    started = clock()
    interval = max(poll_interval_ms, 1) / 1000.0
    with listening(page, request=on_request, response=on_response):
        deadline = clock() + max(duration_ms, 0) / 1000.0
        if url:
            try:
                page.navigate(url)
            except Exception:
                stats["errors"] += 1
                logger.debug("Navigation to %s failed during recording", url, exc_info=True)
        while True:
            page.pump_events()
            left = deadline - clock()
            if left <= 0:
                break
            sleep(min(interval, left))

    return {
        "records": records,
        "count": len(records),
        "stats": stats,
        "elapsedMs": int((clock() - started) * 1000),
    }


__all__ = [
    "ajax_predicate",
    "resource_type_predicate",
    "record_network",
    "UNREADABLE_BODY",
]
