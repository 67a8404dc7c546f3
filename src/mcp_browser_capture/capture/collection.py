"""Append-only, URL-keyed store shared by every discovery channel of a session."""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .media import (
    CHANNELS,
    KIND_FOR_HINT,
    SOURCE_CHANNEL,
    ContentHint,
    DiscoverySource,
    hint_for,
    normalize_url,
)


@dataclass
class CapturedResource:
    url: str
    source: DiscoverySource
    content_hint: ContentHint
    timestamp: float = field(default_factory=time.time)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def channel(self) -> str:
        return SOURCE_CHANNEL[self.source]

    @property
    def kind(self) -> str:
        return KIND_FOR_HINT[self.content_hint]

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "url": self.url,
            "discoverySource": self.source.value,
            "channel": self.channel,
            "contentHint": self.content_hint.value,
            "timestamp": self.timestamp,
        }
        if self.metadata:
            out["metadata"] = self.metadata
        return out


class CaptureCollection:
    """
    Ordered set of CapturedResource keyed by normalized URL.

    The first arrival of a URL owns its attribution; later sightings from any
    channel are counted as duplicates and otherwise ignored. Callbacks may run
    on whatever thread the page delivers events on, so appends take a lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items: "OrderedDict[str, CapturedResource]" = OrderedDict()
        self.duplicates = 0

    def add(self, url: str, source: DiscoverySource, content_type: Optional[str] = None,
            timestamp: Optional[float] = None, **metadata) -> bool:
        """Record ``url``. Returns True when it was new to this session."""
        url = (url or "").strip()
        key = normalize_url(url)
        if not key or key.startswith(("blob:", "data:")):
            return False
        resource = CapturedResource(
            url=url,
            source=source,
            content_hint=hint_for(url, content_type),
            timestamp=timestamp if timestamp is not None else time.time(),
            metadata={k: v for k, v in metadata.items() if v is not None},
        )
        with self._lock:
            if key in self._items:
                self.duplicates += 1
                return False
            self._items[key] = resource
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return normalize_url(url) in self._items

    def resources(self) -> List[CapturedResource]:
        with self._lock:
            return list(self._items.values())

    def by_kind(self) -> Dict[str, List[str]]:
        out: Dict[str, List[str]] = {"hls": [], "dash": [], "direct": [], "other": []}
        for r in self.resources():
            out[r.kind].append(r.url)
        return out

    def channel_counts(self) -> Dict[str, int]:
        counts = {c: 0 for c in CHANNELS}
        for r in self.resources():
            counts[r.channel] += 1
        return counts


__all__ = ["CapturedResource", "CaptureCollection"]
