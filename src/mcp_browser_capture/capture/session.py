"""
One capture session: every discovery channel attached to a page for a bounded window.

The session owns nothing but its listeners and its injected script. Opening it
attaches both; closing it releases both together, exactly once, whatever path
the caller took to get there.
"""

import contextlib
from typing import Any, Callable, Dict, List, Optional, Set

from ..constants import MAX_RESPONSE_BODY_CHARS
from .collection import CaptureCollection
from .hooks import DOM_SCAN_SCRIPT, DRAIN_SCRIPT, TEARDOWN_SCRIPT, HookOptions, build_hook_script
from .listeners import listening
from .media import (
    HOSTING_PLATFORMS,
    ContentHint,
    DiscoverySource,
    classify_url,
    extract_media_urls,
    is_candidate_request,
    is_media_content_type,
    is_textual,
)

import logging
logger = logging.getLogger(__name__)


# In-page buffer name -> where its URLs came from
HOOK_BUFFERS = (
    ("crypto", DiscoverySource.CRYPTO_HOOK),
    ("fetch", DiscoverySource.FETCH_HOOK),
    ("video", DiscoverySource.VIDEO_MUTATION),
    ("player", DiscoverySource.PLAYER_LIBRARY),
)


class CaptureSession:
    """
    Attach the discovery channels on ``open()`` and detach them on ``close()``.

    Use it as a context manager::

        with CaptureSession(page) as session:
            session.poll()
        report = session.collection.by_kind()

    Any error raised by a channel is logged at debug level and counted in
    ``channel_errors``; the session keeps going with the other channels.
    """

    def __init__(
        self,
        page,
        collection: Optional[CaptureCollection] = None,
        network: bool = True,
        response_bodies: bool = True,
        hooks: Optional[HookOptions] = HookOptions(),
        dom_scan: bool = True,
        max_body_chars: int = MAX_RESPONSE_BODY_CHARS,
    ):
        self.page = page
        self.collection = collection if collection is not None else CaptureCollection()
        self.network = network
        self.response_bodies = response_bodies
        self.hooks = hooks
        self.dom_scan = dom_scan
        self.max_body_chars = max_body_chars

        self.active_listeners: Set[str] = set()
        self.channel_errors: Dict[str, int] = {}
        self.platforms: List[str] = []
        self.players: List[str] = []
        self.dom: Dict[str, List[Dict[str, Any]]] = {"videos": [], "audio": [], "iframes": [], "downloadLinks": []}

        self._stack: Optional[contextlib.ExitStack] = None
        self._closed = False

    # ------------------------------------------------------------------ lifecycle

    def __enter__(self) -> "CaptureSession":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._stack is not None and not self._closed

    def open(self) -> "CaptureSession":
        if self._stack is not None:
            raise RuntimeError("CaptureSession can only be opened once")
        stack = contextlib.ExitStack()
        self._stack = stack
        try:
            if self.network:
                stack.enter_context(listening(
                    self.page,
                    request=self._on_request,
                    response=self._on_response,
                ))
                self.active_listeners.update({"network-request", "network-response"})
            if self.hooks is not None:
                self._install_hooks(stack)
        except BaseException:
            self.close()
            raise
        return self

    def close(self) -> None:
        """Detach everything that open() attached. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            if self._stack is not None:
                self._stack.close()
        finally:
            self.active_listeners.clear()

    def _install_hooks(self, stack: contextlib.ExitStack) -> None:
        script = build_hook_script(self.hooks)
        try:
            identifier = self.page.inject_before_load(script)
        except Exception:
            self._channel_failed("hooks", "inject")
            identifier = None
        if identifier:
            stack.callback(self._quietly, "hooks", self.page.remove_injected, identifier)

        # The current document already ran its scripts; instrument it too
        try:
            self.page.evaluate(script)
        except Exception:
            self._channel_failed("hooks", "evaluate")
        stack.callback(self._quietly, "hooks", self.page.evaluate, TEARDOWN_SCRIPT)
        self.active_listeners.add("injected-hooks")

    # ---------------------------------------------------------------- bookkeeping

    def _channel_failed(self, channel: str, what: str = "") -> None:
        self.channel_errors[channel] = self.channel_errors.get(channel, 0) + 1
        logger.debug("Capture channel %s failed %s", channel, what, exc_info=True)

    def _quietly(self, channel: str, fn: Callable, *args) -> None:
        try:
            fn(*args)
        except Exception:
            self._channel_failed(channel, getattr(fn, "__name__", "cleanup"))

    def note_error(self, channel: str) -> None:
        """Count a failure that happened outside the session's own channels."""
        self._channel_failed(channel)

    def _add(self, channel: str, url: str, source: DiscoverySource, **kwargs) -> None:
        """Add one page-supplied URL; a value the collection rejects counts against ``channel``."""
        try:
            self.collection.add(url, source, **kwargs)
        except Exception:
            self._channel_failed(channel, "add")

    # ------------------------------------------------------------------- network

    def _on_request(self, request) -> None:
        try:
            if is_candidate_request(request.url, request.resource_type):
                self._add(
                    "network",
                    request.url,
                    DiscoverySource.NETWORK_REQUEST,
                    resource_type=request.resource_type or None,
                    method=request.method,
                )
        except Exception:
            self._channel_failed("network", "request")

    def _on_response(self, response) -> None:
        try:
            content_type = response.content_type
            if is_media_content_type(content_type) or classify_url(response.url) is not ContentHint.UNKNOWN:
                self._add(
                    "network",
                    response.url,
                    DiscoverySource.NETWORK_RESPONSE,
                    content_type=content_type,
                    status=response.status,
                )
            if self.response_bodies and response.status == 200 and is_textual(content_type):
                body = response.text()
                if body and len(body) <= self.max_body_chars:
                    for url in extract_media_urls(body):
                        self._add("network", url, DiscoverySource.NETWORK_RESPONSE, embedded_in=response.url)
        except Exception:
            self._channel_failed("network", "response")

    # ---------------------------------------------------------------------- poll

    def poll(self) -> None:
        """Pull whatever every channel has found since the last poll."""
        if not self.is_open:
            raise RuntimeError("CaptureSession.poll() needs an open session")
        if self.network:
            try:
                self.page.pump_events()
            except Exception:
                self._channel_failed("network", "pump")
        if self.hooks is not None:
            self._drain_hooks()
        if self.dom_scan:
            self._scan_dom()

    def _drain_hooks(self) -> None:
        try:
            data = self.page.evaluate(DRAIN_SCRIPT)
        except Exception:
            self._channel_failed("hooks", "drain")
            return
        if not isinstance(data, dict):
            return
        for buffer, source in HOOK_BUFFERS:
            for item in data.get(buffer) or []:
                if not isinstance(item, dict):
                    continue
                ts = item.get("ts")
                self._add(
                    "hooks",
                    item.get("url") or "",
                    source,
                    timestamp=ts / 1000.0 if isinstance(ts, (int, float)) else None,
                    origin=item.get("origin"),
                )

    def _scan_dom(self) -> None:
        try:
            data = self.page.evaluate(DOM_SCAN_SCRIPT, list(HOSTING_PLATFORMS))
        except Exception:
            self._channel_failed("domMutation", "scan")
            return
        if not isinstance(data, dict):
            return

        for video in data.get("videos") or []:
            if not isinstance(video, dict):
                continue
            self._add("domMutation", video.get("src") or "", DiscoverySource.VIDEO_MUTATION, element="video")
            for source in video.get("sources") or []:
                if not isinstance(source, dict):
                    continue
                self._add(
                    "domMutation",
                    source.get("src") or "",
                    DiscoverySource.VIDEO_MUTATION,
                    content_type=source.get("type"),
                    element="source",
                )
        for audio in data.get("audio") or []:
            if isinstance(audio, dict):
                self._add("domMutation", audio.get("src") or "", DiscoverySource.VIDEO_MUTATION, element="audio")

        for key in self.dom:
            if data.get(key) is not None:
                self.dom[key] = list(data[key])
        for name in data.get("platforms") or []:
            if name not in self.platforms:
                self.platforms.append(name)
        for name in data.get("players") or []:
            if name not in self.players:
                self.players.append(name)


__all__ = ["CaptureSession", "HOOK_BUFFERS"]
