"""
Page handle: the capability surface the locator and the capture aggregator use.

PageHandle holds listener bookkeeping shared by every implementation.
SeleniumPage implements the surface over a Chrome WebDriver. Network events
come from the Chrome performance log, so they are delivered only when
pump_events() is called, never from a background thread.
"""

import abc
import base64
import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from selenium.common.exceptions import (
    ElementClickInterceptedException,
    ElementNotInteractableException,
    InvalidElementStateException,
    StaleElementReferenceException,
    WebDriverException,
)
from selenium.webdriver.common.by import By

import logging
logger = logging.getLogger(__name__)


EVENTS = ("request", "response")

_SET_VALUE_JS = """
const el = arguments[0], text = arguments[1], clear = arguments[2];
el.focus();
el.value = clear ? text : (el.value || '') + text;
el.dispatchEvent(new Event('input', {bubbles: true}));
el.dispatchEvent(new Event('change', {bubbles: true}));
"""


@dataclass
class NetworkRequest:
    request_id: str
    url: str
    method: str = "GET"
    resource_type: str = ""
    headers: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


@dataclass
class NetworkResponse:
    request_id: str
    url: str
    status: int = 0
    mime_type: str = ""
    resource_type: str = ""
    headers: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    body_loader: Optional[Callable[[], str]] = field(default=None, repr=False, compare=False)

    @property
    def content_type(self) -> str:
        for key, value in (self.headers or {}).items():
            if key.lower() == "content-type":
                return str(value)
        return self.mime_type or ""

    def text(self) -> str:
        """Response body as text. Raises when the browser no longer has it."""
        if self.body_loader is None:
            return ""
        return self.body_loader()


class PageHandle(abc.ABC):
    """
    One live browser page.

    ``evaluate`` runs a script in the page's own realm: arguments and return
    values must be plain data (strings, numbers, lists, dicts, element refs),
    never callables.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable[[Any], None]]] = {e: [] for e in EVENTS}

    # ------------------------------------------------------------------ events

    def on(self, event: str, callback: Callable[[Any], None]) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown page event {event!r}; expected one of {EVENTS}")
        first = self.listener_count() == 0
        self._listeners[event].append(callback)
        if first:
            self._start_events()

    def off(self, event: str, callback: Callable[[Any], None]) -> None:
        try:
            self._listeners[event].remove(callback)
        except (KeyError, ValueError):
            return
        if self.listener_count() == 0:
            self._stop_events()

    def listener_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, ()))
        return sum(len(v) for v in self._listeners.values())

    def _emit(self, event: str, payload: Any) -> None:
        for cb in list(self._listeners.get(event, ())):
            try:
                cb(payload)
            except Exception:
                logger.debug("Page %s listener failed", event, exc_info=True)

    def _start_events(self) -> None:
        """Hook for implementations that need to switch event delivery on."""

    def _stop_events(self) -> None:
        """Hook for implementations that need to switch event delivery off."""

    # ------------------------------------------------------------- capability

    @property
    @abc.abstractmethod
    def url(self) -> str: ...

    @property
    @abc.abstractmethod
    def title(self) -> str: ...

    @abc.abstractmethod
    def query(self, selector: str, selector_type: str = "css") -> list: ...

    @abc.abstractmethod
    def is_usable(self, element) -> bool: ...

    @abc.abstractmethod
    def element_text(self, element) -> str: ...

    @abc.abstractmethod
    def evaluate(self, script: str, *args): ...

    @abc.abstractmethod
    def pump_events(self) -> int: ...

    @abc.abstractmethod
    def inject_before_load(self, source: str) -> Optional[str]: ...

    @abc.abstractmethod
    def remove_injected(self, identifier: str) -> None: ...

    @abc.abstractmethod
    def navigate(self, url: str) -> None: ...

    @abc.abstractmethod
    def click(self, element) -> None: ...

    @abc.abstractmethod
    def type(self, element, text: str, clear: bool = True) -> None: ...

    @abc.abstractmethod
    def page_source(self) -> str: ...

    def is_alive(self) -> bool:
        return True


class SeleniumPage(PageHandle):
    """PageHandle over a Chrome WebDriver started with performance logging."""

    def __init__(self, driver):
        super().__init__()
        self.driver = driver
        # requestId -> {"request": NetworkRequest, "response": NetworkResponse}
        self._inflight: Dict[str, Dict[str, Any]] = {}

    @property
    def url(self) -> str:
        return self.driver.current_url or ""

    @property
    def title(self) -> str:
        return self.driver.title or ""

    def query(self, selector: str, selector_type: str = "css") -> list:
        by = By.XPATH if selector_type == "xpath" else By.CSS_SELECTOR
        return list(self.driver.find_elements(by, selector))

    def is_usable(self, element) -> bool:
        try:
            return bool(element.is_displayed())
        except (StaleElementReferenceException, WebDriverException):
            return False

    def element_text(self, element) -> str:
        try:
            return (element.text or element.get_attribute("value") or "").strip()
        except (StaleElementReferenceException, WebDriverException):
            return ""

    def evaluate(self, script: str, *args):
        return self.driver.execute_script(script, *args)

    def inject_before_load(self, source: str) -> Optional[str]:
        res = self.driver.execute_cdp_cmd("Page.addScriptToEvaluateOnNewDocument", {"source": source}) or {}
        return res.get("identifier")

    def remove_injected(self, identifier: str) -> None:
        self.driver.execute_cdp_cmd("Page.removeScriptToEvaluateOnNewDocument", {"identifier": identifier})

    def navigate(self, url: str) -> None:
        self.driver.get(url)

    def click(self, element) -> None:
        try:
            element.click()
        except (ElementClickInterceptedException, ElementNotInteractableException):
            logger.debug("Native click refused, falling back to JS click")
            self.driver.execute_script("arguments[0].click();", element)

    def type(self, element, text: str, clear: bool = True) -> None:
        try:
            if clear:
                element.clear()
            element.send_keys(text)
        except (ElementNotInteractableException, InvalidElementStateException):
            logger.debug("send_keys refused, assigning value via JS")
            self.driver.execute_script(_SET_VALUE_JS, element, text, bool(clear))

    def page_source(self) -> str:
        return self.driver.execute_script("return document.documentElement.outerHTML") or ""

    def is_alive(self) -> bool:
        try:
            return bool(self.driver.current_window_handle)
        except WebDriverException:
            return False

    # ---------------------------------------------------------------- network

    def _start_events(self) -> None:
        try:
            self.driver.execute_cdp_cmd("Network.enable", {})
        except WebDriverException:
            logger.debug("Network.enable failed", exc_info=True)
        # Entries buffered before anyone listened belong to nobody
        try:
            self.driver.get_log("performance")
        except WebDriverException:
            logger.debug("Performance log unavailable; was the driver started with goog:loggingPrefs?")
        self._inflight.clear()

    def _stop_events(self) -> None:
        self._inflight.clear()

    def _body_loader(self, request_id: str) -> Callable[[], str]:
        def load() -> str:
            res = self.driver.execute_cdp_cmd("Network.getResponseBody", {"requestId": request_id}) or {}
            body = res.get("body") or ""
            if res.get("base64Encoded"):
                return base64.b64decode(body).decode("utf-8", errors="replace")
            return body
        return load

    def pump_events(self) -> int:
        """Drain the performance log and dispatch network events. Returns the number dispatched."""
        if self.listener_count() == 0:
            return 0
        try:
            entries = self.driver.get_log("performance")
        except WebDriverException:
            logger.debug("Could not read performance log", exc_info=True)
            return 0

        dispatched = 0
        for entry in entries:
            try:
                message = json.loads(entry["message"])["message"]
            except (KeyError, TypeError, ValueError):
                continue
            method = message.get("method", "")
            params = message.get("params") or {}
            request_id = params.get("requestId")
            if not request_id or not method.startswith("Network."):
                continue

            if method == "Network.requestWillBeSent":
                req = params.get("request") or {}
                request = NetworkRequest(
                    request_id=request_id,
                    url=req.get("url", ""),
                    method=req.get("method", "GET"),
                    resource_type=(params.get("type") or "").lower(),
                    headers=req.get("headers") or {},
                    timestamp=params.get("wallTime") or time.time(),
                )
                self._inflight[request_id] = {"request": request}
                self._emit("request", request)
                dispatched += 1

            elif method == "Network.responseReceived":
                resp = params.get("response") or {}
                self._inflight.setdefault(request_id, {})["response"] = NetworkResponse(
                    request_id=request_id,
                    url=resp.get("url", ""),
                    status=int(resp.get("status") or 0),
                    mime_type=resp.get("mimeType", ""),
                    resource_type=(params.get("type") or "").lower(),
                    headers=resp.get("headers") or {},
                    body_loader=self._body_loader(request_id),
                )

            elif method == "Network.loadingFinished":
                # The body can only be fetched once loading finished
                response = self._inflight.pop(request_id, {}).get("response")
                if response is not None:
                    self._emit("response", response)
                    dispatched += 1

            elif method == "Network.loadingFailed":
                self._inflight.pop(request_id, None)

        return dispatched


__all__ = [
    "EVENTS",
    "NetworkRequest",
    "NetworkResponse",
    "PageHandle",
    "SeleniumPage",
]
