import json
import asyncio
import pytest
from unittest.mock import Mock, patch

import psutil
from selenium.common.exceptions import TimeoutException, WebDriverException

from _fakes import FakeElement, FakePage

from mcp_browser_capture.__main__ import (
    mcp_browser_capture__start_browser as start_browser,
    mcp_browser_capture__close_browser as close_browser,
    mcp_browser_capture__force_close_all_chrome as force_close_all_chrome,
    mcp_browser_capture__navigate_to_url as navigate_to_url,
    mcp_browser_capture__get_content as get_content,
    mcp_browser_capture__locate_element as locate_element,
    mcp_browser_capture__click_element as click_element,
    mcp_browser_capture__fill_text as fill_text,
    mcp_browser_capture__extract_media as extract_media,
    mcp_browser_capture__record_network as record_network,
    mcp_browser_capture__capture_ajax as capture_ajax,
    mcp_browser_capture__get_workflow_status as get_workflow_status,
    mcp_browser_capture__get_metrics as get_metrics,
    mcp_browser_capture__reset_metrics as reset_metrics,
    mcp_browser_capture__get_debug_diagnostics_info as get_debug_diagnostics_info,
)
from mcp_browser_capture.capture.hooks import DOM_SCAN_SCRIPT
from mcp_browser_capture.context import get_context, reset_context
from mcp_browser_capture.locator.selectors import text_xpaths
from mcp_browser_capture.tools import browser_management
from mcp_browser_capture.workflow import WorkflowState

##
## We DO NOT want to use pytest-asyncio.
##

@pytest.fixture
def event_loop():
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "CHROME_EXECUTABLE_PATH",
        "CHROME_PROFILE_USER_DATA_DIR",
        "MCP_HEADLESS",
        "MCP_WINDOW_SIZE",
        "MCP_PAGE_LOAD_TIMEOUT",
        "MCP_STRICT_WORKFLOW",
    ):
        monkeypatch.delenv(name, raising=False)


def run(event_loop, coro):
    return json.loads(event_loop.run_until_complete(coro))


class TestMCPBrowserCapture:
    """Tools called the way the MCP server calls them, decorators included."""

    def setup_method(self):
        reset_context()

    def teardown_method(self):
        reset_context()

    def attach(self, page, state=WorkflowState.BROWSER_READY):
        ctx = get_context()
        ctx.page = page
        ctx.workflow.state = state
        return ctx

    # ------------------------------------------------------------------ session

    @patch("mcp_browser_capture.browser.driver.create_webdriver")
    def test_start_browser_success(self, mock_create, event_loop):
        mock_driver = Mock()
        mock_driver.current_url = "about:blank"
        mock_create.return_value = mock_driver

        result = run(event_loop, start_browser())

        assert result["ok"] is True
        assert result["launched"] is True
        assert result["url"] == "about:blank"
        assert get_context().workflow.state is WorkflowState.BROWSER_READY
        mock_create.assert_called_once()

    @patch("mcp_browser_capture.browser.driver.create_webdriver")
    def test_start_browser_reuses_a_live_page(self, mock_create, event_loop):
        ctx = self.attach(FakePage(url="https://x/watch"), WorkflowState.PAGE_LOADED)
        ctx.driver = Mock()

        result = run(event_loop, start_browser())

        assert result["launched"] is False
        assert result["url"] == "https://x/watch"
        assert ctx.workflow.state is WorkflowState.PAGE_LOADED
        mock_create.assert_not_called()

    @patch("mcp_browser_capture.browser.driver.create_webdriver")
    def test_start_browser_failure_includes_diagnostics(self, mock_create, event_loop):
        mock_create.side_effect = WebDriverException("chrome not reachable")

        result = run(event_loop, start_browser())

        assert result["ok"] is False
        assert result["error"] == "driver_not_initialized"
        assert "Selenium" in result["diagnostics"]
        assert get_context().workflow.state is WorkflowState.IDLE

    def test_close_browser(self, event_loop):
        ctx = self.attach(FakePage(), WorkflowState.PAGE_LOADED)
        driver = Mock()
        ctx.driver = driver

        result = run(event_loop, close_browser())

        assert result["closed"] is True
        driver.quit.assert_called_once()
        assert ctx.page is None
        assert ctx.workflow.state is WorkflowState.IDLE

    def test_force_close_kills_only_automation_chrome(self, monkeypatch, event_loop):
        class FakeProc:
            def __init__(self, pid, name, cmdline, gone=False):
                self.info = {"pid": pid, "name": name, "cmdline": cmdline}
                self.gone = gone
                self.killed = False

            def kill(self):
                if self.gone:
                    raise psutil.NoSuchProcess(self.info["pid"])
                self.killed = True

        ours = FakeProc(1, "chrome", ["chrome", "--enable-automation", "--headless=new"])
        users = FakeProc(2, "chrome", ["chrome", "--profile-directory=Default"])
        driver_proc = FakeProc(3, "chromedriver", ["chromedriver"])
        vanished = FakeProc(4, "chromedriver", ["chromedriver"], gone=True)
        monkeypatch.setattr(browser_management.psutil, "process_iter",
                            lambda attrs: [ours, users, driver_proc, vanished])

        ctx = self.attach(FakePage(), WorkflowState.PAGE_LOADED)
        ctx.driver = Mock()

        result = run(event_loop, force_close_all_chrome())

        assert result["killed_processes"] == [1, 3]
        assert len(result["errors"]) == 1
        assert users.killed is False
        assert ctx.page is None
        assert ctx.workflow.state is WorkflowState.IDLE

    # ------------------------------------------------------------- preconditions

    def test_page_tools_need_a_browser(self, event_loop):
        result = run(event_loop, navigate_to_url("https://example.com"))
        assert result["ok"] is False
        assert result["error"] == "browser_not_started"

    def test_lost_window_is_reported_and_forgotten(self, event_loop):
        page = FakePage()
        page.alive = False
        ctx = self.attach(page, WorkflowState.PAGE_LOADED)

        result = run(event_loop, get_content())

        assert result["error"] == "browser_window_lost"
        assert ctx.page is None

    def test_out_of_order_calls_are_rejected(self, event_loop):
        self.attach(FakePage())

        result = run(event_loop, get_content())

        assert result["error"] == "workflow_violation"
        assert "navigate_to_url" in result["suggested_action"]

    # --------------------------------------------------------------- navigation

    def test_navigate_then_inspect_then_click(self, event_loop):
        submit = FakeElement("button", "Submit")
        page = FakePage({text_xpaths("submit")[0]: [submit]}, html="<button>Submit</button>")
        ctx = self.attach(page)

        nav = run(event_loop, navigate_to_url("https://x/form"))
        assert nav["url"] == "https://x/form"
        assert ctx.workflow.state is WorkflowState.PAGE_LOADED

        early = run(event_loop, click_element("#submit-btn"))
        assert early["error"] == "workflow_violation"

        outline = run(event_loop, get_content(mode="outline"))
        assert outline["outline"]["controls"][0]["text"] == "Submit"

        clicked = run(event_loop, click_element("#submit-btn"))
        assert clicked["ok"] is True
        assert clicked["strategy"] == "text-match"
        assert clicked["note"].startswith("Self-healing:")
        assert page.clicked == [submit]

    def test_navigation_timeout_is_a_warning(self, event_loop):
        page = FakePage()
        page.on_navigate = Mock(side_effect=TimeoutException("slow"))
        self.attach(page)

        result = run(event_loop, navigate_to_url("https://x/slow"))

        assert result["ok"] is True
        assert "timed out" in result["warning"]

    # -------------------------------------------------------------- interaction

    def test_click_not_found_lists_every_strategy(self, event_loop):
        ctx = self.attach(FakePage(), WorkflowState.CONTENT_ANALYZED)

        result = run(event_loop, click_element("#nothing"))

        assert result["ok"] is False
        assert result["error"] == "element_not_found"
        assert result["strategies_tried"] == ["text-match", "relaxed-structure", "attribute-fuzzy", "role-based"]
        assert result["troubleshooting"]
        assert ctx.workflow.history[-1]["success"] is False

    def test_locate_element_not_found_goes_through_the_envelope(self, event_loop):
        self.attach(FakePage(), WorkflowState.PAGE_LOADED)

        result = run(event_loop, locate_element("#nothing"))

        assert result["error"] == "element_not_found"
        assert "fallback_summary" in result

    def test_locate_element_reports_attempts(self, event_loop):
        btn = FakeElement("button", "Go")
        ctx = self.attach(FakePage({"#go": [btn]}), WorkflowState.PAGE_LOADED)

        result = run(event_loop, locate_element("#go", include_attempts=True))

        assert result["found"] is True
        assert result["strategy"] == "primary"
        assert result["text"] == "Go"
        assert "note" not in result
        assert result["attempts"]
        assert ctx.workflow.state is WorkflowState.CONTENT_ANALYZED

    def test_fill_text(self, event_loop):
        field = FakeElement("input", "", value="old")
        page = FakePage({"input[name=q]": [field]})
        self.attach(page, WorkflowState.CONTENT_ANALYZED)

        result = run(event_loop, fill_text("input[name=q]", "hello", clear_first=False))

        assert result["ok"] is True
        assert result["chars"] == 5
        assert field.value == "oldhello"

    # ------------------------------------------------------------------ capture

    def test_extract_media_with_url_only_needs_a_browser(self, event_loop):
        page = FakePage(scripts={DOM_SCAN_SCRIPT: {"videos": [{"src": "https://cdn.x/a.mp4", "sources": []}]}})
        ctx = self.attach(page)

        result = run(event_loop, extract_media(url="https://x/watch", wait_ms=0, click_play=False))

        assert result["ok"] is True
        assert result["resourcesByKind"]["direct"] == ["https://cdn.x/a.mp4"]
        assert "Captured 1 media URL(s)" in result["summary"]
        assert page.navigations == ["https://x/watch"]
        assert page.listener_count() == 0
        assert ctx.workflow.state is WorkflowState.PAGE_LOADED
        assert ctx.metrics.report()["data_quality"]["media_urls_found"]["last"] == 1.0

    def test_extract_media_without_url_needs_a_page(self, event_loop):
        self.attach(FakePage())

        result = run(event_loop, extract_media(wait_ms=0, click_play=False))

        assert result["error"] == "workflow_violation"

    def test_record_network_and_capture_ajax(self, event_loop):
        page = FakePage()
        self.attach(page, WorkflowState.PAGE_LOADED)

        page.queue_response("https://x/api/list", body='{"a":1}', content_type="application/json",
                            resource_type="xhr")
        page.queue_response("https://x/img.png", content_type="image/png", resource_type="image")
        recorded = run(event_loop, record_network(duration_ms=0, resource_types=["image"]))
        assert [r["url"] for r in recorded["records"]] == ["https://x/img.png"]

        page.queue_response("https://x/api/list", body='{"a":1}', content_type="application/json",
                            resource_type="fetch")
        page.queue_response("https://x/other", body="{}", content_type="application/json", resource_type="xhr")
        ajax = run(event_loop, capture_ajax(duration_ms=0, url_contains="/api/"))
        assert ajax["count"] == 1
        assert ajax["records"][0]["body"] == '{"a":1}'

    def test_recorders_with_url_only_need_a_browser(self, event_loop):
        page = FakePage()
        ctx = self.attach(page)

        assert run(event_loop, record_network(duration_ms=0))["error"] == "workflow_violation"
        assert run(event_loop, capture_ajax(duration_ms=0))["error"] == "workflow_violation"

        recorded = run(event_loop, record_network(duration_ms=0, url="https://x/watch"))
        assert recorded["ok"] is True
        assert page.navigations == ["https://x/watch"]
        assert ctx.workflow.state is WorkflowState.PAGE_LOADED

        ctx.workflow.state = WorkflowState.BROWSER_READY
        ajax = run(event_loop, capture_ajax(duration_ms=0, url="https://x/api-page"))
        assert ajax["ok"] is True
        assert page.navigations[-1] == "https://x/api-page"

    # --------------------------------------------------------------- monitoring

    def test_workflow_status_and_metrics(self, event_loop):
        self.attach(FakePage())
        run(event_loop, navigate_to_url("https://x/"))

        status = run(event_loop, get_workflow_status())
        assert status["state"] == "page_loaded"
        assert status["history"][-1]["tool"] == "navigate_to_url"

        metrics = run(event_loop, get_metrics())
        assert metrics["operations"]["navigate_to_url"]["count"] == 1

        run(event_loop, reset_metrics())
        assert run(event_loop, get_metrics())["total_operations"] == 0
        # Monitoring calls are not part of the workflow history
        assert run(event_loop, get_workflow_status())["history"][-1]["tool"] == "navigate_to_url"

    def test_debug_diagnostics(self, event_loop):
        self.attach(FakePage(url="https://x/page"))

        result = run(event_loop, get_debug_diagnostics_info())

        assert result["ok"] is True
        assert "https://x/page" in result["summary"]
        assert result["page_listeners"] == {"request": 0, "response": 0}
