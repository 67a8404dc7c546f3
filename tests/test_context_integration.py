"""Integration tests for BrowserContext state management.

Every piece of browser state lives on the context, so resetting it must give
tools a clean slate.
"""

import pytest

from _fakes import FakePage

from mcp_browser_capture.context import get_context, reset_context, BrowserContext
from mcp_browser_capture.monitoring import MetricsStore
from mcp_browser_capture.workflow import WorkflowState, WorkflowValidator


class TestContextIntegration:
    """Test BrowserContext integration."""

    def setup_method(self):
        """Reset context before each test."""
        reset_context()

    def teardown_method(self):
        reset_context()

    def test_context_singleton(self):
        """Test that get_context returns same instance."""
        ctx1 = get_context()
        ctx2 = get_context()
        assert ctx1 is ctx2

    def test_context_has_required_attributes(self):
        ctx = get_context()
        assert ctx.driver is None
        assert ctx.page is None
        assert isinstance(ctx.config, dict)
        assert isinstance(ctx.workflow, WorkflowValidator)
        assert isinstance(ctx.metrics, MetricsStore)

    def test_context_methods(self):
        ctx = get_context()
        assert ctx.is_driver_initialized() is False
        assert ctx.get_page() is None

        ctx.driver = object()
        ctx.page = FakePage()
        assert ctx.is_driver_initialized() is True
        assert ctx.get_page() is ctx.page

        ctx.reset_browser_state()
        assert ctx.driver is None
        assert ctx.page is None

    def test_lock_is_created_once(self):
        ctx = get_context()
        assert ctx.get_intra_process_lock() is ctx.get_intra_process_lock()

    def test_reset_gives_fresh_workflow_and_metrics(self):
        ctx = get_context()
        ctx.workflow.record_execution("start_browser", True)
        ctx.metrics.record_performance("start_browser", 1.0, True)

        reset_context()
        fresh = get_context()

        assert fresh is not ctx
        assert fresh.workflow.state is WorkflowState.IDLE
        assert fresh.metrics.report()["total_operations"] == 0

    def test_strict_workflow_follows_the_environment(self, monkeypatch):
        monkeypatch.setenv("MCP_STRICT_WORKFLOW", "0")
        assert get_context().workflow.strict is False

    def test_broken_environment_still_gives_a_context(self, monkeypatch):
        monkeypatch.setenv("MCP_PAGE_LOAD_TIMEOUT", "-3")
        ctx = get_context()
        assert ctx.config == {}
        assert ctx.workflow.strict is True

    def test_standalone_contexts_do_not_share_state(self):
        a, b = BrowserContext(), BrowserContext()
        a.workflow.record_execution("start_browser", True)
        assert b.workflow.state is WorkflowState.IDLE


class TestDirectImports:
    """Test that direct imports from modules work correctly."""

    def test_browser_imports(self):
        from mcp_browser_capture.browser.driver import create_webdriver, ensure_driver, close_driver, get_page
        assert callable(create_webdriver)
        assert callable(ensure_driver)
        assert callable(close_driver)
        assert callable(get_page)

    def test_locator_imports(self):
        from mcp_browser_capture.locator import locate, STRATEGIES
        assert callable(locate)
        assert len(STRATEGIES) == 4

    def test_capture_imports(self):
        from mcp_browser_capture.capture import capture_media, CaptureSession, record_network
        assert callable(capture_media)
        assert callable(record_network)
        assert CaptureSession is not None

    def test_utils_diagnostics_imports(self):
        from mcp_browser_capture.utils.diagnostics import collect_diagnostics
        assert callable(collect_diagnostics)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
