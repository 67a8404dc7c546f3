"""
Centralized browser state management.

One BrowserContext exists per server process. It owns the Selenium driver, the
page handle wrapped around it, the workflow validator and the metrics store,
so nothing in the package keeps hidden module-level state.

Thread Safety:
    The BrowserContext itself is NOT thread-safe. Access should be
    coordinated using the locking decorator (exclusive_browser_access).

Usage:
    from mcp_browser_capture.context import get_context

    ctx = get_context()
    if ctx.page is None:
        ...
"""

from typing import Optional, TYPE_CHECKING
from dataclasses import dataclass, field
import asyncio

from .monitoring.metrics import MetricsStore
from .workflow.validator import WorkflowValidator

if TYPE_CHECKING:
    from selenium import webdriver
    from .browser.page import PageHandle


@dataclass
class BrowserContext:
    """
    Encapsulates all browser session state.

    Attributes:
        driver: Selenium WebDriver instance
        page: PageHandle wrapping the driver, None until start_browser ran
        config: Environment configuration dictionary
        workflow: Workflow validator gating tool calls
        metrics: Per-server metrics store
        intra_process_lock: Asyncio lock for serializing operations within this process
    """

    driver: Optional["webdriver.Chrome"] = None
    page: Optional["PageHandle"] = None

    # Configuration (should be immutable after initialization)
    config: dict = field(default_factory=dict)

    workflow: WorkflowValidator = field(default_factory=WorkflowValidator)
    metrics: MetricsStore = field(default_factory=MetricsStore)

    intra_process_lock: Optional[asyncio.Lock] = None

    def is_driver_initialized(self) -> bool:
        """Check if driver is initialized."""
        return self.driver is not None

    def get_page(self) -> Optional["PageHandle"]:
        return self.page

    def reset_browser_state(self) -> None:
        """Forget the driver and page (after close or a crash)."""
        self.driver = None
        self.page = None

    def get_intra_process_lock(self) -> asyncio.Lock:
        """Get or create the intra-process asyncio lock."""
        if self.intra_process_lock is None:
            self.intra_process_lock = asyncio.Lock()
        return self.intra_process_lock


# ============================================================================
# Global Context Management
# ============================================================================

_global_context: Optional[BrowserContext] = None


def get_context() -> BrowserContext:
    """
    Get or create the global browser context.

    All calls return the same context instance. Use reset_context() to clear
    it (mainly for testing).
    """
    global _global_context

    if _global_context is None:
        from .config.environment import get_env_config

        try:
            config = get_env_config()
        except EnvironmentError:
            # Reported again by exclusive_browser_access on the first tool call
            config = {}
        _global_context = BrowserContext(
            config=config,
            workflow=WorkflowValidator(strict=config.get("strict_workflow", True)),
        )

    return _global_context


def reset_context() -> None:
    """
    Reset the global context.

    WARNING: This is primarily for testing. In production code,
    use close_browser() instead of directly resetting context.
    """
    global _global_context
    _global_context = None


__all__ = [
    "BrowserContext",
    "get_context",
    "reset_context",
]
