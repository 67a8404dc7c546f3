"""WebDriver creation and lifecycle."""

from typing import Optional

from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options

import logging
logger = logging.getLogger(__name__)

from ..context import get_context
from .page import SeleniumPage, PageHandle


def create_webdriver(config: dict) -> webdriver.Chrome:
    """Launch Chrome with the performance log enabled so network events can be read."""
    options = Options()

    chrome_path = config.get("chrome_path")
    if chrome_path:
        options.binary_location = chrome_path

    if config.get("headless", True):
        options.add_argument("--headless=new")
    width, height = config.get("window_size") or (1366, 900)
    options.add_argument(f"--window-size={width},{height}")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--autoplay-policy=no-user-gesture-required")

    user_data_dir = config.get("user_data_dir")
    if user_data_dir:
        options.add_argument(f"--user-data-dir={user_data_dir}")
        options.add_argument(f"--profile-directory={config.get('profile_name') or 'Default'}")

    options.set_capability("goog:loggingPrefs", {"performance": "ALL"})
    options.add_experimental_option("perfLoggingPrefs", {"enableNetwork": True, "enablePage": False})

    driver = webdriver.Chrome(options=options)
    timeout = config.get("page_load_timeout")
    if timeout:
        driver.set_page_load_timeout(int(timeout))
    return driver


def ensure_driver() -> bool:
    """
    Make sure the context holds a live driver and page.

    Returns True when a new browser was launched, False when an existing one
    was reused.
    """
    ctx = get_context()

    if ctx.driver is not None and ctx.page is not None:
        if ctx.page.is_alive():
            return False
        logger.info("Existing browser window is gone; launching a new one")
        close_driver()

    ctx.driver = create_webdriver(ctx.config)
    ctx.page = SeleniumPage(ctx.driver)
    return True


def close_driver() -> bool:
    """Quit the driver and forget the page. Returns True when something was closed."""
    ctx = get_context()
    if ctx.driver is None:
        ctx.reset_browser_state()
        return False
    try:
        ctx.driver.quit()
    except WebDriverException:
        logger.debug("driver.quit() failed", exc_info=True)
    finally:
        ctx.reset_browser_state()
    return True


def get_page() -> Optional[PageHandle]:
    return get_context().get_page()


__all__ = [
    "create_webdriver",
    "ensure_driver",
    "close_driver",
    "get_page",
]
