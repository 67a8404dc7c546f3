"""Environment configuration and validation."""

import os
from pathlib import Path

from dotenv import load_dotenv, find_dotenv

import logging
logger = logging.getLogger(__name__)


_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _load_dotenv() -> None:
    path = find_dotenv(filename=".env", usecwd=True)
    if path:
        load_dotenv(path, override=False)


def _flag(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise EnvironmentError(f"{name} must be a boolean flag (1/0, true/false), got {raw!r}.")


def _window_size(raw: str) -> tuple:
    try:
        w, h = (int(x) for x in raw.replace("x", ",").split(","))
    except ValueError:
        raise EnvironmentError(f"MCP_WINDOW_SIZE must look like '1366,900', got {raw!r}.")
    if w <= 0 or h <= 0:
        raise EnvironmentError(f"MCP_WINDOW_SIZE must be positive, got {raw!r}.")
    return w, h


def get_env_config() -> dict:
    """
    Read environment variables (after loading a .env file from the working
    directory, if one exists) and validate them.

    Optional:   CHROME_EXECUTABLE_PATH
                CHROME_PROFILE_USER_DATA_DIR
                CHROME_PROFILE_NAME (default 'Default')
                MCP_HEADLESS (default 1)
                MCP_WINDOW_SIZE (default '1366,900')
                MCP_PAGE_LOAD_TIMEOUT (seconds, default 30)
                MCP_STRICT_WORKFLOW (default 1)

    Nothing is required: with an empty environment Selenium Manager resolves
    Chrome and a throwaway profile is used.
    """
    _load_dotenv()

    chrome_path = (os.getenv("CHROME_EXECUTABLE_PATH") or "").strip() or None
    if chrome_path and not Path(chrome_path).exists():
        raise EnvironmentError(f"CHROME_EXECUTABLE_PATH does not exist: {chrome_path}")

    user_data_dir = (os.getenv("CHROME_PROFILE_USER_DATA_DIR") or "").strip() or None
    if user_data_dir and not Path(user_data_dir).is_dir():
        raise EnvironmentError(f"CHROME_PROFILE_USER_DATA_DIR is not a directory: {user_data_dir}")

    profile_name = (os.getenv("CHROME_PROFILE_NAME") or "Default").strip() or "Default"

    timeout_raw = (os.getenv("MCP_PAGE_LOAD_TIMEOUT") or "30").strip()
    if not timeout_raw.isdigit() or int(timeout_raw) <= 0:
        raise EnvironmentError(f"MCP_PAGE_LOAD_TIMEOUT must be a positive integer, got {timeout_raw!r}.")

    return {
        "chrome_path": chrome_path,
        "user_data_dir": user_data_dir,
        "profile_name": profile_name,
        "headless": _flag("MCP_HEADLESS", True),
        "window_size": _window_size((os.getenv("MCP_WINDOW_SIZE") or "1366,900").strip()),
        "page_load_timeout": int(timeout_raw),
        "strict_workflow": _flag("MCP_STRICT_WORKFLOW", True),
    }


__all__ = ["get_env_config"]
