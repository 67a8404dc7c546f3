# tests/tests_decorators/test_decorators.py
import json
import asyncio
import pytest

from mcp_browser_capture.context import get_context, reset_context
from mcp_browser_capture.decorators import (
    tool_envelope, exclusive_browser_access, workflow_gate,
)
from mcp_browser_capture.errors import ElementNotFound, PageUnavailableError
from mcp_browser_capture.workflow import BROWSER, PAGE, WorkflowState

## We DO NOT want to use pytest-asyncio.
## Instead, use event_loop.run_until_complete()!


@pytest.fixture(scope="function")
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
    reset_context()
    yield
    reset_context()


# ------------------------------
# tool_envelope tests
# ------------------------------

def test_tool_envelope_normalizes_sync_success_and_values():
    @tool_envelope
    def f_none():
        return None

    @tool_envelope
    def f_dict():
        return {"a": 1}

    @tool_envelope
    def f_bytes():
        return b"hello"

    class O:
        def __repr__(self):
            return "<O>"

    @tool_envelope
    def f_obj():
        return O()

    assert f_none() == ""
    assert json.loads(f_dict()) == {"a": 1}
    assert f_bytes() == "hello"
    assert isinstance(f_obj(), str)


def test_tool_envelope_error_payload_includes_traceback_by_default():
    @tool_envelope
    def f_fail():
        raise ValueError("boom")

    payload = json.loads(f_fail())
    assert payload["ok"] is False
    assert payload["error"]["type"] == "ValueError"
    assert "traceback" in payload["error"]
    assert "timestamp" in payload


def test_tool_envelope_error_payload_without_traceback_when_disabled(monkeypatch):
    monkeypatch.setenv("MCP_TOOL_ERRORS_TRACEBACK", "0")

    @tool_envelope
    def f_fail():
        raise RuntimeError("err")

    payload = json.loads(f_fail())
    assert payload["ok"] is False
    assert "traceback" not in payload["error"]


def test_tool_envelope_renders_domain_errors_with_their_own_payload():
    @tool_envelope
    def f_missing():
        raise ElementNotFound("#gone", {"strategy": "primary"}, [{"strategy": "text-match", "candidates": []}])

    @tool_envelope
    def f_no_page():
        raise PageUnavailableError()

    missing = json.loads(f_missing())
    assert missing["error"] == "element_not_found"
    assert missing["selector"] == "#gone"
    assert missing["strategies_tried"] == ["text-match"]

    no_page = json.loads(f_no_page())
    assert no_page["error"] == "page_unavailable"
    assert "start_browser" in no_page["suggested_action"]


def test_tool_envelope_async_cancelled_error_propagates(event_loop):
    @tool_envelope
    async def f_cancel():
        raise asyncio.CancelledError()

    async def test_logic():
        with pytest.raises(asyncio.CancelledError):
            await f_cancel()

    event_loop.run_until_complete(test_logic())


def test_tool_envelope_normalizes_async_return(event_loop):
    @tool_envelope
    async def f():
        return {"msg": "ok"}

    async def test_logic():
        out = await f()
        assert json.loads(out) == {"msg": "ok"}

    event_loop.run_until_complete(test_logic())


def test_tool_envelope_bytes_decoding_fallback():
    @tool_envelope
    def f():
        return b"\xff\xfe\xfa"

    s = f()
    assert isinstance(s, str)
    assert len(s) > 0


# ------------------------------
# exclusive_browser_access tests
# ------------------------------

def test_exclusive_browser_access_rejects_sync_functions():
    with pytest.raises(TypeError):
        @exclusive_browser_access
        def f():
            return "nope"


def test_exclusive_browser_access_reports_invalid_configuration(monkeypatch, event_loop):
    monkeypatch.setenv("MCP_WINDOW_SIZE", "huge")
    ran = {"x": False}

    @exclusive_browser_access
    async def f():
        ran["x"] = True
        return "OK"

    async def test_logic():
        payload = json.loads(await f())
        assert payload["ok"] is False
        assert payload["error"] == "invalid_configuration"
        assert "MCP_WINDOW_SIZE" in payload["message"]
        assert ran["x"] is False

    event_loop.run_until_complete(test_logic())


def test_exclusive_browser_access_fills_in_config_once_the_environment_is_fixed(monkeypatch, event_loop):
    monkeypatch.setenv("MCP_STRICT_WORKFLOW", "maybe")
    ctx = get_context()
    assert ctx.config == {}

    monkeypatch.setenv("MCP_STRICT_WORKFLOW", "0")

    @exclusive_browser_access
    async def f():
        return "OK"

    assert event_loop.run_until_complete(f()) == "OK"
    assert ctx.config["strict_workflow"] is False
    assert ctx.workflow.strict is False


def test_exclusive_browser_access_serializes_concurrent_calls(event_loop):
    running = {"flag": False, "overlap": False}

    @exclusive_browser_access
    async def f():
        if running["flag"]:
            running["overlap"] = True
        running["flag"] = True
        await asyncio.sleep(0.05)
        running["flag"] = False
        return "done"

    async def test_logic():
        res = await asyncio.gather(f(), f())
        assert res == ["done", "done"]
        assert running["overlap"] is False

    event_loop.run_until_complete(test_logic())


# ------------------------------
# workflow_gate tests
# ------------------------------

def test_workflow_gate_rejects_out_of_order_calls(event_loop):
    @tool_envelope
    @workflow_gate("navigate_to_url")
    async def navigate():
        return {"ok": True}

    payload = json.loads(event_loop.run_until_complete(navigate()))
    assert payload["ok"] is False
    assert payload["error"] == "workflow_violation"
    assert payload["tool"] == "navigate_to_url"
    assert "start_browser" in payload["suggested_action"]

    ctx = get_context()
    assert ctx.workflow.failures == 1
    assert ctx.metrics.report()["operations"]["navigate_to_url"]["failures"] == 1


def test_workflow_gate_records_success_and_transitions(event_loop):
    @workflow_gate("start_browser")
    async def start():
        return json.dumps({"ok": True})

    event_loop.run_until_complete(start())

    ctx = get_context()
    assert ctx.workflow.state is WorkflowState.BROWSER_READY
    assert ctx.metrics.report()["operations"]["start_browser"]["count"] == 1


def test_workflow_gate_counts_in_band_failures(event_loop):
    ctx = get_context()
    ctx.workflow.record_execution("start_browser", True)

    @workflow_gate("navigate_to_url")
    async def navigate():
        return json.dumps({"ok": False, "error": "timeout"})

    event_loop.run_until_complete(navigate())

    assert ctx.workflow.state is WorkflowState.BROWSER_READY
    assert ctx.workflow.history[-1]["success"] is False


def test_workflow_gate_logs_and_reraises_exceptions(event_loop):
    ctx = get_context()
    ctx.workflow.record_execution("start_browser", True)

    @workflow_gate("navigate_to_url")
    async def navigate():
        raise RuntimeError("renderer crashed")

    with pytest.raises(RuntimeError):
        event_loop.run_until_complete(navigate())

    assert ctx.metrics.errors[-1]["context"] == {"tool": "navigate_to_url"}
    assert "renderer crashed" in ctx.workflow.history[-1]["error"]


def test_workflow_gate_requirements_can_depend_on_arguments(event_loop):
    ctx = get_context()
    ctx.workflow.record_execution("start_browser", True)

    @tool_envelope
    @workflow_gate("extract_media", lambda kwargs: BROWSER if kwargs.get("url") else PAGE)
    async def extract(url=None):
        return {"ok": True}

    assert json.loads(event_loop.run_until_complete(extract(url="https://x/watch")))["ok"] is True
    assert json.loads(event_loop.run_until_complete(extract()))["error"] == "workflow_violation"
