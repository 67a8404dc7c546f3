# tests/test_capture_aggregator.py
import pytest

from _fakes import FakeClock, FakeElement, FakePage

from mcp_browser_capture.capture import CaptureOptions, CaptureSession, capture_media, render_summary
from mcp_browser_capture.capture.hooks import DOM_SCAN_SCRIPT, DRAIN_SCRIPT, TEARDOWN_SCRIPT
from mcp_browser_capture.errors import PageUnavailableError


def _run(page, clock=None, **opts):
    clock = clock or FakeClock()
    opts.setdefault("click_play", False)
    opts.setdefault("wait_ms", 0)
    return capture_media(page, CaptureOptions(**opts), sleep=clock.sleep, clock=clock)


def test_video_src_is_found_with_zero_wait():
    page = FakePage(scripts={DOM_SCAN_SCRIPT: {"videos": [{"src": "a.mp4", "sources": []}]}})

    report = _run(page)

    assert report.by_kind["direct"] == ["a.mp4"]
    assert report.channel_counts["domMutation"] >= 1
    assert page.listener_count() == 0


def test_media_url_inside_xhr_json_body_is_found():
    page = FakePage()
    page.queue_response(
        "https://example.test/api/source?id=9",
        body='{"file":"https:\\/\\/cdn.example\\/v\\/index.m3u8"}',
        content_type="application/json",
        resource_type="xhr",
    )

    report = _run(page)

    assert report.by_kind["hls"] == ["https://cdn.example/v/index.m3u8"]
    assert report.channel_counts["network"] >= 1
    assert report.dom["videos"] == []


def test_same_url_from_two_channels_is_reported_once():
    url = "https://cdn.example/stream.m3u8"
    page = FakePage(scripts={DRAIN_SCRIPT: {"fetch": [{"url": url, "origin": "fetch", "ts": 5000}]}})
    page.queue_request(url, resource_type="xhr")

    report = _run(page)

    assert report.by_kind["hls"] == [url]
    assert report.duplicates == 1
    # The network event was pumped before the hook buffer was drained
    assert report.resources[0].to_dict()["discoverySource"] == "network-request"


def test_hook_buffers_map_to_their_channels():
    page = FakePage(scripts={DRAIN_SCRIPT: {
        "crypto": [{"url": "https://a.example/x.m3u8", "origin": "cryptojs"}],
        "fetch": [],
        "video": [{"url": "https://a.example/y.mp4", "origin": "video"}],
        "player": [{"url": "https://a.example/z.mpd", "origin": "dash.js"}],
    }})

    report = _run(page)

    assert report.channel_counts == {"network": 0, "hooks": 1, "domMutation": 1, "playerLibrary": 1}


def test_every_channel_failing_still_returns_an_empty_report():
    page = FakePage(scripts={"*": RuntimeError("page crashed")})
    page.fail_inject = True
    page.on_navigate = lambda url: (_ for _ in ()).throw(RuntimeError("net::ERR_FAILED"))
    page.queue_response("https://x/api", body="", content_type="application/json",
                        body_error=RuntimeError("No resource with given identifier"))

    report = _run(page, url="https://x/watch", click_play=True)

    assert report.total == 0
    assert report.by_kind == {"hls": [], "dash": [], "direct": [], "other": []}
    assert report.channel_errors["hooks"] >= 1
    assert report.channel_errors["domMutation"] >= 1
    assert report.channel_errors["navigation"] == 1
    assert report.channel_errors["network"] == 1
    assert page.listener_count() == 0


def test_malformed_video_src_is_counted_and_the_rest_is_kept():
    page = FakePage(scripts={DOM_SCAN_SCRIPT: {
        "videos": [{"src": "http://[broken/v.mp4"}, {"src": "https://cdn.example/ok.mp4"}],
        "platforms": ["filemoon"],
    }})

    report = _run(page)

    assert report.by_kind["direct"] == ["https://cdn.example/ok.mp4"]
    assert report.channel_errors["domMutation"] == 1
    assert report.to_dict()["platformsDetected"] == ["filemoon"]
    assert page.listener_count() == 0


def test_malformed_hook_url_is_counted_and_the_rest_is_kept():
    page = FakePage(scripts={DRAIN_SCRIPT: {
        "crypto": [{"url": "https://[::1/x.m3u8", "origin": "cryptojs"}],
        "fetch": [{"url": "https://cdn.example/master.m3u8", "origin": "fetch"}],
    }})

    report = _run(page)

    assert report.by_kind["hls"] == ["https://cdn.example/master.m3u8"]
    assert report.channel_errors["hooks"] == 1


def test_window_runs_to_completion_and_not_longer():
    clock = FakeClock(start=0.0)
    page = FakePage(scripts={DOM_SCAN_SCRIPT: {"videos": [{"src": "https://x/a.mp4", "sources": []}]}})

    report = _run(page, clock=clock, wait_ms=1000, poll_interval_ms=250)

    # Results arrived at the first poll but the window was not cut short
    assert clock.now == pytest.approx(1.0)
    assert report.elapsed_ms == 1000
    assert len(clock.sleeps) == 4


def test_interactions_stay_inside_the_window():
    clock = FakeClock(start=0.0)
    buttons = [FakeElement("li", f"Server {i}") for i in range(3)]
    page = FakePage({".server-item": buttons})

    report = _run(page, clock=clock, wait_ms=2000, click_play=True, settle_ms=1500)

    assert len(report.interactions) == 2
    assert clock.now == pytest.approx(2.0)


def test_navigation_happens_after_listeners_and_hooks_are_in_place():
    page = FakePage()
    seen = {}

    def on_navigate(url):
        seen["listeners"] = page.listener_count()
        seen["hooks"] = len(page.injected)

    page.on_navigate = on_navigate

    report = _run(page, url="https://x/watch/1")

    assert page.navigations == ["https://x/watch/1"]
    assert seen == {"listeners": 2, "hooks": 1}
    assert report.page_url == "https://x/watch/1"


def test_platforms_and_players_are_reported():
    page = FakePage(
        scripts={DOM_SCAN_SCRIPT: {"platforms": ["filemoon"], "players": ["Hls"], "iframes": [
            {"index": 0, "src": "https://filemoon.sx/e/1", "platform": "filemoon"}]}},
        url="https://streamtape.com/v/abc",
    )

    report = _run(page)
    out = report.to_dict()

    assert out["platformsDetected"] == ["filemoon", "streamtape"]
    assert out["playersDetected"] == ["Hls"]
    assert out["dom"]["iframes"][0]["platform"] == "filemoon"
    assert "Platforms: filemoon, streamtape" in render_summary(report)


def test_missing_page_is_the_only_fatal_error():
    with pytest.raises(PageUnavailableError):
        capture_media(None)


# ------------------------------
# CaptureSession lifecycle
# ------------------------------

def test_session_detaches_everything_when_the_body_raises():
    page = FakePage()

    with pytest.raises(RuntimeError):
        with CaptureSession(page) as session:
            assert page.listener_count() == 2
            assert session.active_listeners == {"network-request", "network-response", "injected-hooks"}
            raise RuntimeError("handler blew up")

    assert page.listener_count() == 0
    assert session.active_listeners == set()
    assert page.injected == {}
    assert page.evaluated[-1] == TEARDOWN_SCRIPT


def test_session_close_is_idempotent():
    page = FakePage()
    session = CaptureSession(page).open()
    session.close()
    session.close()

    assert page.evaluated.count(TEARDOWN_SCRIPT) == 1
    assert len(page.removed) == 1
    with pytest.raises(RuntimeError):
        session.open()


def test_poll_needs_an_open_session():
    page = FakePage()
    session = CaptureSession(page)

    with pytest.raises(RuntimeError):
        session.poll()

    with session:
        assert session.is_open
        session.poll()
    assert not session.is_open
    with pytest.raises(RuntimeError):
        session.poll()
    assert page.evaluated.count(DRAIN_SCRIPT) == 1


def test_session_without_hooks_or_network():
    page = FakePage()

    with CaptureSession(page, network=False, hooks=None) as session:
        assert page.listener_count() == 0
        assert session.active_listeners == set()
        session.poll()

    assert page.injected == {}
    assert DRAIN_SCRIPT not in page.evaluated


def test_oversized_bodies_are_not_scanned():
    page = FakePage()
    page.queue_response("https://x/api", body="https://cdn/a.m3u8 " + "x" * 100,
                        content_type="text/plain")

    with CaptureSession(page, max_body_chars=50, hooks=None, dom_scan=False) as session:
        session.poll()

    assert len(session.collection) == 0


def test_non_200_textual_responses_are_not_scanned_but_media_responses_are_kept():
    page = FakePage()
    page.queue_response("https://x/api", body='"https://cdn/a.m3u8"', content_type="application/json", status=404)
    page.queue_response("https://x/seg?id=1", content_type="video/mp2t")
    page.queue_response("https://x/play?id=2", content_type="application/vnd.apple.mpegurl", body="#EXTM3U")

    with CaptureSession(page, hooks=None, dom_scan=False) as session:
        session.poll()

    kinds = session.collection.by_kind()
    assert kinds["hls"] == ["https://x/play?id=2"]
    assert kinds["direct"] == ["https://x/seg?id=1"]
