"""Tests for the host window message dispatch and default browser opener."""
import asyncio
import threading

from oauth_popup import window as window_module
from oauth_popup.window import BrowserPopup, HostWindow, MessageEvent, open_in_browser


def test_post_message_reaches_registered_listeners_with_origin():
    w = HostWindow("https://app.example/")
    assert w.origin == "https://app.example"
    seen = []
    w.add_message_listener(seen.append)
    w.add_message_listener(seen.append)
    assert w.listener_count == 1
    w.post_message({"a": 1}, "https://other.example")
    assert seen == [MessageEvent(origin="https://other.example", data={"a": 1})]


def test_removed_listener_gets_nothing():
    w = HostWindow("https://app.example")
    seen = []
    w.add_message_listener(seen.append)
    w.remove_message_listener(seen.append)
    w.remove_message_listener(seen.append)
    w.post_message("hi", "https://app.example")
    assert seen == []


def test_listener_may_remove_itself_during_dispatch():
    w = HostWindow("https://app.example")
    calls = []

    def once(event):
        calls.append(event)
        w.remove_message_listener(once)

    w.add_message_listener(once)
    w.post_message(1, "https://app.example")
    w.post_message(2, "https://app.example")
    assert len(calls) == 1


def test_open_in_browser(monkeypatch):
    opened = []
    monkeypatch.setattr(window_module.webbrowser, "open", lambda url, new=0: opened.append(url) or True)
    popup = open_in_browser("https://oauth.example/authorize", "name", "width=600")
    assert isinstance(popup, BrowserPopup)
    assert opened == ["https://oauth.example/authorize"]
    popup.close()
    assert popup.closed


def test_open_in_browser_blocked(monkeypatch):
    monkeypatch.setattr(window_module.webbrowser, "open", lambda url, new=0: False)
    assert open_in_browser("https://oauth.example/authorize", "name", "") is None


def test_deliver_without_loop_dispatches_directly():
    w = HostWindow("https://app.example")
    seen = []
    w.add_message_listener(seen.append)
    w.deliver("x", "https://app.example")
    assert len(seen) == 1


def test_deliver_from_other_thread_runs_on_attached_loop():
    async def run():
        loop = asyncio.get_running_loop()
        w = HostWindow("https://app.example")
        w.attach_loop(loop)
        threads = []
        w.add_message_listener(lambda event: threads.append(threading.get_ident()))
        await loop.run_in_executor(None, w.deliver, "x", "https://app.example")
        await asyncio.sleep(0)
        return threads

    main_thread = threading.get_ident()
    assert asyncio.run(run()) == [main_thread]
