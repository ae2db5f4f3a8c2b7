"""
Host window model for the popup flow: opens popups and dispatches postMessage-style events.
A message is delivered to every registered listener together with the sender's origin;
listeners decide what to trust.

Popups opened in the system browser have no opener window to post to. Their callback page
sends the message to the frontend host's bridge endpoint instead, which hands it to
HostWindow.deliver (see oauth_popup/main.py).
"""
import asyncio
import logging
import webbrowser
from dataclasses import dataclass
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class Popup(Protocol):
    """Handle to an opened popup window."""

    closed: bool

    def close(self) -> None: ...


@dataclass(frozen=True)
class MessageEvent:
    origin: str
    data: Any


MessageListener = Callable[[MessageEvent], None]
PopupOpener = Callable[[str, str, str], "Popup | None"]


class BrowserPopup:
    """Popup backed by the system browser. close() only marks it closed; the tab is the user's."""

    def __init__(self, url: str):
        self.url = url
        self.closed = False

    def close(self) -> None:
        self.closed = True


def open_in_browser(url: str, name: str, features: str) -> BrowserPopup | None:
    """Default opener: new browser window; None when no browser could be launched (blocked)."""
    if not webbrowser.open(url, new=1):
        return None
    return BrowserPopup(url)


class HostWindow:
    """
    The page hosting the login flow. origin is the page's own origin (scheme://host[:port]).
    post_message runs listeners on the calling thread; deliver is safe from any thread once
    a loop is attached (the controller attaches its loop on start).
    """

    def __init__(self, origin: str, opener: PopupOpener | None = None):
        self.origin = origin.rstrip("/")
        self._opener = opener or open_in_browser
        self._listeners: list[MessageListener] = []
        self._loop: asyncio.AbstractEventLoop | None = None

    def open(self, url: str, name: str, features: str) -> Popup | None:
        return self._opener(url, name, features)

    def attach_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def add_message_listener(self, listener: MessageListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_message_listener(self, listener: MessageListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def post_message(self, data: Any, origin: str) -> None:
        """Deliver a message sent from origin to all listeners registered right now."""
        event = MessageEvent(origin=origin, data=data)
        for listener in list(self._listeners):
            listener(event)

    def deliver(self, data: Any, origin: str) -> None:
        """post_message from any thread: hops onto the attached loop when called off it."""
        loop = self._loop
        if loop is None or loop.is_closed():
            self.post_message(data, origin)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self.post_message(data, origin)
        else:
            loop.call_soon_threadsafe(self.post_message, data, origin)
