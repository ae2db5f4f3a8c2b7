"""
Popup login flow: open the authorize URL in a popup, wait for the callback page to post
the outcome back to this window, resolve with the token.

One attempt at a time per controller. An attempt owns its message listener, its timer and
its popup; whichever of {valid message, timeout, popup closed, caller cancel} comes first
settles it and runs cleanup, later events are no-ops.
"""
import asyncio
import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from oauth_popup.errors import (
    FlowInProgressError,
    OAuthFlowError,
    OAuthProviderError,
    OAuthTimeoutError,
    PopupBlockedError,
    PopupClosedError,
)
from oauth_popup.runtime_config import OAuthConfig
from oauth_popup.window import HostWindow, MessageEvent, Popup
from oauth_service.state import generate_state

logger = logging.getLogger(__name__)

# Type marker the callback page puts on its message
MESSAGE_TYPE = "reviewstack.oauth"

OAUTH_TIMEOUT_SECONDS = 5 * 60
POPUP_NAME = "reviewstack-oauth"
POPUP_FEATURES = "width=600,height=700"

NOT_CONFIGURED = "OAuth authorizeUrl is not configured"
INVALID_AUTHORIZE_URL = "OAuth authorizeUrl is invalid"
POPUP_BLOCKED = "OAuth popup blocked"
POPUP_FAILED = "OAuth popup could not be opened"
POPUP_CLOSED = "OAuth popup was closed"
TIMED_OUT = "OAuth timed out"
TOKEN_MISSING = "token missing in OAuth response"
IN_PROGRESS = "OAuth login already in progress"


class AttemptPhase(enum.Enum):
    IDLE = "idle"
    OPENING = "opening"
    AWAITING_MESSAGE = "awaiting_message"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class Attempt:
    state: str
    future: asyncio.Future
    phase: AttemptPhase = AttemptPhase.IDLE
    popup: Popup | None = None
    listener: Callable[[MessageEvent], None] | None = None
    timer: asyncio.TimerHandle | None = None
    closed_poll: asyncio.TimerHandle | None = None
    cleaned_up: bool = False

    @property
    def settled(self) -> bool:
        return self.phase in (AttemptPhase.SUCCEEDED, AttemptPhase.FAILED)


def build_authorize_url(config: OAuthConfig, origin: str, state: str) -> str:
    """
    Authorize URL for the popup. redirect_uri (callback path on this origin) and state are
    applied last so neither extra_params nor a query already on authorize_url can set them.
    """
    parts = urlsplit(config.authorize_url)
    params = dict(parse_qsl(parts.query, keep_blank_values=True))
    if config.client_id:
        params["client_id"] = config.client_id
    if config.scope:
        params["scope"] = config.scope
    if config.provider:
        params["provider"] = config.provider
    params.update(config.extra_params)
    params["redirect_uri"] = urljoin(origin + "/", config.callback_path)
    params["state"] = state
    return urlunsplit(parts._replace(query=urlencode(params)))


class PopupFlowController:
    """
    Runs popup OAuth attempts against one HostWindow.

    timeout: seconds to wait for a valid message.
    closed_poll_interval: when set, poll popup.closed at this interval and fail the attempt
        promptly if the user closed the popup. None keeps waiting until the timeout.
    """

    def __init__(
        self,
        window: HostWindow,
        *,
        timeout: float = OAUTH_TIMEOUT_SECONDS,
        closed_poll_interval: float | None = None,
        state_factory: Callable[[], str] = generate_state,
    ):
        self.window = window
        self.timeout = timeout
        self.closed_poll_interval = closed_poll_interval
        self._state_factory = state_factory
        self._attempt: Attempt | None = None

    @property
    def current_attempt(self) -> Attempt | None:
        return self._attempt

    def start(self, config: OAuthConfig) -> asyncio.Future:
        """
        Open the popup and return a future for the token. Must run inside the event loop.
        The listener and timer are registered before the future is returned.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        if self._attempt is not None and not self._attempt.settled:
            future.set_exception(FlowInProgressError(IN_PROGRESS))
            return future
        if not config.authorize_url:
            future.set_exception(OAuthFlowError(NOT_CONFIGURED))
            return future

        state = self._state_factory()
        try:
            url = build_authorize_url(config, self.window.origin, state)
        except ValueError as e:
            logger.warning("Invalid OAuth authorizeUrl: %s", e)
            future.set_exception(OAuthFlowError(INVALID_AUTHORIZE_URL))
            return future

        attempt = Attempt(state=state, future=future)
        self._attempt = attempt
        self.window.attach_loop(loop)

        attempt.phase = AttemptPhase.OPENING
        try:
            popup = self.window.open(url, POPUP_NAME, POPUP_FEATURES)
        except Exception as e:
            logger.warning("Opening OAuth popup failed: %s", e)
            attempt.phase = AttemptPhase.FAILED
            attempt.cleaned_up = True
            future.set_exception(OAuthFlowError(POPUP_FAILED))
            return future
        if popup is None:
            logger.info("OAuth popup was blocked")
            attempt.phase = AttemptPhase.FAILED
            attempt.cleaned_up = True
            future.set_exception(PopupBlockedError(POPUP_BLOCKED))
            return future
        attempt.popup = popup

        def handle_message(event: MessageEvent) -> None:
            self._on_message(attempt, event)

        attempt.listener = handle_message
        self.window.add_message_listener(handle_message)
        attempt.timer = loop.call_later(self.timeout, self._on_timeout, attempt)
        if self.closed_poll_interval is not None:
            attempt.closed_poll = loop.call_later(self.closed_poll_interval, self._poll_closed, attempt)
        # Caller cancellation also releases the listener, timer and popup
        future.add_done_callback(lambda _f: self._cleanup(attempt))
        attempt.phase = AttemptPhase.AWAITING_MESSAGE
        logger.debug("OAuth popup opened; waiting up to %ss", self.timeout)
        return future

    async def fetch_token(self, config: OAuthConfig) -> str:
        """Run one attempt to completion; raises OAuthFlowError on failure."""
        return await self.start(config)

    def _accepts(self, attempt: Attempt, event: MessageEvent) -> bool:
        if event.origin != self.window.origin:
            logger.debug("Ignoring message from foreign origin %s", event.origin)
            return False
        data = event.data
        if not isinstance(data, Mapping) or data.get("type") != MESSAGE_TYPE:
            return False
        state = data.get("state")
        if state and state != attempt.state:
            logger.debug("Ignoring OAuth message with mismatched state")
            return False
        return True

    def _on_message(self, attempt: Attempt, event: MessageEvent) -> None:
        if attempt.settled or not self._accepts(attempt, event):
            return
        data = event.data
        error = data.get("error")
        token = data.get("token")
        if error:
            self._fail(attempt, OAuthProviderError(str(error)))
        elif isinstance(token, str) and token:
            self._succeed(attempt, token)
        else:
            self._fail(attempt, OAuthFlowError(TOKEN_MISSING))

    def _on_timeout(self, attempt: Attempt) -> None:
        if attempt.settled:
            return
        logger.info("OAuth attempt timed out after %ss", self.timeout)
        self._fail(attempt, OAuthTimeoutError(TIMED_OUT))

    def _poll_closed(self, attempt: Attempt) -> None:
        if attempt.settled or attempt.popup is None:
            return
        if getattr(attempt.popup, "closed", False):
            logger.info("OAuth popup closed before completing")
            self._fail(attempt, PopupClosedError(POPUP_CLOSED))
            return
        loop = asyncio.get_running_loop()
        attempt.closed_poll = loop.call_later(self.closed_poll_interval, self._poll_closed, attempt)

    def _succeed(self, attempt: Attempt, token: str) -> None:
        attempt.phase = AttemptPhase.SUCCEEDED
        self._cleanup(attempt)
        if not attempt.future.done():
            attempt.future.set_result(token)

    def _fail(self, attempt: Attempt, error: OAuthFlowError) -> None:
        attempt.phase = AttemptPhase.FAILED
        self._cleanup(attempt)
        if not attempt.future.done():
            attempt.future.set_exception(error)

    def _cleanup(self, attempt: Attempt) -> None:
        """Remove listener, cancel timers, close popup. Runs once per attempt."""
        if attempt.cleaned_up:
            return
        attempt.cleaned_up = True
        if not attempt.settled:
            # Cancelled by the caller
            attempt.phase = AttemptPhase.FAILED
        if attempt.listener is not None:
            self.window.remove_message_listener(attempt.listener)
        if attempt.timer is not None:
            attempt.timer.cancel()
        if attempt.closed_poll is not None:
            attempt.closed_poll.cancel()
        if attempt.popup is not None:
            try:
                attempt.popup.close()
            except Exception as e:
                logger.debug("Ignoring popup close failure: %s", e)
