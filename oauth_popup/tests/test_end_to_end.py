"""
Full popup login: controller opens the relay's /authorize, the provider redirects to the
relay's /callback, the relay redirects to the frontend callback page, and the page's
message reaches the controller through the frontend host's /oauth-message endpoint.
"""
import asyncio
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from fastapi.testclient import TestClient

from oauth_popup.callback_page import parse_callback_fragment
from oauth_popup.controller import PopupFlowController
from oauth_popup.errors import OAuthProviderError, OAuthTimeoutError
from oauth_popup.main import BRIDGE_PATH, create_app as create_frontend_app
from oauth_popup.runtime_config import load_runtime_config
from oauth_popup.window import HostWindow
from oauth_service.config import Settings
from oauth_service.exchange import TokenExchangeClient
from oauth_service.main import create_app as create_relay_app

ORIGIN = "https://app.example"

RELAY_SETTINGS = Settings(
    frontend_origin=ORIGIN,
    service_origin="https://oauth.example",
    client_id="client-123",
    client_secret="secret-456",
    github_base_url="https://github.example",
)

FRONTEND_RAW = {"auth": {"mode": "oauth", "oauth": {"authorizeUrl": "https://oauth.example/authorize"}}}


class BrowserTab:
    """Popup handle the fake opener returns; remembers the URL it was opened on."""

    def __init__(self, url):
        self.url = url
        self.closed = False

    def close(self):
        self.closed = True


def relay_client(token_response):
    def handler(request):
        return token_response

    exchanger = TokenExchangeClient(RELAY_SETTINGS, transport=httpx.MockTransport(handler))
    return TestClient(create_relay_app(RELAY_SETTINGS, exchanger), base_url="https://oauth.example")


def browse_to_frontend(relay, popup_url, provider_params):
    """Follow the redirects a browser would, returning the fragment of the frontend page URL."""
    assert popup_url.startswith("https://oauth.example/authorize?")
    authorize = relay.get("/authorize?" + urlsplit(popup_url).query, follow_redirects=False)
    assert authorize.status_code == 302
    state = parse_qs(urlsplit(authorize.headers["location"]).query)["state"][0]

    callback = relay.get("/callback", params={**provider_params, "state": state}, follow_redirects=False)
    assert callback.status_code == 302
    location = urlsplit(callback.headers["location"])
    assert f"{location.scheme}://{location.netloc}" == ORIGIN
    return location.path, location.fragment


def run_login(token_response, provider_params, post_origin=ORIGIN, timeout=5):
    tabs = []

    def opener(url, name, features):
        tabs.append(BrowserTab(url))
        return tabs[-1]

    window = HostWindow(ORIGIN, opener=opener)
    config = load_runtime_config(FRONTEND_RAW)
    controller = PopupFlowController(window, timeout=timeout)
    frontend = TestClient(create_frontend_app(config, window=window), base_url=ORIGIN)
    relay = relay_client(token_response)

    async def run():
        future = controller.start(config.auth.oauth)
        path, fragment = browse_to_frontend(relay, tabs[0].url, provider_params)
        page = frontend.get(path)
        assert page.status_code == 200
        assert BRIDGE_PATH in page.text

        message = parse_callback_fragment(fragment).to_message()
        loop = asyncio.get_running_loop()
        # The bridge request arrives on another thread, as it would from a real HTTP server
        response = await loop.run_in_executor(
            None, lambda: frontend.post(BRIDGE_PATH, json=message, headers={"Origin": post_origin})
        )
        assert response.status_code == 204
        return await asyncio.wait_for(future, timeout + 1)

    try:
        return asyncio.run(run()), tabs
    finally:
        frontend.close()
        relay.close()


def test_login_completes_through_relay_and_bridge():
    token, tabs = run_login(httpx.Response(200, json={"access_token": "gho_e2e"}), {"code": "c0de"})
    assert token == "gho_e2e"
    assert tabs[0].closed is True


def test_provider_denial_reaches_controller():
    with pytest.raises(OAuthProviderError, match="access_denied"):
        run_login(httpx.Response(500), {"error": "access_denied"})


def test_bridge_message_from_foreign_origin_does_not_settle():
    with pytest.raises(OAuthTimeoutError):
        run_login(
            httpx.Response(200, json={"access_token": "gho_e2e"}),
            {"code": "c0de"},
            post_origin="https://evil.example",
            timeout=0.2,
        )
