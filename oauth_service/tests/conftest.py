"""
Pytest fixtures for the relay. Settings are built explicitly so tests never depend on the
environment; the provider's token endpoint is faked with httpx.MockTransport.
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from oauth_service.config import Settings
from oauth_service.exchange import TokenExchangeClient
from oauth_service.main import create_app


@pytest.fixture
def settings():
    return Settings(
        frontend_origin="https://app.example",
        service_origin="https://oauth.example",
        client_id="client-123",
        client_secret="secret-456",
        github_base_url="https://github.example",
    )


@pytest.fixture
def token_requests():
    """Requests seen by the fake token endpoint."""
    return []


@pytest.fixture
def make_client(settings, token_requests):
    """make_client(handler) -> TestClient whose exchanges go to handler(request) -> httpx.Response."""

    def _make(handler=None, app_settings=None):
        app_settings = app_settings or settings

        def record(request: httpx.Request) -> httpx.Response:
            token_requests.append(request)
            if handler is None:
                return httpx.Response(500, json={"error": "unexpected_call"})
            return handler(request)

        exchanger = TokenExchangeClient(app_settings, transport=httpx.MockTransport(record))
        return TestClient(create_app(app_settings, exchanger))

    return _make
