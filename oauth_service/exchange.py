"""
Authorization code exchange against the provider's token endpoint.
One POST per callback, no retries. Never logs the code, secret, or token.
"""
import logging

import httpx

from oauth_service.config import Settings

logger = logging.getLogger(__name__)

GENERIC_EXCHANGE_ERROR = "oauth token exchange failed"
TOKEN_MISSING_ERROR = "access_token missing in OAuth response"


class ExchangeError(Exception):
    """Token exchange failed; the message is safe to show to the end user."""


class TokenMissingError(ExchangeError):
    """Provider answered with success but without a usable access_token."""


def _json_body(r: httpx.Response) -> dict:
    try:
        data = r.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class TokenExchangeClient:
    """
    Trades an authorization code for an access token.
    transport is for tests (httpx.MockTransport); production uses httpx's default.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    async def exchange(self, code: str, redirect_uri: str) -> str:
        """POST the code to the token endpoint; return the access token or raise ExchangeError."""
        settings = self.settings
        try:
            async with httpx.AsyncClient(timeout=settings.exchange_timeout, transport=self._transport) as client:
                r = await client.post(
                    settings.token_url,
                    data={
                        "client_id": settings.client_id,
                        "client_secret": settings.client_secret,
                        "code": code,
                        "redirect_uri": redirect_uri,
                    },
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.warning("Token endpoint request failed: %s", type(e).__name__)
            raise ExchangeError(GENERIC_EXCHANGE_ERROR) from e

        payload = _json_body(r)
        if not r.is_success:
            message = payload.get("error_description") or payload.get("error") or GENERIC_EXCHANGE_ERROR
            logger.info("Token endpoint returned %s: %s", r.status_code, payload.get("error"))
            raise ExchangeError(str(message))

        token = payload.get("access_token")
        if not isinstance(token, str) or not token:
            # GitHub reports bad codes as 200 + {"error": ...}; only the error name is logged
            logger.info("Token endpoint response had no access_token (error=%s)", payload.get("error"))
            raise TokenMissingError(TOKEN_MISSING_ERROR)
        return token
