"""
GET /callback: provider redirects here with ?code=&state= or ?error=&state=.
Always ends in a redirect to the frontend callback page (the popup only understands a page
load), with the outcome in the URL fragment.
"""
import logging

from fastapi import APIRouter, Depends

from oauth_service.config import ANY_METHOD, Settings
from oauth_service.dependencies import get_exchanger, get_settings
from oauth_service.exchange import ExchangeError, TokenExchangeClient
from oauth_service.responses import fragment_redirect

logger = logging.getLogger(__name__)
router = APIRouter()

MISSING_CODE = "missing_code"


def redirect_to_frontend(settings: Settings, params: dict[str, str]):
    return fragment_redirect(settings.frontend_callback_url, params)


@router.api_route("/callback", methods=ANY_METHOD)
async def callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    settings: Settings = Depends(get_settings),
    exchanger: TokenExchangeClient = Depends(get_exchanger),
):
    """Exchange the code for a token; report token or error (plus state) to the frontend."""
    state = state or ""
    if error:
        logger.info("Provider returned error on callback: %s", error)
        return redirect_to_frontend(settings, {"error": error, "state": state})

    if not code:
        logger.info("Callback without code")
        return redirect_to_frontend(settings, {"error": MISSING_CODE, "state": state})

    try:
        token = await exchanger.exchange(code, settings.callback_url)
    except ExchangeError as e:
        logger.warning("Token exchange failed: %s", e)
        return redirect_to_frontend(settings, {"error": str(e), "state": state})

    logger.info("Token exchange succeeded")
    return redirect_to_frontend(settings, {"token": token, "state": state})
