"""
GET /authorize: send the popup to the provider's consent screen.
redirect_uri is always this service's own /callback, never taken from the request
(no open redirect, no Host header influence).
"""
import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from fastapi import APIRouter, Depends

from oauth_service.config import ANY_METHOD, Settings
from oauth_service.dependencies import get_settings
from oauth_service.responses import redirect
from oauth_service.state import generate_state

logger = logging.getLogger(__name__)
router = APIRouter()


def build_authorize_url(settings: Settings, state: str) -> str:
    """Provider authorize URL with client_id, redirect_uri, scope, state set (existing query kept)."""
    parts = urlsplit(settings.authorize_url)
    params = dict(parse_qsl(parts.query, keep_blank_values=True))
    params.update(
        {
            "client_id": settings.client_id,
            "redirect_uri": settings.callback_url,
            "scope": settings.github_scope,
            "state": state,
        }
    )
    return urlunsplit(parts._replace(query=urlencode(params)))


@router.api_route("/authorize", methods=ANY_METHOD)
def authorize(state: str | None = None, settings: Settings = Depends(get_settings)):
    """Redirect to the provider. Generates a state when the caller did not propose one."""
    if not state:
        state = generate_state()
        logger.debug("No state proposed; generated one")
    return redirect(build_authorize_url(settings, state))
