"""
Frontend host for the popup flow. Serves the static OAuth callback page at the configured
callback path. GET /health, GET <callbackPath>, and POST /oauth-message when a HostWindow
is attached (callback pages opened by the system browser report their result there).
"""
import logging
from urllib.parse import urlsplit

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from oauth_popup.callback_page import render_callback_page
from oauth_popup.config import PORT, runtime_config_from_env
from oauth_popup.runtime_config import RuntimeConfig
from oauth_popup.window import HostWindow

logger = logging.getLogger(__name__)

BRIDGE_PATH = "/oauth-message"
NO_STORE = {"Cache-Control": "no-store"}


def create_app(config: RuntimeConfig | None = None, window: HostWindow | None = None) -> FastAPI:
    config = config if config is not None else runtime_config_from_env()
    oauth = config.auth.oauth
    page = render_callback_page(
        token_param=oauth.token_param,
        error_param=oauth.error_param,
        bridge_path=BRIDGE_PATH if window is not None else None,
    )

    app = FastAPI(title="OAuth Frontend", version="0.1.0")
    app.state.runtime_config = config

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {"status": "ok", "service": "oauth_frontend"}

    # callbackPath may be a full URL; only its path is served here
    callback_path = "/" + urlsplit(oauth.callback_path).path.lstrip("/")

    @app.get(callback_path, response_class=HTMLResponse)
    def oauth_callback():
        """Popup lands here with the result in the fragment; the page script posts it to the opener."""
        return HTMLResponse(page, headers=NO_STORE)

    if window is not None:

        @app.post(BRIDGE_PATH)
        async def oauth_message(request: Request):
            """
            Relay a callback page's message into the HostWindow with the request's Origin.
            The controller still checks origin, type and state; this endpoint trusts nothing.
            """
            try:
                data = await request.json()
            except ValueError:
                return JSONResponse({"error": "invalid_json"}, status_code=400, headers=NO_STORE)
            origin = request.headers.get("origin", "")
            window.deliver(data, origin)
            logger.debug("Relayed OAuth callback message from %s", origin or "(no origin)")
            return Response(status_code=204, headers=NO_STORE)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "oauth_popup.main:app",
        host="127.0.0.1",
        port=PORT,
        reload=True,
    )
