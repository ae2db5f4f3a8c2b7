"""
OAuth relay service. Holds the GitHub client secret so the browser never does.
GET /healthz, /authorize, /callback. Stateless: state travels in URLs, no sessions or cookies.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

from oauth_service.authorize import router as authorize_router
from oauth_service.callback import router as callback_router
from oauth_service.config import Settings
from oauth_service.exchange import TokenExchangeClient
from oauth_service.responses import json_response

logger = logging.getLogger(__name__)

HEALTH_PATH = "/healthz"


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """JSON errors in the relay's {error: ...} shape, never cached."""
    if exc.status_code == 404:
        return json_response(404, {"error": "not_found"})
    return json_response(exc.status_code, {"error": str(exc.detail)})


def create_app(settings: Settings | None = None, exchanger: TokenExchangeClient | None = None) -> FastAPI:
    """Build the relay app. Settings default to the environment, resolved once here."""
    settings = settings if settings is not None else Settings.from_env()
    exchanger = exchanger if exchanger is not None else TokenExchangeClient(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Report configuration problems at startup; requests still get a 500 per call."""
        missing = settings.missing()
        if missing:
            logger.error("OAuth relay misconfigured: %s", missing)
        else:
            logger.info("OAuth relay ready; provider %s", settings.github_base_url)
        yield

    app = FastAPI(title="OAuth Relay", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.exchanger = exchanger
    app.include_router(authorize_router, tags=["authorize"])
    app.include_router(callback_router, tags=["callback"])
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    @app.middleware("http")
    async def require_configuration(request: Request, call_next):
        """Every path except /healthz needs the required settings."""
        if request.url.path != HEALTH_PATH:
            missing = request.app.state.settings.missing()
            if missing:
                logger.error("Rejecting %s: %s", request.url.path, missing)
                return json_response(500, {"error": missing})
        return await call_next(request)

    @app.get(HEALTH_PATH)
    def healthz():
        """Liveness check; independent of OAuth configuration."""
        return json_response(200, {"status": "ok"})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings
    logging.basicConfig(level=settings.log_level.upper())
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )
