"""
OAuth relay service configuration. Read once from the environment at startup.
The client secret only ever comes from the environment.
"""
import logging
import os
from dataclasses import dataclass
from urllib.parse import urljoin

logger = logging.getLogger(__name__)

# Port the relay listens on
DEFAULT_PORT = 8081
DEFAULT_HOST = "0.0.0.0"

# Static page on the frontend that receives the result fragment and posts it to the opener
DEFAULT_FRONTEND_CALLBACK_PATH = "/oauth-callback.html"

# Upstream provider (GitHub or GitHub Enterprise)
DEFAULT_GITHUB_BASE_URL = "https://github.com"
DEFAULT_GITHUB_AUTHORIZE_PATH = "/login/oauth/authorize"
DEFAULT_GITHUB_TOKEN_PATH = "/login/oauth/access_token"
DEFAULT_GITHUB_SCOPE = "user repo"

# Seconds to wait on the token endpoint before giving up (no retries)
DEFAULT_EXCHANGE_TIMEOUT = 10.0

DEFAULT_LOG_LEVEL = "info"

# Path of this service's own callback endpoint; redirect_uri is always built from it
CALLBACK_PATH = "/callback"

# /authorize and /callback answer any method; the popup only ever issues GET
ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _number(env, name: str, default, cast):
    """Parse a numeric setting; unparsable values fall back to default with a warning."""
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s %r; using %s", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    frontend_origin: str | None = None
    service_origin: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    frontend_callback_path: str = DEFAULT_FRONTEND_CALLBACK_PATH
    github_base_url: str = DEFAULT_GITHUB_BASE_URL
    github_authorize_path: str = DEFAULT_GITHUB_AUTHORIZE_PATH
    github_token_path: str = DEFAULT_GITHUB_TOKEN_PATH
    github_scope: str = DEFAULT_GITHUB_SCOPE
    exchange_timeout: float = DEFAULT_EXCHANGE_TIMEOUT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        """Build settings from environment variables; empty values count as unset."""
        env = os.environ if environ is None else environ

        def get(name: str, default: str | None = None) -> str | None:
            value = env.get(name, "").strip()
            return value or default

        return cls(
            frontend_origin=get("FRONTEND_ORIGIN"),
            service_origin=get("OAUTH_SERVICE_ORIGIN"),
            client_id=get("GITHUB_CLIENT_ID"),
            client_secret=get("GITHUB_CLIENT_SECRET"),
            frontend_callback_path=get("FRONTEND_CALLBACK_PATH", DEFAULT_FRONTEND_CALLBACK_PATH),
            github_base_url=get("GITHUB_BASE_URL", DEFAULT_GITHUB_BASE_URL),
            github_authorize_path=get("GITHUB_AUTHORIZE_PATH", DEFAULT_GITHUB_AUTHORIZE_PATH),
            github_token_path=get("GITHUB_TOKEN_PATH", DEFAULT_GITHUB_TOKEN_PATH),
            github_scope=get("GITHUB_SCOPE", DEFAULT_GITHUB_SCOPE),
            exchange_timeout=_number(env, "OAUTH_EXCHANGE_TIMEOUT", DEFAULT_EXCHANGE_TIMEOUT, float),
            host=get("HOST", DEFAULT_HOST),
            port=_number(env, "PORT", DEFAULT_PORT, int),
            log_level=get("LOG_LEVEL", DEFAULT_LOG_LEVEL).lower(),
        )

    def missing(self) -> str | None:
        """Message for the first required setting that is unset, or None when ready."""
        if not self.frontend_origin:
            return "FRONTEND_ORIGIN is required"
        if not self.service_origin:
            return "OAUTH_SERVICE_ORIGIN is required"
        if not self.client_id:
            return "GITHUB_CLIENT_ID is required"
        if not self.client_secret:
            return "GITHUB_CLIENT_SECRET is required"
        return None

    @property
    def callback_url(self) -> str:
        """This service's /callback URL, sent to the provider as redirect_uri."""
        return urljoin(self.service_origin, CALLBACK_PATH)

    @property
    def authorize_url(self) -> str:
        return urljoin(self.github_base_url, self.github_authorize_path)

    @property
    def token_url(self) -> str:
        return urljoin(self.github_base_url, self.github_token_path)

    @property
    def frontend_callback_url(self) -> str:
        return urljoin(self.frontend_origin, self.frontend_callback_path)
