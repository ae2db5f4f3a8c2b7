"""
Login host: picks the login method for the page and drives the OAuth button and the
personal access token (PAT) fallback form. Rendering is left to the page.
"""
import enum
import logging
from typing import Callable

from oauth_popup.controller import PopupFlowController
from oauth_popup.errors import OAuthFlowError
from oauth_popup.runtime_config import DEFAULT_HOSTNAME, RuntimeConfig

logger = logging.getLogger(__name__)

# Hosted deployments that default to Netlify login when no mode is configured
NETLIFY_HOSTNAMES = {"reviewstack.netlify.app", "reviewstack.dev"}

SetTokenAndHostname = Callable[[str, str], None]


class LoginMethod(enum.Enum):
    DEFAULT = "default"
    NETLIFY = "netlify"
    OAUTH = "oauth"


def select_login_method(config: RuntimeConfig, page_hostname: str) -> LoginMethod:
    """Configured mode wins; otherwise hosted domains use Netlify and everything else PAT."""
    mode = config.auth.mode
    if mode == "oauth":
        return LoginMethod.OAUTH
    if mode == "netlify":
        return LoginMethod.NETLIFY
    if mode == "pat":
        return LoginMethod.DEFAULT
    if page_hostname in NETLIFY_HOSTNAMES:
        return LoginMethod.NETLIFY
    return LoginMethod.DEFAULT


def is_pat_input_valid(token: str, hostname: str) -> bool:
    """Token must be non-blank; hostname non-blank and contain a dot."""
    if token.strip() == "":
        return False
    hostname = hostname.strip()
    return hostname != "" and "." in hostname


class OAuthLogin:
    """State behind the OAuth login dialog: button enabled flag and inline error message."""

    def __init__(
        self,
        config: RuntimeConfig,
        controller: PopupFlowController,
        set_token_and_hostname: SetTokenAndHostname,
    ):
        self.config = config
        self.controller = controller
        self.set_token_and_hostname = set_token_and_hostname
        self.hostname = config.auth.hostname or DEFAULT_HOSTNAME
        self.button_disabled = False
        self.error_message: str | None = None

    @property
    def allow_pat_fallback(self) -> bool:
        return self.config.auth.allow_pat_fallback is not False

    async def authorize(self) -> None:
        """Run the popup flow; on success hand the token and hostname to the app."""
        self.button_disabled = True
        self.error_message = None
        try:
            token = await self.controller.fetch_token(self.config.auth.oauth)
        except OAuthFlowError as e:
            logger.info("OAuth login failed: %s", e)
            self.error_message = str(e)
        else:
            self.set_token_and_hostname(token, self.hostname)
        finally:
            self.button_disabled = False

    def submit_pat(self, token: str, hostname: str) -> bool:
        """Use a PAT instead of OAuth. Returns False (and does nothing) for invalid input."""
        if not self.allow_pat_fallback or not is_pat_input_valid(token, hostname):
            return False
        self.set_token_and_hostname(token.strip(), hostname.strip())
        return True
