"""
Page-level runtime configuration for login. The raw object uses the page's camelCase keys;
auth and auth.oauth are overlaid key by key onto the defaults below. Unknown keys are ignored.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any

AUTH_MODES = ("pat", "netlify", "oauth")

DEFAULT_HOSTNAME = "github.com"
DEFAULT_SCOPE = "user repo"
DEFAULT_TOKEN_PARAM = "token"
DEFAULT_ERROR_PARAM = "error"
DEFAULT_CALLBACK_PATH = "/oauth-callback.html"


@dataclass(frozen=True)
class OAuthConfig:
    authorize_url: str | None = None
    client_id: str | None = None
    scope: str | None = DEFAULT_SCOPE
    provider: str | None = None
    extra_params: dict[str, str] = field(default_factory=dict)
    token_param: str = DEFAULT_TOKEN_PARAM
    error_param: str = DEFAULT_ERROR_PARAM
    callback_path: str = DEFAULT_CALLBACK_PATH


@dataclass(frozen=True)
class AuthConfig:
    mode: str | None = None
    hostname: str = DEFAULT_HOSTNAME
    allow_pat_fallback: bool = True
    oauth: OAuthConfig = field(default_factory=OAuthConfig)


@dataclass(frozen=True)
class RuntimeConfig:
    auth: AuthConfig = field(default_factory=AuthConfig)


# camelCase page key -> dataclass field
_OAUTH_KEYS = {
    "authorizeUrl": "authorize_url",
    "clientId": "client_id",
    "scope": "scope",
    "provider": "provider",
    "extraParams": "extra_params",
    "tokenParam": "token_param",
    "errorParam": "error_param",
    "callbackPath": "callback_path",
}
_AUTH_KEYS = {
    "mode": "mode",
    "hostname": "hostname",
    "allowPatFallback": "allow_pat_fallback",
}


def _overlay(default, raw: Mapping, keys: dict[str, str]):
    """Copy of default with every known key present in raw replaced; null values keep the default."""
    names = {f.name for f in fields(default)}
    changes = {keys[k]: v for k, v in raw.items() if v is not None and k in keys and keys[k] in names}
    return replace(default, **changes)


def _oauth_config(raw: Any) -> OAuthConfig:
    if not isinstance(raw, Mapping):
        return OAuthConfig()
    config = _overlay(OAuthConfig(), raw, _OAUTH_KEYS)
    extra = config.extra_params if isinstance(config.extra_params, Mapping) else {}
    return replace(config, extra_params={str(k): str(v) for k, v in extra.items() if v is not None})


def load_runtime_config(raw: Any = None) -> RuntimeConfig:
    """Resolve the page's config object (e.g. parsed window.REVIEWSTACK_CONFIG) against defaults."""
    if not isinstance(raw, Mapping):
        return RuntimeConfig()
    raw_auth = raw.get("auth")
    if not isinstance(raw_auth, Mapping):
        raw_auth = {}
    auth = _overlay(AuthConfig(), raw_auth, _AUTH_KEYS)
    if auth.mode not in AUTH_MODES:
        auth = replace(auth, mode=None)
    return RuntimeConfig(auth=replace(auth, oauth=_oauth_config(raw_auth.get("oauth"))))
