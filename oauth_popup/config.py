"""
Frontend host configuration. The page's runtime config arrives as JSON in REVIEWSTACK_CONFIG
(same shape as window.REVIEWSTACK_CONFIG).
"""
import json
import logging
import os

from oauth_popup.runtime_config import RuntimeConfig, load_runtime_config

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080


def port_from_env(environ=None) -> int:
    """Frontend host port (the relay defaults to 8081); bad values fall back with a warning."""
    env = os.environ if environ is None else environ
    raw = env.get("PORT", "").strip()
    if not raw:
        return DEFAULT_PORT
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid PORT %r; using %s", raw, DEFAULT_PORT)
        return DEFAULT_PORT


PORT = port_from_env()


def runtime_config_from_env(environ=None) -> RuntimeConfig:
    """Parse REVIEWSTACK_CONFIG; invalid JSON falls back to defaults with a warning."""
    env = os.environ if environ is None else environ
    raw = env.get("REVIEWSTACK_CONFIG", "").strip()
    if not raw:
        return load_runtime_config(None)
    try:
        return load_runtime_config(json.loads(raw))
    except json.JSONDecodeError as e:
        logger.warning("Ignoring invalid REVIEWSTACK_CONFIG: %s", e)
        return load_runtime_config(None)
