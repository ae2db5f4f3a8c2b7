"""
Static frontend callback page. The relay redirects the popup here with the outcome in the
URL fragment; the page posts {type, token, error, state} to its opener, restricted to its
own origin, then closes itself.
"""
import html
import json
from dataclasses import dataclass
from urllib.parse import parse_qs

from oauth_popup.controller import MESSAGE_TYPE
from oauth_popup.runtime_config import DEFAULT_ERROR_PARAM, DEFAULT_TOKEN_PARAM


@dataclass(frozen=True)
class CallbackMessage:
    token: str | None = None
    error: str | None = None
    state: str | None = None

    def to_message(self) -> dict:
        """Message as posted to the opener; absent values are omitted."""
        data = {"type": MESSAGE_TYPE}
        for key in ("token", "error", "state"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


def parse_callback_fragment(
    fragment: str,
    token_param: str = DEFAULT_TOKEN_PARAM,
    error_param: str = DEFAULT_ERROR_PARAM,
) -> CallbackMessage:
    """Read token/error/state from a URL fragment such as '#token=abc&state=123'."""
    params = parse_qs(fragment.lstrip("#"), keep_blank_values=True)

    def first(name: str) -> str | None:
        values = params.get(name)
        return values[0] if values else None

    return CallbackMessage(token=first(token_param), error=first(error_param), state=first("state"))


_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Signing in</title></head>
<body>
  <p id="status">Completing sign in&hellip;</p>
  <script>
    (function () {{
      var bridge = {bridge_path};
      var params = new URLSearchParams(window.location.hash.replace(/^#/, ""));
      var message = {{
        type: {message_type},
        token: params.get({token_param}),
        error: params.get({error_param}),
        state: params.get("state")
      }};
      // Drop the token from the address bar and history before anything else runs
      history.replaceState(null, "", window.location.pathname);
      if (window.opener) {{
        window.opener.postMessage(message, window.location.origin);
        window.close();
      }} else if (bridge) {{
        // Opened by the system browser: hand the message to the frontend host instead
        fetch(bridge, {{
          method: "POST",
          headers: {{"Content-Type": "application/json"}},
          body: JSON.stringify(message)
        }}).then(function () {{
          document.getElementById("status").textContent =
            "Sign in finished. You can close this window.";
        }});
      }} else {{
        document.getElementById("status").textContent =
          "Sign in finished. You can close this window.";
      }}
    }})();
  </script>
  <noscript>{noscript}</noscript>
</body>
</html>"""


def _js_string(value: str) -> str:
    """JSON string literal that cannot close the surrounding <script> element."""
    return json.dumps(value).replace("<", "\\u003c")


def render_callback_page(
    token_param: str = DEFAULT_TOKEN_PARAM,
    error_param: str = DEFAULT_ERROR_PARAM,
    bridge_path: str | None = None,
) -> str:
    """
    HTML for the callback page; parameter names are embedded as JS string literals.
    bridge_path: same-origin endpoint the page POSTs the message to when it has no opener.
    """
    return _PAGE.format(
        message_type=_js_string(MESSAGE_TYPE),
        token_param=_js_string(token_param),
        error_param=_js_string(error_param),
        bridge_path=_js_string(bridge_path) if bridge_path else "null",
        noscript=html.escape("JavaScript is required to finish signing in."),
    )
