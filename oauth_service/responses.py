"""
Response helpers. Nothing the relay returns may be cached.
"""
from urllib.parse import urldefrag, urlencode

from fastapi.responses import JSONResponse, RedirectResponse

NO_STORE = {"Cache-Control": "no-store"}


def json_response(status_code: int, payload: dict) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=NO_STORE)


def redirect(location: str) -> RedirectResponse:
    return RedirectResponse(url=location, status_code=302, headers=NO_STORE)


def fragment_redirect(target: str, params: dict[str, str]) -> RedirectResponse:
    """
    302 to target with params url-encoded into the fragment (after #), never the query.
    Any fragment already on target is replaced.
    """
    base, _ = urldefrag(target)
    return redirect(f"{base}#{urlencode(params)}")
