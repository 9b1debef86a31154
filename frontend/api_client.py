"""
frontend/api_client.py
Centralized HTTP client for the dashboard's remote adapters.

This module ensures:
1. Every remote call goes through one function with consistent headers
2. Transport failures never raise to the caller (None is returned instead)
3. Tokens and keys are never logged
"""

import logging
from typing import Any, Dict, Literal, Optional

import requests

try:
    from frontend.config import REQUEST_TIMEOUT
except ModuleNotFoundError:
    from config import REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

__all__ = ["api_request", "response_message"]


def api_request(
    method: Literal["GET", "POST", "PUT", "DELETE"],
    url: str,
    token: Optional[str] = None,
    api_key: Optional[str] = None,
    json: Optional[Any] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: int = REQUEST_TIMEOUT,
) -> Optional[requests.Response]:
    """
    Make an HTTP request to the API or the identity service.

    Headers:
    - Authorization: Bearer <token> when a token is given
    - apikey: <api_key> when a key is given (identity service requirement)
    - Content-Type: application/json when a body is sent

    Returns:
        Response object for any HTTP status, None on connection error/timeout

    Raises:
        Does NOT raise - transport errors are logged and turned into None
    """
    headers = {"Accept": "application/json"}
    if json is not None:
        headers["Content-Type"] = "application/json"
    if token:
        headers["Authorization"] = f"Bearer {token}"
    if api_key:
        headers["apikey"] = api_key

    try:
        resp = requests.request(method, url, headers=headers, json=json, params=params, timeout=timeout)
    except requests.exceptions.Timeout:
        logger.warning("[API] Timeout on %s %s", method, url)
        return None
    except requests.exceptions.RequestException as e:
        # Only the exception type: messages can echo headers
        logger.warning("[API] %s on %s %s", type(e).__name__, method, url)
        return None

    logger.debug("[API] %s %s -> %s", method, url, resp.status_code)
    return resp


def response_message(resp: requests.Response, default: str) -> str:
    """
    Best human-readable error text from a failed response.

    Understands the API's {"error": ...} bodies and GoTrue's
    {"msg"/"error_description": ...} bodies; falls back to the raw text.
    """
    try:
        data = resp.json()
    except ValueError:
        return (resp.text or "").strip() or default
    if isinstance(data, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = data.get(key)
            if value and isinstance(value, str):
                return value
    return (resp.text or "").strip() or default
