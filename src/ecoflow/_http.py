"""Signed HTTP request execution for the EcoFlow open API."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable

import aiohttp
import yarl

from ecoflow._constants import DEFAULT_TIMEOUT, JSON_CONTENT_TYPE, SUCCESS_CODE
from ecoflow._signing import SignParameters, sign_parameters
from ecoflow.errors import (
    ApplicationError,
    DecodeError,
    HttpStatusError,
    TransportError,
    UnsupportedMethod,
)

_LOGGER = logging.getLogger(__name__)

_SUPPORTED_METHODS = ("GET", "POST", "PUT")

Signer = Callable[[dict[str, object] | None, str, str], SignParameters]


async def execute(
    session: aiohttp.ClientSession,
    method: str,
    uri: str,
    params: dict[str, object] | None,
    access_key: str,
    secret_key: str,
    *,
    timeout: aiohttp.ClientTimeout | None = None,
    signer: Signer = sign_parameters,
) -> bytes:
    """Send a signed request and return the raw response body.

    For GET the canonical query string is appended to *uri* as-is; for
    POST and PUT *params* travel as a JSON body but are still covered by
    the signature.

    Raises:
        UnsupportedMethod: If *method* is not GET, POST or PUT (no I/O).
        HttpStatusError: If the server answers with anything but 200.
        TransportError: If the request could not be completed.
    """
    method = method.upper()
    if method not in _SUPPORTED_METHODS:
        raise UnsupportedMethod(f"Unsupported HTTP method '{method}'. Expected GET, POST or PUT.")

    signed = signer(params, access_key, secret_key)
    headers = signed.headers
    body: bytes | None = None

    if method == "GET":
        request_uri = f"{uri}?{signed.query_string}" if signed.query_string else uri
    else:
        request_uri = uri
        headers["Content-Type"] = JSON_CONTENT_TYPE
        if params is not None:
            body = json.dumps(params, separators=(",", ":")).encode("utf-8")

    _LOGGER.debug("%s %s body=%s", method, request_uri, body)

    try:
        async with session.request(
            method,
            yarl.URL(request_uri, encoded=True),
            headers=headers,
            data=body,
            timeout=timeout or aiohttp.ClientTimeout(total=DEFAULT_TIMEOUT),
        ) as resp:
            if resp.status != 200:
                raise HttpStatusError(request_uri, resp.status)
            raw = await resp.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise TransportError(f"Request to {request_uri} failed: {e}") from e

    _LOGGER.debug("%s %s response=%s", method, request_uri, raw)
    return raw


def decode_response(raw: bytes | str) -> dict[str, object]:
    """Parse a JSON response envelope.

    Raises :class:`DecodeError` for malformed JSON or a non-object payload.
    """
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodeError(f"Response is not valid JSON: {e}") from e
    if not isinstance(body, dict):
        raise DecodeError("Response is not valid, can't process it")
    return body


def check_response_code(body: dict[str, object], action: str) -> None:
    """Raise :class:`ApplicationError` unless ``body["code"]`` is ``"0"``."""
    code = body.get("code")
    if code != SUCCESS_CODE:
        raise ApplicationError(str(code), str(body.get("message", "")), action)
