"""HTTP transport for the webhook API.

All calls go through httpx.AsyncClient so they do not block the event
loop. Transport failures become NetworkException, non-2xx statuses
ServerException, and undecodable bodies ParseException.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from evalsync.core.constants import INVALID_SERVER_RESPONSE
from evalsync.domain.exceptions import NetworkException, ParseException, ServerException
from evalsync.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_PREVIEW_CHARS = 200


async def send_request(
    client: httpx.AsyncClient,
    url: str,
    *,
    method: str = "POST",
    json_body: Any = None,
    headers: dict[str, str] | None = None,
    operation: str | None = None,
) -> httpx.Response:
    """Perform one HTTP request and return the 2xx response.

    Raises:
        NetworkException: Connection, timeout or other transport failure.
        ServerException: Non-2xx status.
    """
    request_headers = {"Content-Type": "application/json"}
    if headers:
        request_headers.update(headers)
    try:
        resp = await client.request(
            method.upper(), url, json=json_body, headers=request_headers
        )
    except httpx.TransportError as e:
        logger.warning("Transport error on %s %s: %s", method.upper(), url, e)
        raise NetworkException(url, str(e) or e.__class__.__name__) from e
    if resp.is_error:
        body = resp.text
        logger.warning(
            "Server returned %s for %s %s: %s",
            resp.status_code,
            method.upper(),
            url,
            body[:_PREVIEW_CHARS],
        )
        raise ServerException(
            f"HTTP {resp.status_code}: {resp.reason_phrase}",
            status_code=resp.status_code,
            operation=operation,
        )
    return resp


def decode_json_body(text: str) -> Any:
    """Decode a JSON body; a blank body decodes to an empty list.

    Raises:
        ParseException: Body is not valid JSON.
    """
    if not text.strip():
        return []
    try:
        return json.loads(text)
    except ValueError as e:
        logger.error("Could not parse server response: %s", text[:_PREVIEW_CHARS])
        raise ParseException(INVALID_SERVER_RESPONSE, text[:_PREVIEW_CHARS]) from e
