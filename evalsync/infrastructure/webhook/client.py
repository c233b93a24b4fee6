"""Operation-tagged webhook client.

Sends one OperationRequest per call and returns a normalized
WebhookEnvelope. Used by the response and roster gateways; cached reads
go through RequestCache instead.
"""

from __future__ import annotations

import httpx
from pydantic import BaseModel

from evalsync.infrastructure.webhook.envelope import normalize_response
from evalsync.infrastructure.webhook.transport import send_request
from evalsync.schemas.operations import WebhookEnvelope, to_wire
from evalsync.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class WebhookClient:
    """Posts operation requests to webhook endpoints."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize with a shared HTTP client (not closed here).

        Args:
            http_client: Shared httpx.AsyncClient.
            default_headers: Headers added to every request (e.g. Authorization).
        """
        self._http = http_client
        self._default_headers = dict(default_headers or {})

    async def send(self, url: str, request: BaseModel) -> WebhookEnvelope:
        """POST request to url and return the normalized answer.

        Raises:
            NetworkException, ServerException, ParseException.
        """
        body = to_wire(request)
        operation = body["operation"]
        logger.debug("POST %s operation=%s", url, operation)
        resp = await send_request(
            self._http,
            url,
            method="POST",
            json_body=body,
            headers=self._default_headers,
            operation=operation,
        )
        return normalize_response(operation, resp.text)
