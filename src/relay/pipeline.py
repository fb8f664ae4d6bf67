"""Relay pipeline: resolve, rewrite and deliver one inbound text.

Pipeline stages:
1. Resolve the relay target from the mapping
2. Rewrite the envelope (relay number becomes the sender)
3. Log-only gate when no delivery credentials are configured
4. Single POST to the upstream SMS API, no retry
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from src.relay.models import (
    DeliveryRequest,
    DeliveryResponse,
    RelayMessage,
    RelayOutcome,
    rewrite,
)

if TYPE_CHECKING:
    from src.relay.mapping import RelayMapping

logger = logging.getLogger(__name__)

SEND_PATH = "/account/{account_id}/product/origination/sms/send"


class RelayPipeline:
    """Turns one inbound text into zero or one upstream delivery."""

    def __init__(
        self,
        relays: RelayMapping,
        upstream_url: str,
        token: str = "",
        account_id: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._relays = relays
        self._upstream_url = upstream_url
        self._token = token
        self._account_id = account_id
        self._timeout = timeout
        self._transport = transport

    @property
    def log_only(self) -> bool:
        return not self._token or not self._account_id

    @property
    def send_url(self) -> str:
        path = SEND_PATH.format(account_id=self._account_id)
        return f"{self._upstream_url.rstrip('/')}{path}"

    async def relay(self, message: RelayMessage) -> RelayOutcome:
        """Run the pipeline for an already-defaulted message."""
        target = self._relays.lookup(message.destination)
        if target is None:
            logger.warning("missing relay target to=%s", message.destination)
            return RelayOutcome.NO_RELAY

        rewritten = rewrite(message, target)

        if self.log_only:
            logger.info(
                "forwarding message (log-only mode) from=%s to=%s msg=%r",
                rewritten.source, rewritten.destination, rewritten.message,
            )
            return RelayOutcome.LOG_ONLY

        return await self._forward_to_upstream(DeliveryRequest.from_rewritten(rewritten))

    async def _forward_to_upstream(self, request: DeliveryRequest) -> RelayOutcome:
        """POST the delivery request once and classify the answer."""
        headers = {
            "Authorization": f"Basic {self._token}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout,
            ) as client:
                resp = await client.post(
                    self.send_url,
                    content=request.model_dump_json(),
                    headers=headers,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("cannot perform POST to=%s: %s", request.to_did, exc)
            return RelayOutcome.TRANSPORT_ERROR

        if resp.status_code != 200:
            logger.error("API error status=%d to=%s", resp.status_code, request.to_did)
            return RelayOutcome.BAD_STATUS

        try:
            data = _decode_response(resp.content)
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.error("cannot decode response to=%s: %s", request.to_did, exc)
            return RelayOutcome.DECODE_ERROR

        if not data.accepted:
            logger.error("cannot relay; %s", data.data if data.data is not None else "")
            return RelayOutcome.EMPTY_GUID

        logger.info(
            "forwarded message from=%s to=%s msg=%r status=%s data=%s guid=%s",
            request.from_did, request.to_did, request.message,
            data.status, data.data, data.guid,
        )
        return RelayOutcome.DELIVERED


def _decode_response(content: bytes) -> DeliveryResponse:
    # A literal null body decodes to an empty response, i.e. a rejection.
    payload = json.loads(content)
    if payload is None:
        return DeliveryResponse()
    return DeliveryResponse.model_validate(payload)
