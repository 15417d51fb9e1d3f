"""JSON request entry point for the gateway."""

from __future__ import annotations

import json
from typing import Any

import structlog

from stockgateway.errors import GatewayError, GatewayErrorCode
from stockgateway.gateway import SnapshotGateway
from stockgateway.models.request import GatewayRequest

logger = structlog.get_logger(__name__)


def handle_request(gateway: SnapshotGateway, body: dict[str, Any] | str | bytes | None) -> dict[str, Any]:
    """Decode ``body``, run the batch and return the JSON-able response.

    Only a malformed top-level request yields ``{"error": message}``;
    per-ticker failures are reported inside ``errors``.
    """
    try:
        request = GatewayRequest.from_dict(_decode(body))
        return gateway.handle(request).to_dict()
    except GatewayError as exc:
        if exc.code is not GatewayErrorCode.BAD_REQUEST:
            raise
        logger.info("bad_request", error=exc.message)
        return {"error": exc.message}


def _decode(body: dict[str, Any] | str | bytes | None) -> Any:
    if body is None:
        return {}
    if isinstance(body, dict):
        return body
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise GatewayError(
                "Request body is not valid UTF-8",
                code=GatewayErrorCode.BAD_REQUEST,
            ) from exc
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except ValueError as exc:
        raise GatewayError(
            f"Request body is not valid JSON: {exc}",
            code=GatewayErrorCode.BAD_REQUEST,
        ) from exc
