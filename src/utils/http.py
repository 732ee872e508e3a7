"""Helpers for API Gateway HTTP API (payload v2) events and responses."""

import json
from typing import Any, Dict, Optional

from utils.error_handling import ValidationError

ENVELOPE_KEYS = {
    "version",
    "routeKey",
    "rawPath",
    "rawQueryString",
    "headers",
    "cookies",
    "requestContext",
    "pathParameters",
    "queryStringParameters",
    "isBase64Encoded",
}


def json_response(status: int, body: Any) -> Dict[str, Any]:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": body if isinstance(body, str) else json.dumps(body),
    }


def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """JSON body as a dict; direct invocations may pass the payload as the event itself."""
    raw = event.get("body")
    if raw is None:
        return {k: v for k, v in event.items() if k not in ENVELOPE_KEYS}
    try:
        payload = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Request body is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def customer_id(event: Dict[str, Any]) -> Optional[str]:
    """Customer id from the {id} path parameter or a customer_id query parameter."""
    path_params = event.get("pathParameters") or {}
    query_params = event.get("queryStringParameters") or {}
    return path_params.get("id") or query_params.get("customer_id")
