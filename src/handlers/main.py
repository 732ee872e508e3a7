"""
Single entrypoint Lambda for the loyalty HTTP API.

Routes are matched on method and path; the work happens in the per-area
handler modules, which share warm service instances within one container.
"""

from typing import Callable, Dict, Pattern, Tuple
import json
import re

from . import health_check, loyalty, churn, offers, engagement, sentiment


def _response(status: int, body: Dict) -> Dict:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def _route_table() -> Tuple[Tuple[str, Pattern, Callable], ...]:
    # Looked up per request so tests can monkeypatch handler functions.
    customer = r"/customers/(?P<id>[^/]+)"
    return (
        ("GET", re.compile(r"^/health/?$"), health_check.lambda_handler),
        ("GET", re.compile(rf"^{customer}/loyalty/?$"), loyalty.lambda_handler),
        ("GET", re.compile(rf"^{customer}/churn/?$"), churn.customer_handler),
        ("POST", re.compile(rf"^{customer}/purchases/?$"), engagement.purchase_handler),
        ("GET", re.compile(rf"^{customer}/purchases/?$"), engagement.history_handler),
        ("POST", re.compile(rf"^{customer}/feedback/?$"), engagement.feedback_handler),
        ("POST", re.compile(rf"^{customer}/engagement/?$"), engagement.engagement_handler),
        ("POST", re.compile(r"^/loyalty/evaluate/?$"), loyalty.evaluate_handler),
        ("POST", re.compile(r"^/loyalty/predict/?$"), loyalty.predict_handler),
        ("POST", re.compile(r"^/loyalty/offer/?$"), loyalty.admin_offer_handler),
        ("POST", re.compile(r"^/churn/predict/?$"), churn.lambda_handler),
        ("POST", re.compile(r"^/offers/generate/?$"), offers.lambda_handler),
        ("POST", re.compile(r"^/feedback/sentiment/?$"), sentiment.lambda_handler),
    )


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    Path parameters are filled from the matched pattern when API Gateway did
    not supply them (e.g. a $default catch-all route).
    """
    method = event.get("requestContext", {}).get("http", {}).get("method", "")
    path = event.get("requestContext", {}).get("http", {}).get("path", "")
    route_key = f"{method.upper()} {path}"

    for route_method, pattern, handler in _route_table():
        if method.upper() != route_method:
            continue
        match = pattern.match(path)
        if match:
            if match.groupdict():
                params = dict(event.get("pathParameters") or {})
                for key, value in match.groupdict().items():
                    params.setdefault(key, value)
                event = {**event, "pathParameters": params}
            return handler(event, context)

    return _response(404, {"message": "Route not found", "route": route_key})
