"""
Engagement handlers.

POST /customers/{id}/purchases   record a purchase
GET  /customers/{id}/purchases   list recorded purchases
POST /customers/{id}/feedback    record a 1-5 star rating
POST /customers/{id}/engagement  track a page view or feature use
"""

from __future__ import annotations

import uuid
from typing import Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from models.customer import FeedbackRequest, PurchaseRecord
from utils.error_handling import AppError, to_response
from utils.http import customer_id, json_response, parse_body
from utils.logging_config import get_logger

logger = get_logger(__name__)

_engagement_service: Optional["EngagementService"] = None


def _get_engagement_service():
    """Lazy-load EngagementService."""
    global _engagement_service
    if _engagement_service is None:
        from services.engagement_service import EngagementService
        _engagement_service = EngagementService()
    return _engagement_service


def _run(event, operation: str, call) -> Dict:
    """Shared envelope: id check, validation errors, logging."""
    correlation_id = str(uuid.uuid4())
    user_id = customer_id(event)
    if not user_id:
        return json_response(400, {"message": "customer id is required"})

    try:
        result = call(user_id, parse_body(event))
    except PydanticValidationError as exc:
        return json_response(422, {"message": f"Invalid {operation} payload", "error": str(exc)})
    except AppError as exc:
        logger.info(
            f"{operation.capitalize()} rejected",
            extra={"correlation_id": correlation_id, "user_id": user_id, "error": str(exc)},
        )
        return to_response(exc)
    except Exception as exc:
        logger.exception(f"{operation.capitalize()} failed", extra={"correlation_id": correlation_id})
        return json_response(
            400,
            {
                "message": f"{operation.capitalize()} failed",
                "error": str(exc),
                "correlation_id": correlation_id,
            },
        )
    return json_response(200, result)


def purchase_handler(event, context) -> Dict:
    return _run(
        event,
        "purchase",
        lambda uid, body: _get_engagement_service().record_purchase(
            uid, PurchaseRecord.model_validate(body)
        ),
    )


def feedback_handler(event, context) -> Dict:
    return _run(
        event,
        "feedback",
        lambda uid, body: _get_engagement_service().record_feedback(
            uid, FeedbackRequest.model_validate(body)
        ),
    )


def engagement_handler(event, context) -> Dict:
    return _run(
        event,
        "engagement",
        lambda uid, body: _get_engagement_service().track_engagement(uid, body.get("action")),
    )


def history_handler(event, context) -> Dict:
    """Purchase history, oldest first; unknown customers have none."""
    return _run(
        event,
        "purchase history",
        lambda uid, body: {
            "purchases": [
                entry.model_dump(mode="json", exclude_none=True)
                for entry in _get_engagement_service().purchase_history(uid)
            ]
        },
    )
