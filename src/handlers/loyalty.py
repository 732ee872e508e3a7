"""
Loyalty handlers.

GET  /customers/{id}/loyalty  score a stored customer and persist the result
POST /loyalty/evaluate        score an ad-hoc profile (admin tool, no writes)
POST /loyalty/predict         AI loyalty score for an ad-hoc profile
POST /loyalty/offer           offer for the predicted score bucket
"""

from __future__ import annotations

import uuid
from typing import Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from models.loyalty import CustomerProfile
from utils.error_handling import AppError, to_response
from utils.http import customer_id, json_response, parse_body
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy-loaded service to avoid import-time AWS clients
_loyalty_service: Optional["LoyaltyService"] = None


def _get_loyalty_service():
    """Lazy-load LoyaltyService."""
    global _loyalty_service
    if _loyalty_service is None:
        from services.loyalty_service import LoyaltyService
        _loyalty_service = LoyaltyService()
    return _loyalty_service


def lambda_handler(event, context) -> Dict:
    """Return the loyalty report for one customer."""
    correlation_id = str(uuid.uuid4())
    user_id = customer_id(event)
    if not user_id:
        return json_response(400, {"message": "customer id is required"})

    try:
        report = _get_loyalty_service().calculate_loyalty_with_retry(user_id)
    except AppError as exc:
        logger.info(
            "Loyalty request rejected",
            extra={"correlation_id": correlation_id, "user_id": user_id, "error": str(exc)},
        )
        return to_response(exc)
    except Exception as exc:
        logger.exception("Loyalty calculation failed", extra={"correlation_id": correlation_id})
        return json_response(
            400,
            {
                "message": "Loyalty calculation failed",
                "error": str(exc),
                "correlation_id": correlation_id,
            },
        )

    logger.info(
        "Loyalty served",
        extra={"correlation_id": correlation_id, "user_id": user_id, "category": report.category.value},
    )
    return json_response(200, report.model_dump_json())


def _profile_request(event, operation: str, call) -> Dict:
    """Shared envelope for the admin tools that take a posted profile."""
    correlation_id = str(uuid.uuid4())
    try:
        profile = CustomerProfile.model_validate(parse_body(event))
        result = call(_get_loyalty_service(), profile)
    except PydanticValidationError as exc:
        return json_response(422, {"message": "Invalid profile", "error": str(exc)})
    except AppError as exc:
        return to_response(exc)
    except Exception as exc:
        logger.exception(f"{operation} failed", extra={"correlation_id": correlation_id})
        return json_response(
            400,
            {
                "message": f"{operation} failed",
                "error": str(exc),
                "correlation_id": correlation_id,
            },
        )

    logger.info(f"{operation} served", extra={"correlation_id": correlation_id})
    return json_response(200, result)


def evaluate_handler(event, context) -> Dict:
    """Score, offer and churn for a profile posted in the body."""
    return _profile_request(
        event,
        "Profile evaluation",
        lambda service, profile: service.evaluate_profile(profile).model_dump_json(),
    )


def predict_handler(event, context) -> Dict:
    """AI loyalty score (RFM score when the model is unavailable)."""
    return _profile_request(
        event,
        "Loyalty prediction",
        lambda service, profile: {"loyaltyScore": service.predict_loyalty_score(profile)},
    )


def admin_offer_handler(event, context) -> Dict:
    """Offer for the score-only category of the predicted loyalty score."""
    return _profile_request(
        event,
        "Admin offer generation",
        lambda service, profile: service.generate_admin_offer(profile).model_dump_json(),
    )
