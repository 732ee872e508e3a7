"""
Churn handlers.

POST /churn/predict           estimate churn for a posted profile
GET  /customers/{id}/churn    estimate churn for a stored customer and save it
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

_churn_service: Optional["ChurnService"] = None
_loyalty_service: Optional["LoyaltyService"] = None


def _get_churn_service():
    """Lazy-load ChurnService."""
    global _churn_service
    if _churn_service is None:
        from services.churn_service import ChurnService
        _churn_service = ChurnService()
    return _churn_service


def _get_loyalty_service():
    """Lazy-load LoyaltyService."""
    global _loyalty_service
    if _loyalty_service is None:
        from services.loyalty_service import LoyaltyService
        _loyalty_service = LoyaltyService()
    return _loyalty_service


def lambda_handler(event, context) -> Dict:
    """Validate the profile and return a ChurnRisk; AI failures never surface here."""
    correlation_id = str(uuid.uuid4())
    try:
        profile = CustomerProfile.model_validate(parse_body(event))
        risk = _get_churn_service().estimate_churn(profile)
    except PydanticValidationError as exc:
        return json_response(422, {"message": "Invalid profile", "error": str(exc)})
    except AppError as exc:
        return to_response(exc)
    except Exception as exc:
        logger.exception("Churn prediction failed", extra={"correlation_id": correlation_id})
        return json_response(
            400,
            {
                "message": "Churn prediction failed",
                "error": str(exc),
                "correlation_id": correlation_id,
            },
        )

    logger.info(
        "Churn predicted",
        extra={"correlation_id": correlation_id, "risk_level": risk.riskLevel.value},
    )
    return json_response(200, risk.model_dump_json())


def customer_handler(event, context) -> Dict:
    """Churn estimate for a stored customer."""
    correlation_id = str(uuid.uuid4())
    user_id = customer_id(event)
    if not user_id:
        return json_response(400, {"message": "customer id is required"})

    try:
        risk = _get_loyalty_service().estimate_churn(user_id)
    except AppError as exc:
        return to_response(exc)
    except Exception as exc:
        logger.exception("Churn estimation failed", extra={"correlation_id": correlation_id})
        return json_response(
            400,
            {
                "message": "Churn estimation failed",
                "error": str(exc),
                "correlation_id": correlation_id,
            },
        )
    return json_response(200, risk.model_dump_json())
