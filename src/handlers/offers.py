"""Offer generation handler for POST /offers/generate."""

from __future__ import annotations

import uuid
from typing import Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from models.loyalty import CustomerProfile, LoyaltyCategory
from services.scoring import compute_loyalty
from utils.error_handling import AppError, ValidationError, to_response
from utils.http import json_response, parse_body
from utils.logging_config import get_logger

logger = get_logger(__name__)

_offer_services: Dict[str, "OfferService"] = {}


def _get_offer_service(fallback: Optional[str] = None):
    """Lazy-load one OfferService per fallback strategy."""
    key = fallback or ""
    if key not in _offer_services:
        from services.offer_service import OfferService
        _offer_services[key] = OfferService(fallback=fallback)
    return _offer_services[key]


def lambda_handler(event, context) -> Dict:
    """
    Generate an offer for a posted profile.

    ``category`` overrides the computed category (the admin flow passes the
    score-only bucket); ``fallback`` picks basic or rich fallback offers.
    """
    correlation_id = str(uuid.uuid4())
    try:
        payload = parse_body(event)
        category = payload.pop("category", None)
        fallback = payload.pop("fallback", None)
        profile = CustomerProfile.model_validate(payload)

        loyalty = compute_loyalty(profile)
        if category:
            try:
                loyalty.category = LoyaltyCategory(category)
            except ValueError:
                raise ValidationError(f"Unknown category: {category}") from None
        if fallback not in (None, "basic", "rich"):
            raise ValidationError(f"Unknown fallback: {fallback}")

        offer = _get_offer_service(fallback).generate_offer(profile, loyalty)
    except PydanticValidationError as exc:
        return json_response(422, {"message": "Invalid profile", "error": str(exc)})
    except AppError as exc:
        return to_response(exc)
    except Exception as exc:
        logger.exception("Offer generation failed", extra={"correlation_id": correlation_id})
        return json_response(
            400,
            {
                "message": "Offer generation failed",
                "error": str(exc),
                "correlation_id": correlation_id,
            },
        )

    logger.info(
        "Offer generated",
        extra={"correlation_id": correlation_id, "offer_name": offer.name},
    )
    return json_response(200, offer.model_dump_json())
