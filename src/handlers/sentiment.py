"""Feedback sentiment handler for POST /feedback/sentiment (admin tool)."""

from __future__ import annotations

import uuid
from typing import Dict, Optional

from utils.error_handling import AppError, to_response
from utils.http import json_response, parse_body
from utils.logging_config import get_logger

logger = get_logger(__name__)

_sentiment_service: Optional["SentimentService"] = None


def _get_sentiment_service():
    """Lazy-load SentimentService."""
    global _sentiment_service
    if _sentiment_service is None:
        from services.sentiment_service import SentimentService
        _sentiment_service = SentimentService()
    return _sentiment_service


def lambda_handler(event, context) -> Dict:
    """Analyze ``feedbackText``; 503 when the model could not be reached."""
    correlation_id = str(uuid.uuid4())
    try:
        payload = parse_body(event)
        sentiment = _get_sentiment_service().analyze(payload.get("feedbackText"))
    except AppError as exc:
        return to_response(exc)
    except Exception as exc:
        logger.exception("Sentiment analysis failed", extra={"correlation_id": correlation_id})
        return json_response(
            400,
            {
                "message": "Sentiment analysis failed",
                "error": str(exc),
                "correlation_id": correlation_id,
            },
        )

    if sentiment is None:
        return json_response(
            503,
            {"message": "Sentiment analysis unavailable", "correlation_id": correlation_id},
        )

    logger.info(
        "Sentiment analyzed",
        extra={"correlation_id": correlation_id, "priority": sentiment.priority.value},
    )
    return json_response(200, sentiment.model_dump_json())
