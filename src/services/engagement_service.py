"""
Engagement service: purchases, feedback and activity tracking.

These writes feed the signals the loyalty score is computed from.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from models.customer import CustomerRecord, FeedbackRequest, PurchaseRecord
from utils.error_handling import NotFoundError
from utils.logging_config import get_logger
from utils.validators import ensure_present, ensure_rating

logger = get_logger(__name__)

DEFAULT_ENGAGEMENT = 0.5
FEEDBACK_WEIGHT = 0.3
ENGAGEMENT_STEP = 0.02


class EngagementService:
    """Record customer activity against the customer repository."""

    def __init__(
        self,
        repository: Any = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if repository is None:
            from repositories.dynamodb_repo import CustomerRepository

            repository = CustomerRepository()
        self.repository = repository
        self.clock = clock

    def record_purchase(self, user_id: str, purchase: PurchaseRecord) -> Dict[str, Any]:
        """Bump counters and append history; first purchase creates the record."""
        ensure_present(user_id, "user_id")
        timestamp = self.clock().isoformat()
        entry = purchase.model_copy(update={"timestamp": timestamp})

        existing = self.repository.get(user_id)
        if existing is not None:
            self.repository.append_purchase(
                user_id,
                entry,
                fields={
                    "purchases": (existing.purchases or 0) + 1,
                    "totalSpent": (existing.totalSpent or 0.0) + entry.amount,
                    "lastActivity": timestamp,
                },
            )
            logger.info("Purchase recorded", extra={"user_id": user_id, "amount": entry.amount})
        else:
            self.repository.put(
                CustomerRecord(
                    uid=user_id,
                    purchases=1,
                    totalSpent=entry.amount,
                    lastActivity=timestamp,
                    feedbackScore=0,
                    engagementScore=DEFAULT_ENGAGEMENT,
                    purchaseHistory=[entry],
                    createdAt=timestamp,
                )
            )
            logger.info("Customer created from first purchase", extra={"user_id": user_id})
        return {"success": True, "timestamp": timestamp}

    def purchase_history(self, user_id: str) -> List[PurchaseRecord]:
        record = self.repository.get(user_id)
        return list(record.purchaseHistory) if record else []

    def record_feedback(self, user_id: str, feedback: FeedbackRequest) -> Dict[str, Any]:
        """
        Store a rating and blend it into the engagement score.

        The rating is validated before the repository is touched, so a missing
        rating never costs a read.
        """
        ensure_present(user_id, "user_id")
        score = ensure_rating(feedback.score)

        record = self.repository.get(user_id)
        if record is None:
            raise NotFoundError(f"Customer {user_id} not found")

        old = record.engagementScore if record.engagementScore else DEFAULT_ENGAGEMENT
        new_engagement = old * (1 - FEEDBACK_WEIGHT) + (score / 5) * FEEDBACK_WEIGHT

        self.repository.update(
            user_id,
            {
                "feedbackScore": score,
                "feedbackComments": feedback.comments,
                "engagementScore": new_engagement,
                "lastActivity": self.clock().isoformat(),
            },
        )
        logger.info(
            "Feedback recorded",
            extra={"user_id": user_id, "score": score, "engagement": round(new_engagement, 3)},
        )
        return {"success": True, "newEngagementScore": new_engagement}

    def track_engagement(self, user_id: str, action: Optional[str] = None) -> Dict[str, Any]:
        """Nudge engagement up for a tracked action (page view, feature use)."""
        record = self.repository.get(user_id)
        if record is None:
            return {"success": False, "error": "User not found"}

        old = record.engagementScore if record.engagementScore else DEFAULT_ENGAGEMENT
        self.repository.update(
            user_id,
            {
                "engagementScore": min(old + ENGAGEMENT_STEP, 1.0),
                "lastActivity": self.clock().isoformat(),
            },
        )
        logger.info("Engagement tracked", extra={"user_id": user_id, "action": action})
        return {"success": True}
