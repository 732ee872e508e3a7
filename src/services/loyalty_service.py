"""
Loyalty service.

Reads a customer record, derives the profile, scores it, asks for an offer and
writes the result back. Offer and churn calls run one after the other; nothing
is cached between calls.
"""

from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, TypeVar

from models.customer import CustomerRecord
from models.loyalty import (
    ChurnRisk,
    CustomerProfile,
    LoyaltyReport,
    LoyaltyResult,
    ProfileEvaluation,
)
from services.bedrock_service import TextGenerator
from services.churn_service import ChurnService
from services.offer_service import OfferService
from services.scoring import (
    ProfileLike,
    category_for_score,
    compute_loyalty,
    days_between,
    loyalty_rewards,
    normalize_profile,
    recommended_actions,
    round_half_up,
    traditional_loyalty_score,
)
from utils.error_handling import NotFoundError, RateLimitError
from utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

MAX_RATE_LIMIT_RETRIES = 3
BASE_BACKOFF_SECONDS = 1.0

# Score assumed when the model answers without any number.
UNREADABLE_SCORE = 50
SCORE_PATTERN = re.compile(r"\d+(?:\.\d+)?")


def with_rate_limit_retry(
    fn: Callable[..., T],
    *args: Any,
    retries: int = MAX_RATE_LIMIT_RETRIES,
    base_delay: float = BASE_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """Retry only on RateLimitError, sleeping 1s, 2s, 4s between attempts."""
    attempt = 0
    while True:
        try:
            return fn(*args, **kwargs)
        except RateLimitError as exc:
            if attempt >= retries:
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Rate limited; retrying",
                extra={"attempt": attempt + 1, "delay_seconds": delay, "error": str(exc)},
            )
            sleep(delay)
            attempt += 1


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def profile_from_record(record: CustomerRecord, now: Optional[datetime] = None) -> CustomerProfile:
    """Derive scoring signals from a stored customer document."""
    now = now or datetime.now(timezone.utc)
    purchases = record.purchases or 0
    total_spent = record.totalSpent or 0.0

    started = _parse_timestamp(record.createdAt)
    if started is None and record.purchaseHistory:
        stamps = [_parse_timestamp(p.timestamp) for p in record.purchaseHistory]
        stamps = [s for s in stamps if s is not None]
        started = min(stamps) if stamps else None
    lifetime = max(0.0, (now - started).total_seconds() / 86400) if started else 0.0

    frequency = 0.0
    if purchases > 0 and lifetime > 0:
        # A customer created today still gets a one-day window.
        frequency = purchases / max(lifetime, 1.0) * 30

    preferred = list(record.preferredCategories)
    if not preferred:
        for purchase in record.purchaseHistory:
            if purchase.category and purchase.category not in preferred:
                preferred.append(purchase.category)

    return CustomerProfile(
        purchaseCount=purchases,
        totalSpent=total_spent,
        daysInactive=days_between(record.lastActivity, now),
        engagementScore=record.engagementScore,
        feedbackScore=record.feedbackScore or 0.0,
        avgOrderValue=total_spent / purchases if purchases else 0.0,
        purchaseFrequency=frequency,
        customerLifetime=lifetime,
        preferredCategories=preferred,
    )


class LoyaltyService:
    """Full loyalty flow for stored customers and ad-hoc profiles."""

    def __init__(
        self,
        repository: Any = None,
        offer_service: Optional[OfferService] = None,
        churn_service: Optional[ChurnService] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        generator: Optional[TextGenerator] = None,
    ):
        if repository is None:
            from repositories.dynamodb_repo import CustomerRepository

            repository = CustomerRepository()
        self.repository = repository
        self.offer_service = offer_service or OfferService()
        self.churn_service = churn_service or ChurnService()
        self.clock = clock
        # Score prediction shares the offer model unless told otherwise.
        self.generator = generator or self.offer_service.generator

    def _load(self, user_id: str) -> CustomerRecord:
        record = self.repository.get(user_id)
        if record is None:
            logger.info("Customer not found", extra={"user_id": user_id})
            raise NotFoundError(f"Customer {user_id} not found")
        return record

    def _write_back(self, user_id: str, fields: Dict[str, Any]) -> None:
        """Persist computed fields; a failed write is logged, the result still returned."""
        try:
            self.repository.update(user_id, fields)
        except Exception as exc:
            logger.error(
                "Failed to update customer record",
                extra={"user_id": user_id, "fields": sorted(fields), "error": str(exc)},
            )

    def calculate_loyalty(self, user_id: str) -> LoyaltyReport:
        """Score a stored customer, attach an offer and rewards, persist the result."""
        now = self.clock()
        record = self._load(user_id)
        profile = profile_from_record(record, now)

        loyalty = compute_loyalty(profile)
        offer = self.offer_service.generate_offer(profile, loyalty)

        last_activity = _parse_timestamp(record.lastActivity) or now
        report = LoyaltyReport(
            userId=user_id,
            loyaltyScore=loyalty.loyaltyScore,
            category=loyalty.category,
            lastPurchase=last_activity,
            purchaseCount=profile.purchaseCount,
            totalSpent=profile.totalSpent,
            daysInactive=round_half_up(profile.daysInactive),
            recommendedActions=loyalty.recommendedActions,
            aiOffer=offer,
        )
        report.rewards = loyalty_rewards(report)

        self._write_back(
            user_id,
            {
                "loyaltyScore": report.loyaltyScore,
                "category": report.category.value,
                "lastCalculated": now.isoformat(),
                "aiOffer": offer.model_dump(mode="json"),
            },
        )
        logger.info(
            "Loyalty calculated",
            extra={
                "user_id": user_id,
                "loyalty_score": report.loyaltyScore,
                "category": report.category.value,
            },
        )
        return report

    def calculate_loyalty_with_retry(self, user_id: str, **retry_kwargs: Any) -> LoyaltyReport:
        """Page-load entry point: retries the whole calculation on rate limits."""
        return with_rate_limit_retry(self.calculate_loyalty, user_id, **retry_kwargs)

    def estimate_churn(self, user_id: str) -> ChurnRisk:
        """Churn estimate for a stored customer, saved under churnRisk."""
        record = self._load(user_id)
        profile = profile_from_record(record, self.clock())
        risk = self.churn_service.estimate_churn(profile)
        self._write_back(user_id, {"churnRisk": risk.model_dump(mode="json")})
        logger.info(
            "Churn estimated",
            extra={"user_id": user_id, "churn_probability": risk.churnProbability},
        )
        return risk

    def evaluate_profile(self, profile: ProfileLike) -> ProfileEvaluation:
        """Loyalty, offer and churn for a supplied profile; nothing is written."""
        p = normalize_profile(profile)
        loyalty = compute_loyalty(p)
        loyalty.aiOffer = self.offer_service.generate_offer(p, loyalty)
        # Churn has its own engagement default, so it gets the raw input.
        churn = self.churn_service.estimate_churn(profile)
        return ProfileEvaluation(loyalty=loyalty, churnRisk=churn)

    def predict_loyalty_score(self, profile: ProfileLike) -> int:
        """
        Ask the model for a 0-100 loyalty score.

        The first number in the answer is taken and clamped; an answer with no
        number counts as 50. A failed call falls back to the RFM score.
        """
        p = normalize_profile(profile, default_engagement=0.0)
        try:
            text = self.generator.generate(self._build_score_prompt(p))
        except Exception as exc:
            logger.warning("Loyalty prediction failed; using RFM score", extra={"error": str(exc)})
            return traditional_loyalty_score(p)

        match = SCORE_PATTERN.search(text or "")
        score = float(match.group(0)) if match else UNREADABLE_SCORE
        score = max(0, min(100, round_half_up(score)))
        logger.info("AI loyalty score predicted", extra={"loyalty_score": score})
        return score

    def generate_admin_offer(self, profile: ProfileLike) -> LoyaltyResult:
        """Predicted score, its score-only category and an offer for that category."""
        score = self.predict_loyalty_score(profile)
        p = normalize_profile(profile)
        category = category_for_score(score)
        loyalty = LoyaltyResult(
            loyaltyScore=score,
            category=category,
            recommendedActions=recommended_actions(category),
        )
        loyalty.aiOffer = self.offer_service.generate_offer(p, loyalty)
        return loyalty

    @staticmethod
    def _build_score_prompt(profile: CustomerProfile) -> str:
        return (
            "As a CRM loyalty analysis expert, calculate a loyalty score (0-100) for this customer:\n"
            f"- Total purchases: {profile.purchaseCount}\n"
            f"- Total spent: ${profile.totalSpent:.2f}\n"
            f"- Average order value: ${profile.avgOrderValue:.2f}\n"
            f"- Purchase frequency: {profile.purchaseFrequency:.2f} orders per month\n"
            f"- Customer lifetime: {round(profile.customerLifetime)} days\n"
            f"- Days since last activity: {round(profile.daysInactive)}\n"
            f"- Engagement score (0-1): {profile.engagementScore:.2f}\n"
            f"- Feedback score (0-5): {profile.feedbackScore}\n"
            "Consider recency, frequency and monetary value, lifetime value and churn "
            "indicators. Return only a number between 0 and 100: 80-100 brand advocate, "
            "60-79 loyal, 40-59 moderate, 20-39 at risk, 0-19 churned."
        )
