"""
Loyalty scoring heuristics.

Pure functions only: every call normalizes its input, recomputes the score from
scratch and never touches shared state.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Union

from models.loyalty import (
    CustomerProfile,
    LoyaltyCategory,
    LoyaltyReport,
    LoyaltyResult,
    Reward,
)
from utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_ENGAGEMENT = 0.5
INACTIVITY_GRACE_DAYS = 30
INACTIVITY_DECAY_DAYS = 60
INACTIVITY_FLOOR = 0.5

RECOMMENDED_ACTIONS = {
    LoyaltyCategory.LOYAL: (
        "Offer premium loyalty rewards",
        "Invite to beta test new features",
        "Provide exclusive discounts",
        "Send personalized product recommendations",
        "Offer early access to sales",
    ),
    LoyaltyCategory.AT_RISK: (
        "Send re-engagement email campaign",
        "Offer special time-limited discount",
        "Request feedback on last purchase",
        "Showcase new products since last visit",
        "Provide personalized product recommendations",
    ),
    LoyaltyCategory.CHURNED: (
        "Send win-back campaign with major incentive",
        "Offer significant discount with expiration",
        "Request feedback on why they left",
        "Highlight new improvements since last visit",
        "Provide free shipping or gift with purchase",
    ),
}

ProfileLike = Union[CustomerProfile, Mapping[str, Any]]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (storefront rounding)."""
    return int(math.floor(value + 0.5))


def normalize_profile(
    profile: ProfileLike, default_engagement: float = DEFAULT_ENGAGEMENT
) -> CustomerProfile:
    """Single defaulting step: missing numerics are 0, missing engagement is ``default_engagement``."""
    if not isinstance(profile, CustomerProfile):
        profile = CustomerProfile.model_validate(dict(profile or {}))
    if profile.engagementScore is None:
        profile = profile.model_copy(update={"engagementScore": default_engagement})
    return profile


def loyalty_score(profile: ProfileLike) -> int:
    """Weighted purchase/feedback/engagement/spend score with inactivity decay, clamped to 0..100."""
    p = normalize_profile(profile)
    score = (
        p.purchaseCount * 10
        + p.feedbackScore * 4
        + p.engagementScore * 50
        + min(p.totalSpent / 10, 100)
    )
    if p.daysInactive > INACTIVITY_GRACE_DAYS:
        decay = 1 - (p.daysInactive - INACTIVITY_GRACE_DAYS) / INACTIVITY_DECAY_DAYS
        score *= max(INACTIVITY_FLOOR, decay)
    return max(0, min(100, round_half_up(score)))


def classify(score: int, engagement: float, days_inactive: float) -> LoyaltyCategory:
    """Churned wins whenever score < 30, even if the At-Risk predicate also holds."""
    at_risk = score < 50 or engagement < 0.5 or days_inactive > INACTIVITY_GRACE_DAYS
    if score < 30:
        return LoyaltyCategory.CHURNED
    if at_risk:
        return LoyaltyCategory.AT_RISK
    return LoyaltyCategory.LOYAL


def category_for_score(score: int) -> LoyaltyCategory:
    """Score-only bucketing for predicted scores, which carry no engagement or recency signal."""
    if score < 30:
        return LoyaltyCategory.CHURNED
    if score < 50:
        return LoyaltyCategory.AT_RISK
    return LoyaltyCategory.LOYAL


def traditional_loyalty_score(profile: ProfileLike) -> int:
    """
    Recency/frequency/monetary score weighted with engagement and feedback.

    Used when the AI loyalty prediction is unavailable. The weighted sum is
    scaled by how much of a year the customer has been around, so brand new
    accounts score low regardless of their first purchases.
    """
    p = normalize_profile(profile, default_engagement=0.0)
    recency = max(0.0, 100 - p.daysInactive * 2)
    frequency = min(100.0, p.purchaseCount * 20)
    monetary = min(100.0, p.totalSpent / 1000 * 50)
    engagement = p.engagementScore * 100
    feedback = p.feedbackScore / 5 * 100
    # Unknown lifetime counts as a single day.
    lifetime_factor = min(1.0, max(p.customerLifetime, 1.0) / 365)

    score = (
        recency * 0.3
        + frequency * 0.25
        + monetary * 0.2
        + engagement * 0.15
        + feedback * 0.1
    ) * lifetime_factor
    return max(0, min(100, round_half_up(score)))


def recommended_actions(category: Union[LoyaltyCategory, str]) -> List[str]:
    """Fixed five-step playbook per category; anything unknown gets the win-back list."""
    try:
        key = LoyaltyCategory(category)
    except ValueError:
        key = LoyaltyCategory.CHURNED
    return list(RECOMMENDED_ACTIONS[key])


def compute_loyalty(profile: ProfileLike) -> LoyaltyResult:
    """Score, categorize and attach the action playbook; aiOffer is left empty."""
    p = normalize_profile(profile)
    score = loyalty_score(p)
    category = classify(score, p.engagementScore, p.daysInactive)
    return LoyaltyResult(
        loyaltyScore=score,
        category=category,
        recommendedActions=recommended_actions(category),
    )


def days_between(last_activity: Optional[str], now: Optional[datetime] = None) -> float:
    """Days since an ISO-8601 timestamp; unparseable values count as "just now"."""
    now = now or datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(last_activity).replace("Z", "+00:00"))
    except (TypeError, ValueError):
        logger.warning(
            "Invalid lastActivity date, using current date",
            extra={"last_activity": last_activity},
        )
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return max(0.0, (now - parsed).total_seconds() / 86400)


def loyalty_rewards(report: Optional[LoyaltyReport]) -> List[Reward]:
    """AI offer first, then the category perks."""
    if report is None:
        return []

    rewards: List[Reward] = []
    offer = report.aiOffer
    if offer is not None:
        rewards.append(
            Reward(
                id="ai-offer",
                name=offer.name or "Special Offer",
                discount=offer.discount or "",
                description=offer.description or "Personalized offer just for you",
                expiration=offer.expiration or "Limited time offer",
            )
        )

    if report.category == LoyaltyCategory.LOYAL:
        rewards.append(Reward(id="reward2", name="Free Shipping", description="On all orders"))
        rewards.append(Reward(id="reward3", name="Early Access", description="To new products"))
        if report.loyaltyScore > 80:
            rewards.append(
                Reward(id="reward4", name="VIP Support", description="Priority customer service")
            )
        if report.totalSpent > 500:
            rewards.append(
                Reward(
                    id="reward5",
                    name="10% Lifetime Discount",
                    description="On all future purchases",
                )
            )
    elif report.category == LoyaltyCategory.AT_RISK:
        rewards.append(
            Reward(id="reward6", name="Free Gift", description="With next purchase over $50")
        )
    else:
        rewards.append(
            Reward(id="reward9", name="Free Product", description="With purchase over $75")
        )
    return rewards


# Prompt enrichment labels. These only shape the AI prompt, never a fallback.


def behavioral_segment(profile: CustomerProfile, score: int) -> str:
    days = profile.daysInactive
    if score >= 80 and profile.purchaseCount > 5:
        return "High-Value Regular"
    if score >= 60 and days < 30:
        return "Active Loyal"
    if days > 60 and score > 50:
        return "Dormant High-Value"
    if 30 < days <= 60:
        return "Recent Churner"
    if profile.purchaseCount <= 2 and days < 30:
        return "New Customer"
    if (profile.engagementScore or 0) < 0.3:
        return "Low Engagement Browser"
    return "Standard Customer"


def suggested_discount_range(profile: CustomerProfile, category: LoyaltyCategory) -> str:
    if profile.daysInactive > 90:
        return "25-30%"
    if category == LoyaltyCategory.LOYAL:
        return "15-20%" if profile.totalSpent > 500 else "10-15%"
    if category == LoyaltyCategory.AT_RISK:
        return "15-20%"
    return "20-25%"


def timing_strategy(profile: CustomerProfile) -> str:
    if profile.purchaseFrequency > 1:
        return "Short timeframe (3-5 days) to create urgency"
    if profile.daysInactive > 60:
        return "Extended timeframe (14 days) with reminder"
    return "Standard timeframe (7 days)"


def target_categories(profile: CustomerProfile) -> List[str]:
    return list(profile.preferredCategories) or ["bestsellers", "new arrivals"]


def customer_insights(profile: CustomerProfile, category: LoyaltyCategory) -> str:
    insights = []
    if category == LoyaltyCategory.LOYAL and profile.purchaseCount > 5:
        insights.append(
            "This is a high-value repeat customer who responds well to exclusivity and premium offers"
        )
    if category == LoyaltyCategory.AT_RISK and profile.daysInactive > 30:
        insights.append(
            "This customer is showing signs of disengagement and needs a compelling reason to return"
        )
    if category == LoyaltyCategory.CHURNED:
        insights.append(
            "This customer has likely moved to a competitor and needs a strong incentive to reconsider"
        )
    if (profile.engagementScore or 0) < 0.3:
        insights.append(
            "Low engagement with marketing communications suggests need for a different approach"
        )
    return "; ".join(insights) if insights else "Standard customer profile"
