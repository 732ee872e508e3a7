"""Pydantic models for loyalty payloads and customer records."""

from models.customer import (  # noqa: F401
    CustomerRecord,
    FeedbackRequest,
    FeedbackSentiment,
    Priority,
    PurchaseRecord,
)
from models.loyalty import (  # noqa: F401
    ChurnRisk,
    CustomerProfile,
    LoyaltyCategory,
    LoyaltyReport,
    LoyaltyResult,
    Offer,
    ProfileEvaluation,
    Reward,
    RiskLevel,
    risk_level_for,
)
