"""Pydantic models for loyalty scoring, offers and churn risk.

Field names are camelCase on purpose: they are the exact keys persisted in the
customer record and rendered by the storefront.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LoyaltyCategory(str, Enum):
    """Customer lifecycle buckets."""

    LOYAL = "Loyal"
    AT_RISK = "At-Risk"
    CHURNED = "Churned"


class RiskLevel(str, Enum):
    """Churn risk tiers derived from churn probability."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def risk_level_for(probability: int) -> RiskLevel:
    """>70 is high, >40 is medium, anything else is low."""
    if probability > 70:
        return RiskLevel.HIGH
    if probability > 40:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class CustomerProfile(BaseModel):
    """Signals describing one customer at the time of a call."""

    model_config = ConfigDict(frozen=True)

    purchaseCount: int = Field(default=0, ge=0)
    totalSpent: float = Field(default=0.0, ge=0)
    daysInactive: float = Field(default=0.0, ge=0)
    engagementScore: Optional[float] = Field(default=None, ge=0, le=1)
    feedbackScore: float = Field(default=0.0, ge=0, le=5)
    avgOrderValue: float = Field(default=0.0, ge=0)
    purchaseFrequency: float = Field(default=0.0, ge=0)
    customerLifetime: float = Field(default=0.0, ge=0)
    preferredCategories: List[str] = Field(default_factory=list)

    @field_validator(
        "purchaseCount",
        "totalSpent",
        "daysInactive",
        "feedbackScore",
        "avgOrderValue",
        "purchaseFrequency",
        "customerLifetime",
        mode="before",
    )
    @classmethod
    def default_missing(cls, value):
        """Missing numeric signals count as zero."""
        return 0 if value is None else value

    @field_validator("preferredCategories", mode="before")
    @classmethod
    def clean_categories(cls, value):
        """Accept a comma separated string or a list; drop blanks and duplicates."""
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        seen: List[str] = []
        for item in value:
            cleaned = str(item).strip()
            if cleaned and cleaned not in seen:
                seen.append(cleaned)
        return seen


class Offer(BaseModel):
    """Promotional offer, either AI generated or a deterministic fallback."""

    name: str
    discount: str
    description: str
    expiration: str
    targetedCategory: str
    expectedConversionRate: str


class LoyaltyResult(BaseModel):
    """Score, category and the static action list for that category."""

    loyaltyScore: int = Field(ge=0, le=100)
    category: LoyaltyCategory
    recommendedActions: List[str] = Field(default_factory=list)
    aiOffer: Optional[Offer] = None


class ChurnRisk(BaseModel):
    """Churn estimate; riskLevel is always recomputed from churnProbability."""

    churnProbability: int = Field(ge=0, le=100)
    riskLevel: RiskLevel = RiskLevel.LOW
    keyRiskFactors: List[str] = Field(default_factory=list)
    retentionStrategies: List[str] = Field(default_factory=list)

    @field_validator("churnProbability", mode="before")
    @classmethod
    def clamp_probability(cls, value):
        """Round and clamp whatever the caller (or the model) supplied."""
        if isinstance(value, str):
            value = value.strip().rstrip("%")
        return max(0, min(100, math.floor(float(value) + 0.5)))

    @model_validator(mode="after")
    def sync_risk_level(self) -> "ChurnRisk":
        self.riskLevel = risk_level_for(self.churnProbability)
        return self


class Reward(BaseModel):
    """Reward card shown next to the loyalty status."""

    id: str
    name: str
    description: str
    discount: Optional[str] = None
    expiration: Optional[str] = None


class LoyaltyReport(BaseModel):
    """Full loyalty payload returned for a stored customer."""

    userId: str
    loyaltyScore: int = Field(ge=0, le=100)
    category: LoyaltyCategory
    lastPurchase: datetime
    purchaseCount: int
    totalSpent: float
    daysInactive: int
    recommendedActions: List[str] = Field(default_factory=list)
    aiOffer: Optional[Offer] = None
    rewards: List[Reward] = Field(default_factory=list)


class ProfileEvaluation(BaseModel):
    """Loyalty plus churn for an ad-hoc profile (nothing is persisted)."""

    loyalty: LoyaltyResult
    churnRisk: ChurnRisk
