"""Customer record models."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.loyalty import ChurnRisk, Offer


def utc_now_iso() -> str:
    """ISO-8601 timestamp in UTC, the format stored in lastActivity."""
    return datetime.now(timezone.utc).isoformat()


class PurchaseRecord(BaseModel):
    """One entry of the append-only purchase history."""

    productId: str
    productName: str
    quantity: int = Field(default=1, ge=1)
    amount: float = Field(ge=0)
    timestamp: str = Field(default_factory=utc_now_iso)
    category: Optional[str] = None


class FeedbackRequest(BaseModel):
    """Star rating plus optional free text."""

    score: Optional[float] = None
    comments: str = ""


class CustomerRecord(BaseModel):
    """Per-customer document keyed by uid."""

    model_config = ConfigDict(extra="allow")

    uid: str
    purchases: int = 0
    totalSpent: float = 0.0
    lastActivity: Optional[str] = None
    feedbackScore: float = 0.0
    feedbackComments: Optional[str] = None
    engagementScore: Optional[float] = None
    purchaseHistory: List[PurchaseRecord] = Field(default_factory=list)
    preferredCategories: List[str] = Field(default_factory=list)
    createdAt: Optional[str] = None

    loyaltyScore: Optional[int] = None
    category: Optional[str] = None
    lastCalculated: Optional[str] = None
    aiOffer: Optional[Offer] = None
    churnRisk: Optional[ChurnRisk] = None

    @field_validator("aiOffer", mode="before")
    @classmethod
    def fill_legacy_offer(cls, value):
        """Older documents stored four-field offers; missing fields load as empty strings."""
        if isinstance(value, dict):
            return {**{key: "" for key in Offer.model_fields}, **value}
        return value


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FeedbackSentiment(BaseModel):
    """Model reading of a free-text review."""

    sentimentScore: float = Field(default=0.0, ge=-1, le=1)
    keyThemes: List[str] = Field(default_factory=list)
    actionableInsights: List[str] = Field(default_factory=list)
    priority: Priority = Priority.MEDIUM

    @field_validator("sentimentScore", mode="before")
    @classmethod
    def clamp_score(cls, value):
        """-1 is very negative, 1 very positive; anything outside is clamped."""
        if value is None:
            return 0.0
        return max(-1.0, min(1.0, float(value)))

    @field_validator("priority", mode="before")
    @classmethod
    def lower_priority(cls, value):
        return value.strip().lower() if isinstance(value, str) else value
