"""
Offer generation service.

Asks the text generator for a personalized offer and repairs whatever comes
back field by field. A free-text answer without JSON is salvaged when it at
least names a percentage. Otherwise, and whenever the model is unreachable,
one of two deterministic fallbacks is used:

* ``basic_fallback``: category-only offer (LOYALVIP / COMEBACK / WELCOME).
* ``rich_fallback``: also looks at spend, inactivity and preferred categories.
"""

from __future__ import annotations

import os
import re
from datetime import date, timedelta
from typing import Any, Callable, Dict, Mapping, Optional, Union

from models.loyalty import CustomerProfile, LoyaltyCategory, LoyaltyResult, Offer
from services.bedrock_service import TextGenerator, extract_json_object
from services.scoring import (
    ProfileLike,
    behavioral_segment,
    customer_insights,
    normalize_profile,
    suggested_discount_range,
    target_categories,
    timing_strategy,
)
from utils.logging_config import get_logger

logger = get_logger(__name__)

FALLBACK_BASIC = "basic"
FALLBACK_RICH = "rich"

DEFAULT_NAMES = {
    LoyaltyCategory.LOYAL: "LOYALVIP",
    LoyaltyCategory.AT_RISK: "COMEBACK",
    LoyaltyCategory.CHURNED: "WELCOME",
}
DEFAULT_DISCOUNTS = {
    LoyaltyCategory.LOYAL: "15%",
    LoyaltyCategory.AT_RISK: "20%",
    LoyaltyCategory.CHURNED: "25%",
}
EXPIRATION_DAYS = {
    LoyaltyCategory.LOYAL: 7,
    LoyaltyCategory.AT_RISK: 10,
    LoyaltyCategory.CHURNED: 14,
}
BASIC_CONVERSION = {
    LoyaltyCategory.LOYAL: "25%",
    LoyaltyCategory.AT_RISK: "15%",
    LoyaltyCategory.CHURNED: "10%",
}
RICH_CONVERSION = {
    LoyaltyCategory.LOYAL: "30-40%",
    LoyaltyCategory.AT_RISK: "15-25%",
    LoyaltyCategory.CHURNED: "5-15%",
}
OFFER_THEME = {
    LoyaltyCategory.LOYAL: "loyalty",
    LoyaltyCategory.AT_RISK: "comeback",
    LoyaltyCategory.CHURNED: "welcome",
}


def _as_category(category: Union[LoyaltyCategory, str]) -> LoyaltyCategory:
    """Anything outside Loyal/At-Risk gets the churned (most generous) treatment."""
    try:
        return LoyaltyCategory(category)
    except ValueError:
        return LoyaltyCategory.CHURNED


def format_short_date(value: date) -> str:
    """en-US short date without zero padding, e.g. 3/7/2026."""
    return f"{value.month}/{value.day}/{value.year}"


def expiration_text(category: Union[LoyaltyCategory, str], today: Optional[date] = None) -> str:
    days = EXPIRATION_DAYS[_as_category(category)]
    return f"Valid until {format_short_date((today or date.today()) + timedelta(days=days))}"


def basic_fallback(
    category: Union[LoyaltyCategory, str], today: Optional[date] = None
) -> Offer:
    """Emergency offer keyed on category alone."""
    cat = _as_category(category)
    return Offer(
        name=DEFAULT_NAMES[cat],
        discount=DEFAULT_DISCOUNTS[cat],
        description=(
            f"Special {OFFER_THEME[cat]} offer just for you! "
            "Use this exclusive discount on your next purchase."
        ),
        expiration=expiration_text(cat, today),
        targetedCategory="all products",
        expectedConversionRate=BASIC_CONVERSION[cat],
    )


def rich_fallback(
    profile: ProfileLike,
    category: Union[LoyaltyCategory, str],
    today: Optional[date] = None,
) -> Offer:
    """Fallback that also weighs spend, inactivity and preferred categories."""
    p = normalize_profile(profile)
    cat = _as_category(category)

    if cat == LoyaltyCategory.LOYAL:
        discount = "20%" if p.totalSpent > 500 else "15%"
        name = "VIPSTATUS" if p.totalSpent > 1000 else "LOYALIST"
    elif cat == LoyaltyCategory.AT_RISK:
        discount = "25%"
        name = "COMEBACK" if p.daysInactive > 60 else "MISSYOU"
    else:
        discount = "30%"
        name = "WELCOME"

    if p.preferredCategories:
        target = p.preferredCategories[0]
        description = f"Exclusive {discount} discount on {target} products just for you."
    else:
        target = "bestsellers"
        description = (
            f"Enjoy {discount} off your next purchase as a valued {cat.value.lower()} customer."
        )

    return Offer(
        name=name,
        discount=discount,
        description=description,
        expiration=expiration_text(cat, today),
        targetedCategory=target,
        expectedConversionRate=RICH_CONVERSION[cat],
    )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def validate_offer(
    raw: Mapping[str, Any],
    profile: ProfileLike,
    category: Union[LoyaltyCategory, str],
    today: Optional[date] = None,
) -> Offer:
    """Keep every usable AI field and replace only the missing or implausible ones."""
    p = normalize_profile(profile)
    cat = _as_category(category)
    fields: Dict[str, str] = {key: _text(raw.get(key)) for key in Offer.model_fields}

    if len(fields["name"]) < 3:
        fields["name"] = DEFAULT_NAMES[cat]
    if len(fields["discount"]) < 2:
        fields["discount"] = DEFAULT_DISCOUNTS[cat]
    if len(fields["expiration"]) < 5:
        fields["expiration"] = expiration_text(cat, today)
    if len(fields["targetedCategory"]) < 2:
        fields["targetedCategory"] = (
            p.preferredCategories[0] if p.preferredCategories else "bestsellers"
        )
    if not fields["description"]:
        fields["description"] = f"Special offer for our {cat.value.lower()} customers."
    if not fields["expectedConversionRate"]:
        fields["expectedConversionRate"] = RICH_CONVERSION[cat]

    if p.daysInactive > 60:
        fields["description"] = f"We've missed you! {fields['description']}"

    return Offer(**fields)


DISCOUNT_PATTERN = re.compile(r"(\d+)%")
NAME_PATTERN = re.compile(r"\b([A-Z]{3,})\b")
EXPIRATION_PATTERNS = (
    re.compile(r"valid for (\d+) days", re.IGNORECASE),
    re.compile(r"expires in (\d+) days", re.IGNORECASE),
)


def salvage_offer(
    text: Optional[str],
    profile: ProfileLike,
    category: Union[LoyaltyCategory, str],
    today: Optional[date] = None,
) -> Optional[Offer]:
    """
    Pull an offer out of a free-text model answer that carried no JSON.

    A percentage is required; without one the text is not treated as an
    offer and None is returned. The name is the first all-caps word of the
    first line, the description the first line longer than 20 characters that
    does not label a field. Anything not found is filled by ``validate_offer``.
    """
    if not text:
        return None
    discount = DISCOUNT_PATTERN.search(text)
    if discount is None:
        return None

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    raw: Dict[str, Any] = {"discount": discount.group(0)}

    name = NAME_PATTERN.search(lines[0])
    if name:
        raw["name"] = name.group(1)

    for line in lines:
        lowered = line.lower()
        if len(line) > 20 and "name" not in lowered and "discount" not in lowered:
            raw["description"] = line
            break

    for pattern in EXPIRATION_PATTERNS:
        match = pattern.search(text)
        if match:
            raw["expiration"] = f"Valid for {match.group(1)} days"
            break

    return validate_offer(raw, profile, category, today)


class OfferService:
    """AI-first offer generation with a selectable deterministic fallback."""

    def __init__(
        self,
        generator: Optional[TextGenerator] = None,
        fallback: Optional[str] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        if generator is None:
            from services.bedrock_service import BedrockTextGenerator

            generator = BedrockTextGenerator()
        self.generator = generator
        self.fallback = (fallback or os.environ.get("OFFER_FALLBACK", FALLBACK_RICH)).lower()
        if self.fallback not in (FALLBACK_BASIC, FALLBACK_RICH):
            raise ValueError(f"Unknown offer fallback: {self.fallback}")
        self._today = today or date.today

    def generate_offer(self, profile: ProfileLike, loyalty: LoyaltyResult) -> Offer:
        """Return a validated AI offer, or the configured fallback."""
        p = normalize_profile(profile)
        category = loyalty.category
        today = self._today()

        try:
            text = self.generator.generate(self._build_prompt(p, loyalty))
        except Exception as exc:
            logger.warning(
                "Offer generation failed; using fallback offer",
                extra={"error": str(exc), "fallback": self.fallback, "category": category.value},
            )
            return self._fallback(p, category, today)

        try:
            raw = extract_json_object(text)
        except ValueError as exc:
            salvaged = salvage_offer(text, p, category, today)
            if salvaged is not None:
                logger.info(
                    "Offer salvaged from free-text response",
                    extra={"offer_name": salvaged.name, "category": category.value},
                )
                return salvaged
            logger.warning(
                "Offer response unparseable; using fallback offer",
                extra={"error": str(exc), "fallback": self.fallback, "category": category.value},
            )
            return self._fallback(p, category, today)

        offer = validate_offer(raw, p, category, today)
        logger.info("AI offer generated", extra={"offer_name": offer.name, "category": category.value})
        return offer

    def _fallback(self, profile: CustomerProfile, category: LoyaltyCategory, today: date) -> Offer:
        if self.fallback == FALLBACK_BASIC:
            return basic_fallback(category, today)
        return rich_fallback(profile, category, today)

    def _build_prompt(self, profile: CustomerProfile, loyalty: LoyaltyResult) -> str:
        category = loyalty.category
        preferred = ", ".join(profile.preferredCategories) or "None identified"
        return (
            "As a CRM marketing specialist, create a targeted e-commerce offer for this customer.\n"
            f"Loyalty Score: {loyalty.loyaltyScore}/100\n"
            f"Loyalty Category: {category.value}\n"
            f"Days Since Last Activity: {round(profile.daysInactive)}\n"
            f"Total Lifetime Spend: ${profile.totalSpent:.2f}\n"
            f"Average Order Value: ${profile.avgOrderValue:.2f}\n"
            f"Purchase Frequency: {profile.purchaseFrequency:.2f} orders per month\n"
            f"Total Purchases: {profile.purchaseCount}\n"
            f"Engagement Score: {profile.engagementScore:.2f}/1.0\n"
            f"Behavioral Segment: {behavioral_segment(profile, loyalty.loyaltyScore)}\n"
            f"Preferred Categories: {preferred}\n"
            f"Insights: {customer_insights(profile, category)}\n"
            f"Suggested discount range: {suggested_discount_range(profile, category)}\n"
            f"Timing strategy: {timing_strategy(profile)}\n"
            f"Recommended product categories: {', '.join(target_categories(profile))}\n"
            "Return only a JSON object with string fields: name (single uppercase word), "
            "discount, description (1-2 sentences), expiration, targetedCategory, "
            "expectedConversionRate. "
            f"Tailor the offer to their {category.value} status."
        )
