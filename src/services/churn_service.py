"""
Churn risk estimation service.

The model is asked first; its answer is thrown away when it does not parse or
when it looks like a canned default (exactly 95 or exactly 0). The additive
fallback below is what the storefront relies on in practice.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from models.loyalty import ChurnRisk, CustomerProfile
from services.bedrock_service import TextGenerator, extract_json_object
from services.scoring import ProfileLike, normalize_profile
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Probabilities the model tends to emit when it ignores the data.
SUSPICIOUS_PROBABILITIES = (95, 0)

NEW_USER = "New user with no purchase history"
DORMANT_SIGNUP = "No purchases despite being registered for some time"
EXTENDED_INACTIVITY = "Extended inactivity (90+ days)"
SIGNIFICANT_INACTIVITY = "Significant inactivity (60+ days)"
MODERATE_INACTIVITY = "Moderate inactivity (30+ days)"
VERY_LOW_ENGAGEMENT = "Very low engagement score"
LOW_ENGAGEMENT = "Below average engagement"
STOPPED_PURCHASING = "Customer has stopped making purchases"
VERY_LOW_FREQUENCY = "Very low purchase frequency"
INFREQUENT_PURCHASING = "Infrequent purchasing pattern"
LOW_ORDER_VALUE = "Low average order value"

GENERIC_STRATEGIES = (
    "Request feedback to understand pain points",
    "Highlight new products or features since last visit",
)


def _normalize(profile: ProfileLike) -> CustomerProfile:
    # Churn treats an unknown engagement score as no engagement at all.
    return normalize_profile(profile, default_engagement=0.0)


def retention_strategies(risk_factors: Sequence[str]) -> List[str]:
    """Map triggered risk factors to retention plays; always at least two."""
    factors = set(risk_factors)
    strategies: List[str] = []

    if factors & {EXTENDED_INACTIVITY, SIGNIFICANT_INACTIVITY}:
        strategies.append("Send re-engagement email with special offer")
        strategies.append("Provide significant win-back discount")
    elif MODERATE_INACTIVITY in factors:
        strategies.append("Send reminder email with personalized recommendations")

    if factors & {VERY_LOW_ENGAGEMENT, LOW_ENGAGEMENT}:
        strategies.append("Improve product onboarding experience")
        strategies.append("Offer personalized content based on past purchases")

    if factors & {VERY_LOW_FREQUENCY, INFREQUENT_PURCHASING}:
        strategies.append("Create time-limited offers to encourage immediate purchase")

    if LOW_ORDER_VALUE in factors:
        strategies.append("Provide bundle discounts to increase order value")

    if len(strategies) < 2:
        strategies.extend(GENERIC_STRATEGIES)
    return strategies


def calculate_basic_churn_risk(profile: ProfileLike) -> ChurnRisk:
    """Additive inactivity/engagement/frequency heuristic, clamped to 0..100."""
    p = _normalize(profile)
    days = p.daysInactive
    probability = 0.0
    factors: List[str] = []

    if p.purchaseCount == 0:
        if days < 7:
            probability = 50
            factors.append(NEW_USER)
        else:
            probability = min(50 + days / 2, 95)
            factors.append(DORMANT_SIGNUP)
    else:
        if days > 90:
            probability += 60
            factors.append(EXTENDED_INACTIVITY)
        elif days > 60:
            probability += 40
            factors.append(SIGNIFICANT_INACTIVITY)
        elif days > 30:
            probability += 20
            factors.append(MODERATE_INACTIVITY)

        if p.engagementScore < 0.2:
            probability += 30
            factors.append(VERY_LOW_ENGAGEMENT)
        elif p.engagementScore < 0.5:
            probability += 15
            factors.append(LOW_ENGAGEMENT)

        if p.purchaseFrequency == 0:
            probability += 20
            factors.append(STOPPED_PURCHASING)
        elif p.purchaseFrequency < 0.3:
            probability += 15
            factors.append(VERY_LOW_FREQUENCY)
        elif p.purchaseFrequency < 0.7:
            probability += 10
            factors.append(INFREQUENT_PURCHASING)

    if 0 < p.avgOrderValue < 10:
        probability += 10
        factors.append(LOW_ORDER_VALUE)

    return ChurnRisk(
        churnProbability=probability,
        keyRiskFactors=factors,
        retentionStrategies=retention_strategies(factors),
    )


class ChurnService:
    """AI-first churn estimation with a validated deterministic fallback."""

    def __init__(self, generator: Optional[TextGenerator] = None):
        if generator is None:
            from services.bedrock_service import BedrockTextGenerator

            generator = BedrockTextGenerator(temperature=0.2)
        self.generator = generator

    def estimate_churn(self, profile: ProfileLike) -> ChurnRisk:
        p = _normalize(profile)
        try:
            text = self.generator.generate(self._build_prompt(p))
            raw = extract_json_object(text)
            if raw.get("churnProbability") in SUSPICIOUS_PROBABILITIES:
                logger.warning(
                    "Suspicious churn probability from model; using fallback",
                    extra={"churn_probability": raw.get("churnProbability")},
                )
                return calculate_basic_churn_risk(p)
            risk = ChurnRisk.model_validate(raw)
        except ValueError as exc:
            logger.warning("Churn response unparseable; using fallback", extra={"error": str(exc)})
            return calculate_basic_churn_risk(p)
        except Exception as exc:
            logger.warning("Churn prediction failed; using fallback", extra={"error": str(exc)})
            return calculate_basic_churn_risk(p)

        logger.info(
            "AI churn estimate accepted",
            extra={"churn_probability": risk.churnProbability, "risk_level": risk.riskLevel.value},
        )
        return risk

    def _build_prompt(self, profile: CustomerProfile) -> str:
        context = []
        if profile.purchaseCount == 0:
            context.append("Customer has made no purchases yet")
        if profile.purchaseFrequency == 0:
            context.append("Purchase frequency is zero")
        if profile.daysInactive > 90:
            context.append(f"Customer inactive for {round(profile.daysInactive)} days")
        special = f"- Special context: {', '.join(context)}\n" if context else ""

        return (
            "Analyze this customer data and calculate a precise churn probability (0-100%):\n"
            f"- Days since last purchase: {round(profile.daysInactive)}\n"
            f"- Total purchases: {profile.purchaseCount}\n"
            f"- Engagement score (0-1): {profile.engagementScore}\n"
            f"- Average order value: ${profile.avgOrderValue:.2f}\n"
            f"- Purchase frequency: {profile.purchaseFrequency:.2f} orders per month\n"
            f"{special}"
            "Guidelines: new customers with zero purchases are judged on engagement and "
            "inactivity; zero purchase frequency with previous purchases indicates high risk; "
            "longer inactivity and lower engagement raise the risk.\n"
            "Return ONLY a JSON object with fields: churnProbability (a number 0-100 derived "
            'from the data, NOT a default value), riskLevel ("high" if >70, "medium" if >40, '
            'otherwise "low"), keyRiskFactors (list of strings), retentionStrategies '
            "(list of strings)."
        )
