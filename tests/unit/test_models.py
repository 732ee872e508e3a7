"""
Pydantic model validation tests.

Ensures all models validate correctly and reject invalid data.
No AWS connection required.

Run with: pytest tests/unit/test_models.py -v
"""

import pytest
from pydantic import ValidationError


class TestCustomerProfile:
    """Test CustomerProfile validation."""

    def test_defaults(self):
        from models.loyalty import CustomerProfile

        profile = CustomerProfile()
        assert profile.purchaseCount == 0
        assert profile.engagementScore is None
        assert profile.preferredCategories == []

    def test_none_counts_as_zero(self):
        from models.loyalty import CustomerProfile

        profile = CustomerProfile(totalSpent=None, daysInactive=None)
        assert profile.totalSpent == 0
        assert profile.daysInactive == 0

    @pytest.mark.parametrize(
        "field, value",
        [
            ("purchaseCount", -1),
            ("totalSpent", -0.01),
            ("engagementScore", 1.5),
            ("feedbackScore", 6),
            ("daysInactive", "yesterday"),
        ],
    )
    def test_rejects_out_of_range(self, field, value):
        from models.loyalty import CustomerProfile

        with pytest.raises(ValidationError):
            CustomerProfile(**{field: value})

    def test_profile_is_immutable(self):
        from models.loyalty import CustomerProfile

        profile = CustomerProfile(purchaseCount=1)
        with pytest.raises(ValidationError):
            profile.purchaseCount = 2


class TestChurnRisk:
    """Test ChurnRisk normalization."""

    @pytest.mark.parametrize(
        "value, expected",
        [(62, 62), (44.5, 45), ("80%", 80), (-5, 0), (250, 100)],
    )
    def test_probability_is_rounded_and_clamped(self, value, expected):
        from models.loyalty import ChurnRisk

        assert ChurnRisk(churnProbability=value).churnProbability == expected

    @pytest.mark.parametrize("value, level", [(71, "high"), (70, "medium"), (41, "medium"), (40, "low")])
    def test_risk_level_follows_probability(self, value, level):
        from models.loyalty import ChurnRisk

        risk = ChurnRisk(churnProbability=value, riskLevel="low" if level != "low" else "high")
        assert risk.riskLevel.value == level

    def test_rejects_non_numeric_probability(self):
        from models.loyalty import ChurnRisk

        with pytest.raises(ValidationError):
            ChurnRisk(churnProbability="likely")


class TestOffer:
    def test_requires_all_fields(self):
        from models.loyalty import Offer

        with pytest.raises(ValidationError):
            Offer(name="SPRING", discount="10%")


class TestLoyaltyResult:
    def test_score_bounds(self):
        from models.loyalty import LoyaltyResult

        with pytest.raises(ValidationError):
            LoyaltyResult(loyaltyScore=101, category="Loyal")
        with pytest.raises(ValidationError):
            LoyaltyResult(loyaltyScore=50, category="Gold")

    def test_json_uses_category_labels(self):
        from models.loyalty import LoyaltyCategory, LoyaltyResult

        result = LoyaltyResult(loyaltyScore=40, category=LoyaltyCategory.AT_RISK)
        assert '"category":"At-Risk"' in result.model_dump_json()


class TestCustomerRecord:
    """Test the stored customer document."""

    def test_minimal_record(self):
        from models.customer import CustomerRecord

        record = CustomerRecord(uid="u1")
        assert record.purchases == 0
        assert record.purchaseHistory == []
        assert record.aiOffer is None

    def test_nested_results_are_parsed(self):
        from models.customer import CustomerRecord

        record = CustomerRecord.model_validate(
            {
                "uid": "u1",
                "churnRisk": {"churnProbability": 75, "riskLevel": "low"},
                "aiOffer": {
                    "name": "LOYALVIP",
                    "discount": "15%",
                    "description": "d",
                    "expiration": "Valid until 3/8/2026",
                    "targetedCategory": "all products",
                    "expectedConversionRate": "25%",
                },
            }
        )
        assert record.churnRisk.riskLevel.value == "high"
        assert record.aiOffer.name == "LOYALVIP"

    def test_legacy_four_field_offer_loads(self):
        from models.customer import CustomerRecord

        record = CustomerRecord.model_validate(
            {
                "uid": "u1",
                "aiOffer": {
                    "name": "COMEBACK",
                    "discount": "20%",
                    "description": "We want you back.",
                    "expiration": "Valid until 1/15/2025",
                },
            }
        )
        assert record.aiOffer.name == "COMEBACK"
        assert record.aiOffer.targetedCategory == ""
        assert record.aiOffer.expectedConversionRate == ""


class TestPurchaseRecord:
    def test_quantity_defaults_to_one(self):
        from models.customer import PurchaseRecord

        purchase = PurchaseRecord(productId="p1", productName="Mug", amount=9.99)
        assert purchase.quantity == 1
        assert purchase.timestamp

    @pytest.mark.parametrize("field, value", [("quantity", 0), ("amount", -1)])
    def test_rejects_invalid_values(self, field, value):
        from models.customer import PurchaseRecord

        data = {"productId": "p1", "productName": "Mug", "amount": 9.99}
        data[field] = value
        with pytest.raises(ValidationError):
            PurchaseRecord(**data)


class TestFeedbackSentiment:
    def test_defaults(self):
        from models.customer import FeedbackSentiment, Priority

        sentiment = FeedbackSentiment()
        assert sentiment.sentimentScore == 0.0
        assert sentiment.priority == Priority.MEDIUM

    @pytest.mark.parametrize("value, expected", [(-4, -1.0), (0.25, 0.25), (2, 1.0), (None, 0.0)])
    def test_score_is_clamped(self, value, expected):
        from models.customer import FeedbackSentiment

        assert FeedbackSentiment(sentimentScore=value).sentimentScore == expected

    def test_rejects_unknown_priority(self):
        from models.customer import FeedbackSentiment

        with pytest.raises(ValidationError):
            FeedbackSentiment(priority="urgent")
