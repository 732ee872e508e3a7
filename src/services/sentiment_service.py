"""
Feedback sentiment analysis for the admin tools.

The model reads a free-text review and returns a sentiment score, themes and
suggested actions. An answer that does not parse yields a neutral placeholder
asking for manual review; a failed model call yields None.
"""

from __future__ import annotations

from typing import Optional

from models.customer import FeedbackSentiment, Priority
from services.bedrock_service import TextGenerator, extract_json_object
from utils.error_handling import ValidationError
from utils.logging_config import get_logger

logger = get_logger(__name__)


def unanalyzed_sentiment() -> FeedbackSentiment:
    return FeedbackSentiment(
        sentimentScore=0,
        keyThemes=["Unable to analyze"],
        actionableInsights=["Review feedback manually"],
        priority=Priority.MEDIUM,
    )


class SentimentService:
    """AI sentiment analysis with a neutral placeholder for unreadable answers."""

    def __init__(self, generator: Optional[TextGenerator] = None):
        if generator is None:
            from services.bedrock_service import BedrockTextGenerator

            generator = BedrockTextGenerator(temperature=0.2)
        self.generator = generator

    def analyze(self, feedback_text: Optional[str]) -> Optional[FeedbackSentiment]:
        if not feedback_text or not feedback_text.strip():
            raise ValidationError("Please provide feedback text for sentiment analysis")

        try:
            text = self.generator.generate(self._build_prompt(feedback_text.strip()))
        except Exception as exc:
            logger.error("Sentiment analysis failed", extra={"error": str(exc)})
            return None

        try:
            sentiment = FeedbackSentiment.model_validate(extract_json_object(text))
        except ValueError as exc:
            logger.warning("Sentiment response unparseable", extra={"error": str(exc)})
            return unanalyzed_sentiment()

        logger.info(
            "Feedback sentiment analyzed",
            extra={"sentiment_score": sentiment.sentimentScore, "priority": sentiment.priority.value},
        )
        return sentiment

    @staticmethod
    def _build_prompt(feedback_text: str) -> str:
        return (
            "Analyze this customer feedback and provide:\n"
            "1. A sentiment score from -1 (very negative) to 1 (very positive)\n"
            "2. Key themes or issues mentioned\n"
            "3. Actionable recommendations for the business\n"
            f'Customer feedback: "{feedback_text}"\n'
            "Return only a JSON object with fields: sentimentScore (number), keyThemes "
            '(list of strings), actionableInsights (list of strings), priority ("high", '
            '"medium" or "low").'
        )
