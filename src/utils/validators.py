"""Lightweight validation helpers shared by handlers and services."""

from typing import Any

from utils.error_handling import ValidationError


def ensure_present(value: Any, field: str) -> None:
    """Raise ValidationError if value is falsy."""
    if value in (None, "", []):
        raise ValidationError(f"{field} is required")


def ensure_rating(score: Any) -> int:
    """Feedback ratings are whole stars from 1 to 5; 0 means no rating was picked."""
    if isinstance(score, bool) or not isinstance(score, (int, float)) or score == 0:
        raise ValidationError("Please select a rating")
    if score != int(score) or not 1 <= score <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    return int(score)
