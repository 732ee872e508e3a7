"""
Environment-specific configuration settings.

Cost-optimized defaults for development/testing.
"""

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Deployment settings for the loyalty stack."""

    environment: str = "dev"
    aws_region: str = "eu-west-2"

    # Bedrock text model used for offers and churn estimates.
    model_id: str = "anthropic.claude-3-haiku-20240307-v1:0"

    # basic | rich, see services.offer_service
    offer_fallback: str = "rich"

    # Customers table
    customers_table_name: str = "customers"
    point_in_time_recovery: bool = False

    # Lambda Configuration
    lambda_memory_mb: int = 256
    lambda_timeout_seconds: int = 30
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        region = os.environ.get("AWS_REGION", cls.aws_region)
        model_id = os.environ.get("MODEL_ID", cls.model_id)
        offer_fallback = os.environ.get("OFFER_FALLBACK", cls.offer_fallback).lower()
        if offer_fallback not in ("basic", "rich"):
            raise ValueError(f"OFFER_FALLBACK must be basic or rich, got {offer_fallback}")

        # Production overrides
        if env == "prod":
            return cls(
                environment="prod",
                aws_region=region,
                model_id=model_id,
                offer_fallback=offer_fallback,
                customers_table_name="customers-prod",
                point_in_time_recovery=True,
                lambda_memory_mb=512,
                lambda_timeout_seconds=60,
            )

        return cls(
            environment=env,
            aws_region=region,
            model_id=model_id,
            offer_fallback=offer_fallback,
            customers_table_name=f"customers-{env}",
            log_level=os.environ.get("LOG_LEVEL", cls.log_level),
        )
