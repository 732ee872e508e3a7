"""Lightweight health check handler."""

import os
import json
from datetime import datetime, timezone

from utils.logging_config import SERVICE_NAME


def lambda_handler(event, context):
    """Return a simple 200 response to verify the stack is alive."""
    return {
        "statusCode": 200,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(
            {
                "status": "ok",
                "service": SERVICE_NAME,
                "environment": os.environ.get("ENVIRONMENT", "dev"),
                "offer_fallback": os.environ.get("OFFER_FALLBACK", "rich"),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ),
    }
