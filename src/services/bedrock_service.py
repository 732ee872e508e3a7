"""
Amazon Bedrock text generation gateway.

Offer and churn services depend only on the ``TextGenerator`` protocol so tests
(and local runs without Bedrock access) can inject a stub. Model output is
free-form text; ``extract_json_object`` pulls the JSON payload out of it.
"""

from __future__ import annotations

import json
import os
import time
from typing import Any, Dict, Optional, Protocol

import boto3
from botocore.exceptions import ClientError

from utils.error_handling import RateLimitError
from utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL_ID = "anthropic.claude-3-haiku-20240307-v1:0"

# Bedrock error codes that mean "slow down" rather than "broken request".
THROTTLING_CODES = {"ThrottlingException", "TooManyRequestsException", "ServiceQuotaExceededException"}


class TextGenerator(Protocol):
    """Anything that turns a prompt into model text."""

    def generate(self, prompt: str) -> str:
        ...


def extract_json_object(text: Optional[str]) -> Dict[str, Any]:
    """
    Parse the substring between the first ``{`` and the last ``}``.

    Raises ValueError when there is no object or it does not parse.
    """
    if not text:
        raise ValueError("Model returned an empty response")
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise ValueError("Model response contains no JSON object")
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ValueError(f"Model returned unparseable JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Model JSON payload is not an object")
    return parsed


class BedrockTextGenerator:
    """Calls a Bedrock chat model and returns the first text block."""

    def __init__(
        self,
        model_id: Optional[str] = None,
        region: Optional[str] = None,
        max_tokens: int = 600,
        temperature: float = 0.4,
        client: Any = None,
    ):
        self.model_id = model_id or os.environ.get("MODEL_ID", DEFAULT_MODEL_ID)
        resolved_region = (
            region
            or os.environ.get("BEDROCK_REGION")
            or os.environ.get("AWS_REGION")
            or "eu-west-2"
        )
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = client or boto3.client("bedrock-runtime", region_name=resolved_region)

    def generate(self, prompt: str) -> str:
        """Invoke the model; throttling surfaces as RateLimitError."""
        start = time.perf_counter()
        try:
            response = self.client.invoke_model(
                modelId=self.model_id,
                contentType="application/json",
                accept="application/json",
                body=json.dumps(
                    {
                        "anthropic_version": "bedrock-2023-05-31",
                        "messages": [
                            {
                                "role": "user",
                                "content": [{"type": "text", "text": prompt}],
                            }
                        ],
                        "max_tokens": self.max_tokens,
                        "temperature": self.temperature,
                        "top_p": 0.9,
                    }
                ),
            )
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            if code in THROTTLING_CODES or status == 429:
                raise RateLimitError(f"Bedrock throttled the request (429): {code}") from exc
            raise
        finally:
            logger.info(
                "Bedrock call finished",
                extra={
                    "model_id": self.model_id,
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                },
            )

        payload = json.loads(response["body"].read())
        return self._first_text(payload)

    @staticmethod
    def _first_text(payload: Dict[str, Any]) -> str:
        """Anthropic models answer with ``content``; Converse-style payloads nest it under ``output``."""
        content = payload.get("content")
        if content is None:
            content = payload.get("output", {}).get("content", [])
        for block in content:
            if block.get("type", "text") == "text" and "text" in block:
                return block["text"]
        raise ValueError("Model response has no text content")
