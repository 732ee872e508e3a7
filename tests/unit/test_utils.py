"""
Tests for request parsing, validation helpers and error responses.

Run with: pytest tests/unit/test_utils.py -v
"""

import json
import logging

import pytest

from utils.error_handling import NotFoundError, RateLimitError, ValidationError, to_response
from utils.http import customer_id, json_response, parse_body
from utils.logging_config import get_logger
from utils.validators import ensure_present, ensure_rating


class TestParseBody:
    def test_json_string_body(self):
        assert parse_body({"body": '{"a": 1}'}) == {"a": 1}

    def test_direct_invocation_strips_envelope(self):
        event = {"purchaseCount": 2, "requestContext": {}, "pathParameters": {"id": "u1"}}
        assert parse_body(event) == {"purchaseCount": 2}

    @pytest.mark.parametrize("body", ["{broken", "[1, 2]", '"text"'])
    def test_rejects_non_object_bodies(self, body):
        with pytest.raises(ValidationError):
            parse_body({"body": body})


class TestCustomerId:
    def test_path_parameter(self):
        assert customer_id({"pathParameters": {"id": "u1"}}) == "u1"

    def test_query_parameter(self):
        assert customer_id({"queryStringParameters": {"customer_id": "u2"}}) == "u2"

    def test_missing(self):
        assert customer_id({"pathParameters": None}) is None


class TestResponses:
    def test_json_response_serializes_dicts(self):
        resp = json_response(201, {"ok": True})
        assert resp["statusCode"] == 201
        assert json.loads(resp["body"]) == {"ok": True}

    def test_json_response_passes_strings_through(self):
        assert json_response(200, '{"already": "json"}')["body"] == '{"already": "json"}'

    @pytest.mark.parametrize(
        "error, status",
        [(NotFoundError(), 404), (ValidationError(), 422), (RateLimitError(), 429)],
    )
    def test_error_status_codes(self, error, status):
        resp = to_response(error)
        assert resp["statusCode"] == status
        assert json.loads(resp["body"])["status"] == "error"


class TestValidators:
    def test_ensure_present(self):
        ensure_present("u1", "user_id")
        with pytest.raises(ValidationError, match="user_id is required"):
            ensure_present("", "user_id")

    @pytest.mark.parametrize("score", [1, 5, 3.0])
    def test_valid_ratings(self, score):
        assert ensure_rating(score) == int(score)

    @pytest.mark.parametrize("score", [None, 0, "4", True])
    def test_no_rating_selected(self, score):
        with pytest.raises(ValidationError, match="Please select a rating"):
            ensure_rating(score)

    @pytest.mark.parametrize("score", [6, -2, 4.5])
    def test_out_of_range(self, score):
        with pytest.raises(ValidationError, match="between 1 and 5"):
            ensure_rating(score)


class TestLogging:
    def test_logger_is_configured_once(self):
        first = get_logger("loyalty.test")
        second = get_logger("loyalty.test")
        assert first is second
        assert len(first.handlers) == 1
        assert first.propagate is False
        assert first.level in (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR)
