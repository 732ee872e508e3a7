"""
Deployment settings and CDK stack tests.

The stack test only runs where aws-cdk-lib is installed (the ``cdk`` extra).

Run with: pytest tests/unit/test_settings.py -v
"""

from pathlib import Path

import pytest

from infrastructure.config.settings import Settings


class TestSettings:
    def test_dev_defaults(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "dev")
        monkeypatch.delenv("OFFER_FALLBACK", raising=False)
        settings = Settings.from_environment()
        assert settings.customers_table_name == "customers-dev"
        assert settings.offer_fallback == "rich"
        assert settings.point_in_time_recovery is False

    def test_prod_overrides(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "prod")
        monkeypatch.setenv("OFFER_FALLBACK", "Basic")
        settings = Settings.from_environment()
        assert settings.customers_table_name == "customers-prod"
        assert settings.point_in_time_recovery is True
        assert settings.lambda_memory_mb == 512
        assert settings.offer_fallback == "basic"

    def test_invalid_fallback(self, monkeypatch):
        monkeypatch.setenv("OFFER_FALLBACK", "fancy")
        with pytest.raises(ValueError):
            Settings.from_environment()


class TestStack:
    def test_stack_synthesizes_table_and_routes(self, monkeypatch):
        cdk = pytest.importorskip("aws_cdk")
        from aws_cdk.assertions import Template

        from infrastructure.main_stack import LoyaltyStack

        # Asset paths are relative to the repo root; skip Docker bundling.
        monkeypatch.chdir(Path(__file__).resolve().parents[2])
        app = cdk.App(context={"aws:cdk:bundling-stacks": []})
        stack = LoyaltyStack(app, "LoyaltyStack-test", settings=Settings(environment="test"))
        template = Template.from_stack(stack)

        template.has_resource_properties(
            "AWS::DynamoDB::Table",
            {"KeySchema": [{"AttributeName": "uid", "KeyType": "HASH"}]},
        )
        template.resource_count_is("AWS::ApiGatewayV2::Route", 13)
