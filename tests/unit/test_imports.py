"""
Import validation tests.

These tests ensure all modules can be imported successfully, catching
issues like missing dependencies or circular imports BEFORE deployment.

Run with: pytest tests/unit/test_imports.py -v
"""

import importlib
from pathlib import Path

import pytest

SRC_PATH = Path(__file__).parent.parent.parent / "src"


class TestHandlerImports:
    """Verify all handler modules can be imported without errors."""

    @pytest.mark.parametrize(
        "module_name, entrypoints",
        [
            ("handlers.main", ["lambda_handler"]),
            ("handlers.health_check", ["lambda_handler"]),
            ("handlers.loyalty", ["lambda_handler", "evaluate_handler", "predict_handler", "admin_offer_handler"]),
            ("handlers.churn", ["lambda_handler", "customer_handler"]),
            ("handlers.offers", ["lambda_handler"]),
            ("handlers.engagement", ["purchase_handler", "history_handler", "feedback_handler", "engagement_handler"]),
            ("handlers.sentiment", ["lambda_handler"]),
        ],
    )
    def test_handler_import(self, module_name: str, entrypoints):
        """Each handler module should import without creating AWS clients."""
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            pytest.fail(f"Failed to import {module_name}: {e}")
        for name in entrypoints:
            assert hasattr(module, name), f"{module_name} missing {name}"


class TestServiceImports:
    """Verify all service modules can be imported."""

    @pytest.mark.parametrize(
        "module_name",
        [
            "services.bedrock_service",
            "services.scoring",
            "services.offer_service",
            "services.churn_service",
            "services.loyalty_service",
            "services.engagement_service",
            "services.sentiment_service",
            "repositories.dynamodb_repo",
        ],
    )
    def test_service_import(self, module_name: str):
        try:
            importlib.import_module(module_name)
        except ImportError as e:
            pytest.fail(f"Failed to import {module_name}: {e}")


class TestModelImports:
    @pytest.mark.parametrize("module_name", ["models", "models.loyalty", "models.customer"])
    def test_model_import(self, module_name: str):
        try:
            importlib.import_module(module_name)
        except ImportError as e:
            pytest.fail(f"Failed to import {module_name}: {e}")


class TestUtilImports:
    @pytest.mark.parametrize(
        "module_name",
        ["utils.logging_config", "utils.error_handling", "utils.validators", "utils.http"],
    )
    def test_util_import(self, module_name: str):
        try:
            importlib.import_module(module_name)
        except ImportError as e:
            pytest.fail(f"Failed to import {module_name}: {e}")


class TestNoSrcPrefix:
    """Ensure no modules use 'from src.' imports (breaks in Lambda)."""

    @pytest.mark.parametrize("package", ["handlers", "services", "models", "repositories", "utils"])
    def test_no_src_prefix(self, package: str):
        for py_file in (SRC_PATH / package).glob("*.py"):
            content = py_file.read_text()
            assert "from src." not in content, f"{py_file.name} contains 'from src.' import"
            assert "import src." not in content, f"{py_file.name} contains 'import src.' import"
