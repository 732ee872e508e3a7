"""
Customer repository tests against a mocked DynamoDB Table resource.

Run with: pytest tests/unit/test_dynamodb_repo.py -v
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from models.customer import CustomerRecord, PurchaseRecord
from repositories.dynamodb_repo import CustomerRepository, from_dynamo, to_dynamo
from utils.error_handling import NotFoundError, RateLimitError


def _client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "UpdateItem")


@pytest.fixture
def table():
    return MagicMock()


@pytest.fixture
def repo(table):
    return CustomerRepository(table_name="customers-test", table=table)


class TestDecimalConversion:
    def test_floats_become_decimals(self):
        converted = to_dynamo({"totalSpent": 12.5, "purchases": 2, "tags": [0.1]})
        assert converted == {"totalSpent": Decimal("12.5"), "purchases": 2, "tags": [Decimal("0.1")]}

    def test_decimals_become_numbers(self):
        data = from_dynamo({"purchases": Decimal("3"), "score": Decimal("0.52"), "items": [Decimal("1")]})
        assert data == {"purchases": 3, "score": 0.52, "items": [1]}
        assert isinstance(data["purchases"], int)


class TestGet:
    def test_returns_record(self, repo, table):
        table.get_item.return_value = {
            "Item": {
                "uid": "u1",
                "purchases": Decimal("2"),
                "totalSpent": Decimal("45.5"),
                "engagementScore": Decimal("0.6"),
                "purchaseHistory": [
                    {"productId": "p1", "productName": "Mug", "amount": Decimal("10"), "timestamp": "t"}
                ],
                "legacyField": "kept",
            }
        }
        record = repo.get("u1")
        table.get_item.assert_called_once_with(Key={"uid": "u1"}, ConsistentRead=True)
        assert record.purchases == 2
        assert record.totalSpent == 45.5
        assert record.purchaseHistory[0].productName == "Mug"
        assert record.model_extra["legacyField"] == "kept"

    def test_missing_record_is_none(self, repo, table):
        table.get_item.return_value = {}
        assert repo.get("ghost") is None

    def test_throttling_is_rate_limit(self, repo, table):
        table.get_item.side_effect = _client_error("ProvisionedThroughputExceededException")
        with pytest.raises(RateLimitError):
            repo.get("u1")


class TestPut:
    def test_writes_without_none_fields(self, repo, table):
        repo.put(CustomerRecord(uid="u1", totalSpent=19.99, engagementScore=0.5))
        item = table.put_item.call_args.kwargs["Item"]
        assert item["uid"] == "u1"
        assert item["totalSpent"] == Decimal("19.99")
        assert "loyaltyScore" not in item
        assert "aiOffer" not in item


class TestUpdate:
    def test_builds_set_expression(self, repo, table):
        repo.update("u1", {"loyaltyScore": 72, "category": "Loyal"})
        kwargs = table.update_item.call_args.kwargs
        assert kwargs["Key"] == {"uid": "u1"}
        assert kwargs["UpdateExpression"] == "SET #f0 = :f0, #f1 = :f1"
        assert kwargs["ConditionExpression"] == "attribute_exists(#uid)"
        assert kwargs["ExpressionAttributeNames"] == {
            "#uid": "uid",
            "#f0": "loyaltyScore",
            "#f1": "category",
        }
        assert kwargs["ExpressionAttributeValues"] == {":f0": 72, ":f1": "Loyal"}

    def test_append_uses_list_append(self, repo, table):
        repo.update("u1", {"purchases": 3}, append={"purchaseHistory": [{"amount": 9.5}]})
        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == (
            "SET #f0 = :f0, #a0 = list_append(if_not_exists(#a0, :empty), :a0)"
        )
        values = kwargs["ExpressionAttributeValues"]
        assert values[":a0"] == [{"amount": Decimal("9.5")}]
        assert values[":empty"] == []

    def test_empty_update_is_a_no_op(self, repo, table):
        repo.update("u1", {})
        table.update_item.assert_not_called()

    def test_missing_record_raises_not_found(self, repo, table):
        table.update_item.side_effect = _client_error("ConditionalCheckFailedException")
        with pytest.raises(NotFoundError) as exc_info:
            repo.update("ghost", {"loyaltyScore": 10})
        assert exc_info.value.status_code == 404

    def test_other_errors_propagate(self, repo, table):
        table.update_item.side_effect = _client_error("ValidationException")
        with pytest.raises(ClientError):
            repo.update("u1", {"loyaltyScore": 10})

    def test_append_purchase(self, repo, table):
        purchase = PurchaseRecord(productId="p1", productName="Mug", amount=12.0, timestamp="2026-03-01T00:00:00+00:00")
        repo.append_purchase("u1", purchase)
        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #a0 = list_append(if_not_exists(#a0, :empty), :a0)"
        assert kwargs["ExpressionAttributeValues"][":a0"][0]["productId"] == "p1"

    def test_append_purchase_sets_counters_in_same_write(self, repo, table):
        purchase = PurchaseRecord(productId="p2", productName="Lamp", amount=30.0, timestamp="2026-03-01T00:00:00+00:00")
        repo.append_purchase("u1", purchase, fields={"purchases": 4, "totalSpent": 130.0})
        table.update_item.assert_called_once()
        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == (
            "SET #f0 = :f0, #f1 = :f1, #a0 = list_append(if_not_exists(#a0, :empty), :a0)"
        )
        assert kwargs["ExpressionAttributeValues"][":f1"] == Decimal("130.0")
        assert kwargs["ExpressionAttributeValues"][":a0"][0]["productName"] == "Lamp"
