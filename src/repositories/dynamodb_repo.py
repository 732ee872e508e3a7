"""DynamoDB repository for per-customer loyalty records."""

import json
import os
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

import boto3
from botocore.exceptions import ClientError

from models.customer import CustomerRecord, PurchaseRecord
from utils.error_handling import NotFoundError, RateLimitError
from utils.logging_config import get_logger

logger = get_logger(__name__)

THROTTLING_CODES = {"ProvisionedThroughputExceededException", "ThrottlingException", "RequestLimitExceeded"}


def to_dynamo(data: Any) -> Any:
    """DynamoDB rejects floats; round-trip through JSON to get Decimals."""
    return json.loads(json.dumps(data, default=str), parse_float=Decimal)


def from_dynamo(data: Any) -> Any:
    """Turn Decimals back into ints/floats."""
    if isinstance(data, list):
        return [from_dynamo(item) for item in data]
    if isinstance(data, dict):
        return {key: from_dynamo(value) for key, value in data.items()}
    if isinstance(data, Decimal):
        return int(data) if data == data.to_integral_value() else float(data)
    return data


class CustomerRepository:
    """get / set / partial update / append-only purchase history, keyed by uid."""

    def __init__(self, table_name: Optional[str] = None, table: Any = None):
        self.table_name = table_name or os.environ.get("CUSTOMERS_TABLE", "customers")
        self.table = table or boto3.resource("dynamodb").Table(self.table_name)

    def get(self, uid: str) -> Optional[CustomerRecord]:
        """Fetch a record, or None when the customer has never been seen."""
        try:
            resp = self.table.get_item(Key={"uid": uid}, ConsistentRead=True)
        except ClientError as exc:
            raise self._translate(exc)
        item = resp.get("Item")
        if not item:
            return None
        return CustomerRecord.model_validate(from_dynamo(item))

    def put(self, record: CustomerRecord) -> None:
        """Create or fully replace a record."""
        try:
            self.table.put_item(Item=to_dynamo(record.model_dump(mode="json", exclude_none=True)))
        except ClientError as exc:
            raise self._translate(exc)

    def update(
        self,
        uid: str,
        fields: Mapping[str, Any],
        append: Optional[Mapping[str, List[Any]]] = None,
    ) -> None:
        """
        Set ``fields`` and append to list attributes on an existing record.

        Raises NotFoundError when the record does not exist; updates never
        create documents.
        """
        names: Dict[str, str] = {"#uid": "uid"}
        values: Dict[str, Any] = {}
        clauses: List[str] = []

        for idx, (name, value) in enumerate(fields.items()):
            names[f"#f{idx}"] = name
            values[f":f{idx}"] = value
            clauses.append(f"#f{idx} = :f{idx}")

        for idx, (name, items) in enumerate((append or {}).items()):
            names[f"#a{idx}"] = name
            values[f":a{idx}"] = list(items)
            values[":empty"] = []
            clauses.append(f"#a{idx} = list_append(if_not_exists(#a{idx}, :empty), :a{idx})")

        if not clauses:
            return

        try:
            self.table.update_item(
                Key={"uid": uid},
                UpdateExpression="SET " + ", ".join(clauses),
                ConditionExpression="attribute_exists(#uid)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=to_dynamo(values),
            )
        except ClientError as exc:
            raise self._translate(exc, uid)

    def append_purchase(
        self,
        uid: str,
        purchase: PurchaseRecord,
        fields: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Append one entry to purchaseHistory, setting ``fields`` in the same write."""
        self.update(
            uid,
            fields or {},
            append={"purchaseHistory": [purchase.model_dump(mode="json", exclude_none=True)]},
        )

    def _translate(self, exc: ClientError, uid: Optional[str] = None) -> Exception:
        code = exc.response.get("Error", {}).get("Code", "")
        if code == "ConditionalCheckFailedException":
            return NotFoundError(f"Customer {uid} not found")
        if code in THROTTLING_CODES:
            logger.warning("DynamoDB throttled request", extra={"table": self.table_name, "code": code})
            return RateLimitError(f"DynamoDB throttled the request (429): {code}")
        return exc
