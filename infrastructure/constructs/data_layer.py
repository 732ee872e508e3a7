"""
Data layer construct: DynamoDB table holding one document per customer.
"""

from aws_cdk import (
    RemovalPolicy,
    aws_dynamodb as dynamodb,
)
from constructs import Construct


class DataLayerConstruct(Construct):
    """Provision the customers table."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        table_name: str,
        point_in_time_recovery: bool = False,
    ) -> None:
        super().__init__(scope, construct_id)

        # Keyed by the opaque auth uid; purchase history lives inside the item.
        self.customers_table = dynamodb.Table(
            self,
            "Customers",
            table_name=table_name,
            partition_key=dynamodb.Attribute(name="uid", type=dynamodb.AttributeType.STRING),
            billing_mode=dynamodb.BillingMode.PAY_PER_REQUEST,
            point_in_time_recovery=point_in_time_recovery,
            removal_policy=RemovalPolicy.RETAIN if environment == "prod" else RemovalPolicy.DESTROY,
        )
