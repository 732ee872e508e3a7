"""
Main CDK Stack for the loyalty engine.
"""

from aws_cdk import (
    Stack,
    Tags,
    CfnOutput,
    aws_iam as iam,
)
from constructs import Construct

from infrastructure.constructs.data_layer import DataLayerConstruct
from infrastructure.constructs.api_layer import ApiLayerConstruct
from infrastructure.config.settings import Settings


class LoyaltyStack(Stack):
    """Main stack wiring the customers table, API Lambda and Bedrock access."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        settings: Settings,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        Tags.of(self).add("Project", "loyalty-engine")
        Tags.of(self).add("Environment", settings.environment)
        Tags.of(self).add("ManagedBy", "cdk")

        data_construct = DataLayerConstruct(
            self,
            "DataLayer",
            environment=settings.environment,
            table_name=settings.customers_table_name,
            point_in_time_recovery=settings.point_in_time_recovery,
        )

        api_construct = ApiLayerConstruct(
            self,
            "ApiLayer",
            environment=settings.environment,
            customers_table_name=data_construct.customers_table.table_name,
            model_id=settings.model_id,
            offer_fallback=settings.offer_fallback,
            log_level=settings.log_level,
            lambda_memory_mb=settings.lambda_memory_mb,
            lambda_timeout_seconds=settings.lambda_timeout_seconds,
        )

        data_construct.customers_table.grant_read_write_data(api_construct.main_lambda)

        # Offers and churn estimates call a Bedrock text model.
        api_construct.main_lambda.add_to_role_policy(
            iam.PolicyStatement(
                actions=["bedrock:InvokeModel"],
                resources=[
                    f"arn:aws:bedrock:{self.region}::foundation-model/{settings.model_id}"
                ],
            )
        )

        CfnOutput(self, "ApiEndpoint", value=api_construct.api.api_endpoint)
        CfnOutput(self, "CustomersTable", value=data_construct.customers_table.table_name)
