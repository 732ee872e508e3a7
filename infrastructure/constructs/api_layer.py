"""
API layer construct: shared Lambda + HTTP API routes.

A single Lambda keeps warm service instances and reduces cold start costs.
Uses Docker bundling for dependencies (runs in CI/CD pipeline).
"""

from aws_cdk import (
    BundlingOptions,
    Duration,
    aws_lambda as _lambda,
    aws_apigatewayv2 as apigw,
    aws_apigatewayv2_integrations as integrations,
    aws_logs as logs,
)
from constructs import Construct

ROUTES = (
    (apigw.HttpMethod.GET, "/health"),
    (apigw.HttpMethod.GET, "/customers/{id}/loyalty"),
    (apigw.HttpMethod.GET, "/customers/{id}/churn"),
    (apigw.HttpMethod.POST, "/customers/{id}/purchases"),
    (apigw.HttpMethod.GET, "/customers/{id}/purchases"),
    (apigw.HttpMethod.POST, "/customers/{id}/feedback"),
    (apigw.HttpMethod.POST, "/customers/{id}/engagement"),
    (apigw.HttpMethod.POST, "/loyalty/evaluate"),
    (apigw.HttpMethod.POST, "/loyalty/predict"),
    (apigw.HttpMethod.POST, "/loyalty/offer"),
    (apigw.HttpMethod.POST, "/churn/predict"),
    (apigw.HttpMethod.POST, "/offers/generate"),
    (apigw.HttpMethod.POST, "/feedback/sentiment"),
)


class ApiLayerConstruct(Construct):
    """Expose loyalty endpoints via HTTP API."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        environment: str,
        customers_table_name: str,
        model_id: str,
        offer_fallback: str,
        log_level: str = "INFO",
        lambda_memory_mb: int = 256,
        lambda_timeout_seconds: int = 30,
    ) -> None:
        super().__init__(scope, construct_id)

        # Installs pydantic and python-json-logger next to the handler code.
        bundled_code = _lambda.Code.from_asset(
            "src",
            bundling=BundlingOptions(
                image=_lambda.Runtime.PYTHON_3_12.bundling_image,
                command=[
                    "bash", "-c",
                    "pip install pydantic python-json-logger -t /asset-output && "
                    "cp -r . /asset-output"
                ],
            ),
        )

        self.main_lambda = _lambda.Function(
            self,
            "ApiHandler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            handler="handlers.main.lambda_handler",
            code=bundled_code,
            memory_size=lambda_memory_mb,
            timeout=Duration.seconds(lambda_timeout_seconds),
            architecture=_lambda.Architecture.X86_64,
            environment={
                "ENVIRONMENT": environment,
                "CUSTOMERS_TABLE": customers_table_name,
                "MODEL_ID": model_id,
                "OFFER_FALLBACK": offer_fallback,
                "LOG_LEVEL": log_level,
            },
            log_retention=logs.RetentionDays.ONE_WEEK,
        )

        self.api = apigw.HttpApi(
            self,
            "HttpApi",
            api_name=f"loyalty-api-{environment}",
            cors_preflight=apigw.CorsPreflightOptions(
                allow_origins=["*"],
                allow_methods=[apigw.CorsHttpMethod.GET, apigw.CorsHttpMethod.POST],
                allow_headers=["Content-Type", "Authorization"],
            ),
        )

        integration = integrations.HttpLambdaIntegration(
            "LambdaIntegration", self.main_lambda
        )

        for method, path in ROUTES:
            self.api.add_routes(
                path=path,
                methods=[method],
                integration=integration,
            )
