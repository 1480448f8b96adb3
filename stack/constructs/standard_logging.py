"""
CloudFront standard logging (v2) via a custom resource

Backed by lambdas/standard_logging_v2, which calls the CloudWatch Logs
delivery APIs CloudFormation does not cover.
"""

import os

from aws_cdk import (
    aws_cloudfront as cloudfront,
    aws_iam as iam,
    aws_lambda as _lambda,
    aws_s3 as s3,
    custom_resources as cr,
    CustomResource,
    Duration,
)
from aws_cdk.aws_lambda_python_alpha import PythonFunction
from constructs import Construct

LAMBDAS_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "lambdas")


class StandardLoggingV2(Construct):
    def __init__(
        self,
        scope: Construct,
        id: str,
        distribution: cloudfront.IDistribution,
        log_bucket: s3.IBucket,
        log_prefix: str,
        output_format: str = "parquet",
        **kwargs,
    ) -> None:
        super().__init__(scope, id, **kwargs)

        on_event = PythonFunction(
            self,
            "Handler",
            entry=os.path.join(LAMBDAS_DIR, "standard_logging_v2"),
            index="main.py",
            handler="handler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            architecture=_lambda.Architecture.ARM_64,
            timeout=Duration.minutes(1),
        )
        on_event.add_to_role_policy(
            iam.PolicyStatement(
                actions=[
                    "logs:PutDeliverySource",
                    "logs:PutDeliveryDestination",
                    "logs:CreateDelivery",
                    "logs:UpdateDeliveryConfiguration",
                    "logs:DeleteDelivery",
                    "logs:DeleteDeliverySource",
                    "logs:DeleteDeliveryDestination",
                    "logs:GetDelivery",
                    "logs:GetDeliverySource",
                    "logs:GetDeliveryDestination",
                    "cloudfront:AllowVendedLogDeliveryForResource",
                ],
                resources=["*"],
            )
        )
        # Vended log delivery updates the bucket policy on our behalf
        log_bucket.grant_put_acl(on_event)
        on_event.add_to_role_policy(
            iam.PolicyStatement(
                actions=["s3:GetBucketPolicy", "s3:PutBucketPolicy"],
                resources=[log_bucket.bucket_arn],
            )
        )

        provider = cr.Provider(self, "Provider", on_event_handler=on_event)

        self.resource = CustomResource(
            self,
            "Resource",
            service_token=provider.service_token,
            properties={
                "DistributionId": distribution.distribution_id,
                "DistributionArn": distribution.distribution_arn,
                "BucketArn": log_bucket.bucket_arn,
                "LogPrefix": log_prefix,
                "OutputFormat": output_format,
            },
        )

    @property
    def delivery_arn(self) -> str:
        return self.resource.get_att_string("DeliveryArn")
