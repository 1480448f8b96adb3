"""
CloudFront standard logging (v2) custom resource

CloudFormation has no resource for CloudWatch Logs vended delivery of
CloudFront access logs, so this handler (behind a CDK Provider) wires it up:

    delivery source      cf-<DistributionId>            (ACCESS_LOGS of the distribution)
    delivery destination cf-<DistributionId>-<bucket>   (the log bucket)
    delivery             source -> destination, suffixPath = LogPrefix
"""

import logging
from dataclasses import dataclass

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger()
logger.setLevel(logging.INFO)

DEFAULT_OUTPUT_FORMAT = "parquet"
MAX_DELIVERY_DESTINATION_NAME_LENGTH = 60
DELIVERY_DESTINATION_PREFIX = "cf-"
DELIVERY_DESTINATION_DELIMITER = "-"


@dataclass(frozen=True)
class LoggingConfiguration:
    source_name: str
    destination_name: str
    output_format: str


def create_logging_configuration(props: dict) -> LoggingConfiguration:
    distribution_id = props["DistributionId"]
    bucket_name = props["BucketArn"].removeprefix("arn:aws:s3:::")

    max_bucket_name_length = (
        MAX_DELIVERY_DESTINATION_NAME_LENGTH
        - len(DELIVERY_DESTINATION_PREFIX)
        - len(DELIVERY_DESTINATION_DELIMITER)
        - len(distribution_id)
    )

    return LoggingConfiguration(
        source_name=f"cf-{distribution_id}",
        destination_name=(
            f"{DELIVERY_DESTINATION_PREFIX}{distribution_id}"
            f"{DELIVERY_DESTINATION_DELIMITER}{bucket_name[:max_bucket_name_length]}"
        ),
        output_format=props.get("OutputFormat") or DEFAULT_OUTPUT_FORMAT,
    )


def _logs_client():
    return boto3.client("logs")


def setup_logging(props: dict, config: LoggingConfiguration) -> dict:
    logs = _logs_client()

    logs.put_delivery_source(
        name=config.source_name,
        resourceArn=props["DistributionArn"],
        logType="ACCESS_LOGS",
    )

    destination = logs.put_delivery_destination(
        name=config.destination_name,
        outputFormat=config.output_format,
        deliveryDestinationConfiguration={"destinationResourceArn": props["BucketArn"]},
    )
    destination_arn = destination.get("deliveryDestination", {}).get("arn")
    if not destination_arn:
        raise RuntimeError("Failed to create delivery destination")

    created = logs.create_delivery(
        deliverySourceName=config.source_name,
        deliveryDestinationArn=destination_arn,
        s3DeliveryConfiguration={
            "enableHiveCompatiblePath": False,
            "suffixPath": props["LogPrefix"],
        },
    )
    delivery = created.get("delivery")
    if not delivery:
        raise RuntimeError("Failed to create delivery")
    return delivery


def update_logging(props: dict, delivery_id: str) -> None:
    _logs_client().update_delivery_configuration(
        id=delivery_id,
        s3DeliveryConfiguration={
            "enableHiveCompatiblePath": False,
            "suffixPath": props["LogPrefix"],
        },
    )


def cleanup_logging(config: LoggingConfiguration, delivery_id: str) -> None:
    logs = _logs_client()
    try:
        logs.delete_delivery(id=delivery_id)
        logs.delete_delivery_source(name=config.source_name)
        logs.delete_delivery_destination(name=config.destination_name)
    except ClientError as e:
        logger.error(f"Error cleaning up CloudFront logging: {e}")
        raise


def handler(event: dict, context) -> dict:
    request_type = event["RequestType"]
    props = event["ResourceProperties"]
    config = create_logging_configuration(props)

    try:
        if request_type == "Create":
            delivery = setup_logging(props, config)
            return {
                "PhysicalResourceId": delivery["id"],
                "Data": {"DeliveryArn": delivery.get("arn")},
            }
        if request_type == "Update":
            delivery_id = event["PhysicalResourceId"]
            update_logging(props, delivery_id)
            return {"PhysicalResourceId": delivery_id}
        if request_type == "Delete":
            cleanup_logging(config, event["PhysicalResourceId"])
            return {}
        raise ValueError(f"Unexpected request type: {request_type}")
    except Exception as e:
        logger.error(f"Error handling CloudFront logging configuration ({request_type}): {e}")
        raise
