"""
Tests for the standard logging (v2) custom resource handler
"""

import pytest
from unittest.mock import MagicMock
from botocore.exceptions import ClientError

from lambdas.standard_logging_v2.main import create_logging_configuration, handler

PROPS = {
    "DistributionId": "E2ABC123XYZ",
    "DistributionArn": "arn:aws:cloudfront::123456789012:distribution/E2ABC123XYZ",
    "BucketArn": "arn:aws:s3:::my-site-access-logs",
    "LogPrefix": "cloudfront/{DistributionId}/{yyyy}/{MM}/{dd}/{HH}",
}


@pytest.fixture
def mock_logs(mocker):
    mock_boto3 = mocker.patch("lambdas.standard_logging_v2.main.boto3")
    logs = MagicMock()
    mock_boto3.client.return_value = logs
    logs.put_delivery_destination.return_value = {
        "deliveryDestination": {"arn": "arn:aws:logs:us-east-1:123456789012:delivery-destination:dest"}
    }
    logs.create_delivery.return_value = {
        "delivery": {"id": "delivery-1", "arn": "arn:aws:logs:us-east-1:123456789012:delivery:delivery-1"}
    }
    return logs


class TestCreateLoggingConfiguration:
    def test_names(self):
        config = create_logging_configuration(PROPS)

        assert config.source_name == "cf-E2ABC123XYZ"
        assert config.destination_name == "cf-E2ABC123XYZ-my-site-access-logs"
        assert config.output_format == "parquet"

    def test_long_bucket_name_is_truncated(self):
        props = {**PROPS, "BucketArn": "arn:aws:s3:::" + "b" * 63}

        config = create_logging_configuration(props)

        assert len(config.destination_name) == 60
        assert config.destination_name.startswith("cf-E2ABC123XYZ-bbb")

    def test_output_format_override(self):
        assert create_logging_configuration({**PROPS, "OutputFormat": "json"}).output_format == "json"


class TestHandler:
    def test_create(self, mock_logs):
        result = handler({"RequestType": "Create", "ResourceProperties": PROPS}, None)

        assert result["PhysicalResourceId"] == "delivery-1"
        assert result["Data"]["DeliveryArn"].endswith("delivery:delivery-1")
        mock_logs.put_delivery_source.assert_called_once_with(
            name="cf-E2ABC123XYZ",
            resourceArn=PROPS["DistributionArn"],
            logType="ACCESS_LOGS",
        )
        mock_logs.create_delivery.assert_called_once_with(
            deliverySourceName="cf-E2ABC123XYZ",
            deliveryDestinationArn="arn:aws:logs:us-east-1:123456789012:delivery-destination:dest",
            s3DeliveryConfiguration={"enableHiveCompatiblePath": False, "suffixPath": PROPS["LogPrefix"]},
        )

    def test_create_without_destination_arn_fails(self, mock_logs):
        mock_logs.put_delivery_destination.return_value = {}

        with pytest.raises(RuntimeError, match="delivery destination"):
            handler({"RequestType": "Create", "ResourceProperties": PROPS}, None)
        mock_logs.create_delivery.assert_not_called()

    def test_update(self, mock_logs):
        event = {"RequestType": "Update", "ResourceProperties": PROPS, "PhysicalResourceId": "delivery-1"}

        assert handler(event, None) == {"PhysicalResourceId": "delivery-1"}
        mock_logs.update_delivery_configuration.assert_called_once_with(
            id="delivery-1",
            s3DeliveryConfiguration={"enableHiveCompatiblePath": False, "suffixPath": PROPS["LogPrefix"]},
        )

    def test_delete(self, mock_logs):
        event = {"RequestType": "Delete", "ResourceProperties": PROPS, "PhysicalResourceId": "delivery-1"}

        assert handler(event, None) == {}
        mock_logs.delete_delivery.assert_called_once_with(id="delivery-1")
        mock_logs.delete_delivery_source.assert_called_once_with(name="cf-E2ABC123XYZ")
        mock_logs.delete_delivery_destination.assert_called_once_with(name="cf-E2ABC123XYZ-my-site-access-logs")

    def test_delete_error_propagates(self, mock_logs):
        mock_logs.delete_delivery.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException", "Message": "gone"}}, "DeleteDelivery"
        )
        event = {"RequestType": "Delete", "ResourceProperties": PROPS, "PhysicalResourceId": "delivery-1"}

        with pytest.raises(ClientError):
            handler(event, None)

    def test_unknown_request_type(self, mock_logs):
        with pytest.raises(ValueError, match="Unexpected request type"):
            handler({"RequestType": "Replace", "ResourceProperties": PROPS}, None)
