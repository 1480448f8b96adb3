"""
Access Log Analytics Construct - partitioned CloudFront logs queried with Athena

Legacy logging:
    CloudFront writes <prefix>/<DistributionId>.<YYYY-MM-DD-HH>.<id>.gz to the log
    bucket. An EventBridge rule on "Object Created" invokes the move_access_log
    Lambda, which moves each object below TARGET_KEY_PREFIX/<YYYY>/<MM>/<DD>/<HH>/.

Standard logging v2:
    CloudFront delivers Parquet files already partitioned by the suffix path.

Either way, a Glue table with partition projection over the hourly layout and
an Athena workgroup are created when analytics are enabled.
"""

import os
from typing import Optional

from aws_cdk import (
    aws_athena as athena,
    aws_cloudfront as cloudfront,
    aws_events as events,
    aws_events_targets as targets,
    aws_glue as glue,
    aws_lambda as _lambda,
    aws_s3 as s3,
    Duration,
    Names,
    RemovalPolicy,
    Stack,
)
from aws_cdk.aws_lambda_python_alpha import PythonFunction
from constructs import Construct

from stack.constructs.standard_logging import StandardLoggingV2

LAMBDAS_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "lambdas")
PARTITION_RANGE = "NOW-1YEARS,NOW+9HOURS"

# Fields of CloudFront standard access logs, in file order
CLOUDFRONT_LOG_FIELDS = [
    ("date", "date"),
    ("time", "string"),
    ("x_edge_location", "string"),
    ("sc_bytes", "bigint"),
    ("c_ip", "string"),
    ("cs_method", "string"),
    ("cs_host", "string"),
    ("cs_uri_stem", "string"),
    ("sc_status", "int"),
    ("cs_referer", "string"),
    ("cs_user_agent", "string"),
    ("cs_uri_query", "string"),
    ("cs_cookie", "string"),
    ("x_edge_result_type", "string"),
    ("x_edge_request_id", "string"),
    ("x_host_header", "string"),
    ("cs_protocol", "string"),
    ("cs_bytes", "bigint"),
    ("time_taken", "float"),
    ("x_forwarded_for", "string"),
    ("ssl_protocol", "string"),
    ("ssl_cipher", "string"),
    ("x_edge_response_result_type", "string"),
    ("cs_protocol_version", "string"),
    ("fle_status", "string"),
    ("fle_encrypted_fields", "string"),
    ("c_port", "int"),
    ("time_to_first_byte", "float"),
    ("x_edge_detailed_result_type", "string"),
    ("sc_content_type", "string"),
    ("sc_content_len", "bigint"),
    ("sc_range_start", "bigint"),
    ("sc_range_end", "bigint"),
]


def partition_date_format(hive_style: bool) -> str:
    """Java date pattern matching the key layout written by move_access_log"""
    if hive_style:
        return "'year='yyyy'/month='MM'/day='dd'/hour='HH"
    return "yyyy/MM/dd/HH"


def projection_parameters(date_format: str, location: str) -> dict:
    return {
        "has_encrypted_data": "true",
        "projection.enabled": "true",
        "projection.partition_date.type": "date",
        "projection.partition_date.format": date_format,
        "projection.partition_date.interval": "1",
        "projection.partition_date.interval.unit": "HOURS",
        "projection.partition_date.range": PARTITION_RANGE,
        "storage.location.template": f"{location}${{partition_date}}",
    }


class AccessLogAnalytics(Construct):
    def __init__(
        self,
        scope: Construct,
        id: str,
        distribution: cloudfront.IDistribution,
        log_bucket: s3.IBucket,
        mode: str = "legacy",
        log_file_prefix: Optional[str] = None,
        hive_compatible_partitions: bool = False,
        analytics: bool = True,
        allow_delete_bucket_and_objects: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(scope, id, **kwargs)

        account = Stack.of(self).account
        prefix = f"{log_file_prefix}/" if log_file_prefix else ""

        if mode == "standard_v2":
            location_prefix = f"AWSLogs/{account}/CloudFront/{prefix}{distribution.distribution_id}/"
            StandardLoggingV2(
                self,
                "StandardLogging",
                distribution=distribution,
                log_bucket=log_bucket,
                log_prefix=f"AWSLogs/{{account-id}}/CloudFront/{prefix}{{DistributionId}}/{{yyyy}}/{{MM}}/{{dd}}/{{HH}}",
            )
            date_format = partition_date_format(hive_style=False)
        else:
            self.target_key_prefix = f"{prefix}partitioned/{account}/{distribution.distribution_id}/"
            self.mover = self._create_mover(log_bucket, hive_compatible_partitions)
            location_prefix = self.target_key_prefix
            date_format = partition_date_format(hive_compatible_partitions)

        if analytics:
            location = f"s3://{log_bucket.bucket_name}/{location_prefix}"
            self._create_table(mode, location, date_format)
            self._create_workgroup(allow_delete_bucket_and_objects)

    def _create_mover(self, log_bucket: s3.IBucket, hive_compatible_partitions: bool) -> _lambda.IFunction:
        mover = PythonFunction(
            self,
            "MoveAccessLogFunction",
            entry=os.path.join(LAMBDAS_DIR, "move_access_log"),
            index="main.py",
            handler="handler",
            runtime=_lambda.Runtime.PYTHON_3_12,
            architecture=_lambda.Architecture.ARM_64,
            timeout=Duration.seconds(30),
            environment={
                "TARGET_KEY_PREFIX": self.target_key_prefix,
                "HIVE_COMPATIBLE_PARTITIONS": "true" if hive_compatible_partitions else "false",
            },
        )

        log_bucket.enable_event_bridge_notification()
        log_bucket.grant_read_write(mover)
        log_bucket.grant_delete(mover)

        events.Rule(
            self,
            "AccessLogCreatedRule",
            event_pattern=events.EventPattern(
                source=["aws.s3"],
                detail_type=["Object Created"],
                resources=[log_bucket.bucket_arn],
                detail={
                    "object": {
                        # Moved objects must not trigger another move
                        "key": [{"anything-but": {"prefix": self.target_key_prefix}}],
                    },
                },
            ),
            targets=[targets.LambdaFunction(mover, retry_attempts=8)],
        )
        return mover

    def _create_table(self, mode: str, location: str, date_format: str) -> None:
        self.database = glue.CfnDatabase(
            self,
            "Database",
            catalog_id=Stack.of(self).account,
            database_input=glue.CfnDatabase.DatabaseInputProperty(
                name=f"log_analytics_{Names.unique_id(self).lower()[-16:]}",
            ),
        )

        if mode == "standard_v2":
            # Parquet columns are typed as strings by CloudFront
            columns = [(name, "string") for name, _ in CLOUDFRONT_LOG_FIELDS]
            storage = dict(
                input_format="org.apache.hadoop.hive.ql.io.parquet.MapredParquetInputFormat",
                output_format="org.apache.hadoop.hive.ql.io.parquet.MapredParquetOutputFormat",
                serde_info=glue.CfnTable.SerdeInfoProperty(
                    serialization_library="org.apache.hadoop.hive.ql.io.parquet.serde.ParquetHiveSerDe",
                ),
            )
            parameters = {"classification": "parquet"}
        else:
            columns = CLOUDFRONT_LOG_FIELDS
            storage = dict(
                input_format="org.apache.hadoop.mapred.TextInputFormat",
                output_format="org.apache.hadoop.hive.ql.io.HiveIgnoreKeyTextOutputFormat",
                serde_info=glue.CfnTable.SerdeInfoProperty(
                    serialization_library="org.apache.hadoop.hive.serde2.lazy.LazySimpleSerDe",
                    parameters={"field.delim": "\t", "serialization.format": "\t"},
                ),
            )
            parameters = {"skip.header.line.count": "2"}

        self.table = glue.CfnTable(
            self,
            "CloudFrontAccessLogTable",
            catalog_id=Stack.of(self).account,
            database_name=self.database.ref,
            table_input=glue.CfnTable.TableInputProperty(
                name="cloudfront_access_log",
                table_type="EXTERNAL_TABLE",
                partition_keys=[glue.CfnTable.ColumnProperty(name="partition_date", type="string")],
                parameters={**parameters, **projection_parameters(date_format, location)},
                storage_descriptor=glue.CfnTable.StorageDescriptorProperty(
                    columns=[glue.CfnTable.ColumnProperty(name=name, type=type_) for name, type_ in columns],
                    location=location,
                    **storage,
                ),
            ),
        )
        self.table.add_dependency(self.database)

    def _create_workgroup(self, allow_delete_bucket_and_objects: bool) -> None:
        self.query_output_bucket = s3.Bucket(
            self,
            "QueryOutputBucket",
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            encryption=s3.BucketEncryption.S3_MANAGED,
            enforce_ssl=True,
            lifecycle_rules=[s3.LifecycleRule(expiration=Duration.days(30))],
            removal_policy=RemovalPolicy.DESTROY if allow_delete_bucket_and_objects else RemovalPolicy.RETAIN,
            auto_delete_objects=allow_delete_bucket_and_objects,
        )

        athena.CfnWorkGroup(
            self,
            "WorkGroup",
            name=f"log-analytics-{Names.unique_id(self).lower()[-16:]}",
            recursive_delete_option=True,
            state="ENABLED",
            work_group_configuration=athena.CfnWorkGroup.WorkGroupConfigurationProperty(
                bytes_scanned_cutoff_per_query=1073741824,
                enforce_work_group_configuration=False,
                publish_cloud_watch_metrics_enabled=True,
                requester_pays_enabled=False,
                result_configuration=athena.CfnWorkGroup.ResultConfigurationProperty(
                    output_location=self.query_output_bucket.s3_url_for_object(),
                ),
            ),
        )
