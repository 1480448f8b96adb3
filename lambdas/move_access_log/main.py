"""
CloudFront Access Log Mover

Triggered by S3 "Object Created" events (EventBridge, or classic S3
notifications) for the CloudFront access log bucket. Moves each log object
to a date/hour partitioned key so Athena can prune partitions:

    <prefix>/E2ABC.2024-03-15-07.a1b2c3.gz
        -> <TARGET_KEY_PREFIX>2024/03/15/07/E2ABC.2024-03-15-07.a1b2c3.gz
        -> <TARGET_KEY_PREFIX>year=2024/month=03/day=15/hour=07/...  (Hive style)

The move is copy-then-delete. The target key depends only on the source key,
so re-running the same event overwrites the copy and retries the delete.

Environment:
    TARGET_KEY_PREFIX           prefix without leading slash, with trailing slash
    HIVE_COMPATIBLE_PARTITIONS  "true" for key=value partition folders
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote_plus

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# CloudFront access log file names: <distribution>.<YYYY>-<MM>-<DD>-<HH>.<id>.gz
DATE_PATTERN = re.compile(r"[^\d](\d{4})-(\d{2})-(\d{2})-(\d{2})[^\d]")
FILENAME_PATTERN = re.compile(r"[^/]+$")
NOT_FOUND_ERROR_CODES = {"404", "NoSuchKey", "NotFound"}


class AccessLogMoveError(Exception):
    """Copy or delete of a log object failed; the invocation must fail so it is retried."""


# =============================================================================
# Event / Config Models
# =============================================================================

class BucketDetail(BaseModel):
    name: str


class ObjectDetail(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str
    size: Optional[int] = None
    etag: Optional[str] = None
    version_id: Optional[str] = Field(None, alias="version-id")
    sequencer: Optional[str] = None


class ObjectCreatedDetail(BaseModel):
    """`detail` of an EventBridge "Object Created" event"""
    model_config = ConfigDict(populate_by_name=True)

    bucket: BucketDetail
    object: ObjectDetail
    request_id: Optional[str] = Field(None, alias="request-id")
    requester: Optional[str] = None
    source_ip_address: Optional[str] = Field(None, alias="source-ip-address")
    reason: Optional[str] = None


class RepartitionConfig(BaseModel):
    target_key_prefix: str = ""
    hive_compatible_partitions: bool = False

    @classmethod
    def from_env(cls) -> "RepartitionConfig":
        return cls(
            target_key_prefix=os.environ.get("TARGET_KEY_PREFIX", ""),
            hive_compatible_partitions=os.environ.get("HIVE_COMPATIBLE_PARTITIONS", "false").lower() == "true",
        )


@dataclass(frozen=True)
class PartitionKey:
    year: str
    month: str
    day: str
    hour: str

    def path(self, hive_style: bool = False) -> str:
        if hive_style:
            return f"year={self.year}/month={self.month}/day={self.day}/hour={self.hour}"
        return f"{self.year}/{self.month}/{self.day}/{self.hour}"


# =============================================================================
# Key Helpers
# =============================================================================

def extract_partition(key: str) -> Optional[PartitionKey]:
    match = DATE_PATTERN.search(key)
    if not match:
        return None
    return PartitionKey(*match.groups())


def extract_filename(key: str) -> Optional[str]:
    match = FILENAME_PATTERN.search(key)
    return match.group(0) if match else None


def build_target_key(key: str, target_key_prefix: str, hive_style: bool) -> Optional[str]:
    """Partitioned destination key, or None when `key` is not an access log file"""
    partition = extract_partition(key)
    filename = extract_filename(key)
    if partition is None or filename is None:
        return None
    return f"{target_key_prefix}{partition.path(hive_style)}/{filename}"


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


# =============================================================================
# Mover
# =============================================================================

class AccessLogMover:
    def __init__(self, s3_client, config: RepartitionConfig):
        self.s3 = s3_client
        self.config = config

    def move(self, bucket: str, source_key: str) -> Optional[str]:
        """
        Move one log object to its partitioned key.

        Returns:
            The destination key, or None when the object was skipped
        """
        target_key = build_target_key(
            source_key,
            self.config.target_key_prefix,
            self.config.hive_compatible_partitions,
        )
        if target_key is None:
            logger.info(
                f"Object key {source_key} does not look like an access log file, so it will not be moved."
            )
            return None

        logger.info(f"Copying {source_key} to {target_key}.")
        try:
            self.s3.copy_object(
                CopySource={"Bucket": bucket, "Key": source_key},
                Bucket=bucket,
                Key=target_key,
            )
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_ERROR_CODES:
                # Duplicate delivery of an event whose object was already moved
                logger.warning(f"Source {source_key} no longer exists, assuming it was already moved.")
                return None
            raise AccessLogMoveError(f"Error while copying {source_key}: {e}") from e
        except BotoCoreError as e:
            raise AccessLogMoveError(f"Error while copying {source_key}: {e}") from e

        logger.info(f"Copied. Now deleting {source_key}.")
        try:
            self.s3.delete_object(Bucket=bucket, Key=source_key)
        except (ClientError, BotoCoreError) as e:
            raise AccessLogMoveError(f"Error while deleting {source_key}: {e}") from e

        logger.info(f"Deleted {source_key}.")
        return target_key


def iter_objects(event: dict):
    """Yield (bucket, key) from an EventBridge event or an S3 notification."""
    if "detail" in event:
        detail = ObjectCreatedDetail.model_validate(event["detail"])
        yield detail.bucket.name, detail.object.key
        return

    for record in event.get("Records", []):
        s3_event = record["s3"]
        # S3 notifications URL-encode object keys
        yield s3_event["bucket"]["name"], unquote_plus(s3_event["object"]["key"])


s3_client = boto3.client("s3")


def handler(event, context):
    mover = AccessLogMover(s3_client, RepartitionConfig.from_env())
    moved = []
    for bucket, key in iter_objects(event):
        target_key = mover.move(bucket, key)
        if target_key:
            moved.append(target_key)
    return moved
