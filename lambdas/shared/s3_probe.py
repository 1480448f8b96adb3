"""
WebP rewrite gated on a HEAD in the S3 origin bucket

Runs at origin request. A failed probe never raises: it means "serve the
original asset", which is always correct content. boto3 ships with the Lambda
runtime, so this adds nothing to the bundle.
"""

import logging
import os

from botocore.exceptions import BotoCoreError, ClientError

from lambdas.shared.edge_request import EdgeRequest, s3_origin_bucket
from lambdas.shared.rewriters import WEBP_SUFFIX, rewrite_to_webp, wants_webp

logger = logging.getLogger(__name__)

NOT_FOUND_ERROR_CODES = {"404", "NoSuchKey", "NotFound"}


class S3ExistenceWebpRewriter:
    """Rewrite to .webp only when a HEAD on the origin bucket finds the variant."""

    def __init__(self, s3_client):
        self.s3 = s3_client

    def _webp_exists(self, bucket: str, key: str) -> bool:
        try:
            self.s3.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code not in NOT_FOUND_ERROR_CODES:
                logger.error(
                    f"Error checking WebP existence: region={os.environ.get('AWS_REGION')} "
                    f"bucket={bucket} key={key} error={e}"
                )
            return False
        except BotoCoreError as e:
            logger.error(
                f"Error checking WebP existence: region={os.environ.get('AWS_REGION')} "
                f"bucket={bucket} key={key} error={e}"
            )
            return False

    def rewrite(self, request: EdgeRequest) -> EdgeRequest:
        if not wants_webp(request):
            return request

        bucket = s3_origin_bucket(request.origin)
        if not bucket:
            return request

        webp_key = request.uri[1:] if request.uri.startswith("/") else request.uri
        if self._webp_exists(bucket, f"{webp_key}{WEBP_SUFFIX}"):
            return rewrite_to_webp(request)
        return request
