"""
WebP rewrite with S3 existence check (origin request)

HEADs "<key>.webp" in the origin bucket and rewrites only when it exists.
Any probe failure serves the original image.
"""

import logging
import os

import boto3
from botocore.config import Config

from lambdas.shared.s3_probe import S3ExistenceWebpRewriter
from lambdas.shared.rewriters import DirectoryIndexRewriter, RewriterChain, make_request_handler

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Lambda@Edge runs in the region closest to the viewer, not the bucket's
s3_client = boto3.client(
    "s3",
    region_name=os.environ.get("AWS_REGION"),
    config=Config(connect_timeout=2, read_timeout=2, retries={"max_attempts": 1}),
)

webp_rewriter = S3ExistenceWebpRewriter(s3_client)

handler = make_request_handler(webp_rewriter)
handler_with_directory_index = make_request_handler(
    RewriterChain([DirectoryIndexRewriter(), webp_rewriter])
)
