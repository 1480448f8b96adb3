"""
Edge Functions Construct - Lambda@Edge wiring for content negotiation

Chooses which handler module runs at each CloudFront event, based on the
deployment configuration:

    viewer-request   rewrite_to_webp (unconditional) | normalize_webp_cache_key
    origin-request   directory_index | rewrite_to_webp_s3 | rewrite_to_webp_origin
                     (the probing strategies chain the directory index first)
    origin-response  fallback_original_uri

Lambda@Edge does not support environment variables or layers, so each handler
ships the `lambdas` package as its asset. Only the origin-probe handler needs
a third-party library (httpx); the others run on what the Lambda runtime
provides, keeping viewer-request functions under the 1 MB limit.
"""

import os
from typing import Optional

from aws_cdk import (
    aws_cloudfront as cloudfront,
    aws_iam as iam,
    aws_lambda as _lambda,
    aws_s3 as s3,
    BundlingOptions,
    Duration,
)
from constructs import Construct

from lambdas.shared.rewriters import VIEWER_ACCEPT_WEBP_HEADER

PROJECT_ROOT = os.path.join(os.path.dirname(__file__), "..", "..")
EDGE_RUNTIME = _lambda.Runtime.PYTHON_3_12

# Handler modules that bundle a requirements file
HANDLER_REQUIREMENTS = {
    "rewrite_to_webp_origin": "lambdas/rewrite_to_webp_origin/requirements.txt",
}

ASSET_EXCLUDE = [
    ".git",
    ".venv",
    "cdk.out",
    "config",
    "stack",
    "tests",
    "**/__pycache__",
]


def bundle_command(requirements: Optional[str] = None) -> str:
    copy = "cp -r lambdas /asset-output/"
    if requirements:
        return f"pip install -r {requirements} -t /asset-output && {copy}"
    return copy


def edge_code(requirements: Optional[str] = None) -> _lambda.Code:
    return _lambda.Code.from_asset(
        PROJECT_ROOT,
        exclude=ASSET_EXCLUDE,
        bundling=BundlingOptions(
            image=EDGE_RUNTIME.bundling_image,
            command=["bash", "-c", bundle_command(requirements)],
        ),
    )


class EdgeFunctions(Construct):
    """
    Lambda@Edge functions for one distribution behavior.

    Attributes:
        edge_lambdas: associations to pass to the distribution's default behavior
        cache_policy: policy keyed on x-viewer-accept-webp, when cache-key normalization is on
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        directory_index: bool = True,
        webp_strategy: str = "none",
        normalize_cache_key: bool = False,
        fallback_original_uri: bool = True,
        **kwargs,
    ) -> None:
        super().__init__(scope, id, **kwargs)

        self._code: dict[Optional[str], _lambda.Code] = {}
        self.edge_lambdas: list[cloudfront.EdgeLambda] = []
        self.functions: dict[str, cloudfront.experimental.EdgeFunction] = {}
        self.cache_policy: Optional[cloudfront.ICachePolicy] = None

        viewer_request = None
        if webp_strategy == "unconditional":
            viewer_request = "lambdas.rewrite_to_webp.main.handler"
        elif normalize_cache_key:
            viewer_request = "lambdas.normalize_webp_cache_key.main.handler"
            self.cache_policy = self._create_webp_cache_policy()

        origin_request = None
        if webp_strategy in ("s3_existence", "origin_probe"):
            module = "rewrite_to_webp_s3" if webp_strategy == "s3_existence" else "rewrite_to_webp_origin"
            entry = "handler_with_directory_index" if directory_index else "handler"
            origin_request = f"lambdas.{module}.main.{entry}"
        elif directory_index:
            origin_request = "lambdas.directory_index.main.handler"

        origin_response = None
        if webp_strategy != "none" and fallback_original_uri:
            origin_response = "lambdas.fallback_original_uri.main.handler"

        if viewer_request:
            self._associate("ViewerRequest", viewer_request, cloudfront.LambdaEdgeEventType.VIEWER_REQUEST)
        if origin_request:
            self._associate("OriginRequest", origin_request, cloudfront.LambdaEdgeEventType.ORIGIN_REQUEST)
        if origin_response:
            self._associate("OriginResponse", origin_response, cloudfront.LambdaEdgeEventType.ORIGIN_RESPONSE)

        self._probes_bucket = webp_strategy == "s3_existence"

    def grant_origin_read(self, bucket: s3.IBucket) -> None:
        """Let the existence-check function HEAD objects in the origin bucket"""
        if not self._probes_bucket:
            return
        function = self.functions["OriginRequest"]
        bucket.grant_read(function)
        # Without ListBucket a missing key answers 403 instead of 404
        function.add_to_role_policy(
            iam.PolicyStatement(
                actions=["s3:ListBucket"],
                resources=[bucket.bucket_arn],
            )
        )

    def _code_for(self, handler: str) -> _lambda.Code:
        requirements = HANDLER_REQUIREMENTS.get(handler.split(".")[1])
        if requirements not in self._code:
            self._code[requirements] = edge_code(requirements)
        return self._code[requirements]

    def _associate(self, name: str, handler: str, event_type: cloudfront.LambdaEdgeEventType) -> None:
        function = cloudfront.experimental.EdgeFunction(
            self,
            f"{name}Function",
            runtime=EDGE_RUNTIME,
            handler=handler,
            code=self._code_for(handler),
            architecture=_lambda.Architecture.X86_64,
            memory_size=128,
            timeout=Duration.seconds(5),
        )
        self.functions[name] = function
        self.edge_lambdas.append(
            cloudfront.EdgeLambda(
                function_version=function.current_version,
                event_type=event_type,
            )
        )

    def _create_webp_cache_policy(self) -> cloudfront.CachePolicy:
        return cloudfront.CachePolicy(
            self,
            "WebpCachePolicy",
            comment="Caching optimized, keyed on WebP support of the viewer",
            default_ttl=Duration.days(1),
            min_ttl=Duration.seconds(1),
            max_ttl=Duration.days(365),
            header_behavior=cloudfront.CacheHeaderBehavior.allow_list(VIEWER_ACCEPT_WEBP_HEADER),
            query_string_behavior=cloudfront.CacheQueryStringBehavior.none(),
            cookie_behavior=cloudfront.CacheCookieBehavior.none(),
            enable_accept_encoding_gzip=True,
            enable_accept_encoding_brotli=True,
        )
