import os
import logging
from enum import Enum
from typing import Optional

import yaml
from aws_cdk import (
    Stack,
    aws_s3 as s3,
    Duration,
    RemovalPolicy,
)
from constructs import Construct
from pydantic import BaseModel, Field, model_validator

from stack.constructs import (
    AccessLogAnalytics,
    CustomDomainConfig,
    EdgeFunctions,
    StaticWebsite,
    WebsiteWaf,
)

CONFIG_FILE = os.path.join(os.path.dirname(__file__), "..", "config", "website.yaml")

logging.basicConfig(level=logging.INFO)


class WebpStrategy(str, Enum):
    NONE = "none"
    UNCONDITIONAL = "unconditional"
    S3_EXISTENCE = "s3_existence"
    ORIGIN_PROBE = "origin_probe"


ORIGIN_REQUEST_STRATEGIES = (WebpStrategy.S3_EXISTENCE, WebpStrategy.ORIGIN_PROBE)


class AccessLogMode(str, Enum):
    LEGACY = "legacy"
    STANDARD_V2 = "standard_v2"


class WebpConfig(BaseModel):
    strategy: WebpStrategy = Field(WebpStrategy.NONE, description="How image requests are rewritten to .webp")
    normalize_cache_key: bool = Field(False, description="Key the cache on x-viewer-accept-webp")
    fallback_original_uri: bool = Field(True, description="Redirect to the original image when the .webp is missing")

    @model_validator(mode="after")
    def check_viewer_request(self) -> "WebpConfig":
        # Both run at viewer-request, and a behavior takes one function per event
        if self.normalize_cache_key and self.strategy == WebpStrategy.UNCONDITIONAL:
            raise ValueError("normalize_cache_key cannot be combined with the unconditional strategy")
        # Origin-request functions only see the headers of the cache policy, and the
        # response must be cached per WebP support: both need x-viewer-accept-webp
        if self.strategy in ORIGIN_REQUEST_STRATEGIES and not self.normalize_cache_key:
            raise ValueError(f"The {self.strategy.value} strategy requires normalize_cache_key")
        return self


class WafConfig(BaseModel):
    enabled: bool = False
    web_acl_name: Optional[str] = None
    rate_limit: int = Field(100, ge=10, description="Requests per IP and URI in 60 seconds")


class AccessLogConfig(BaseModel):
    enabled: bool = True
    mode: AccessLogMode = AccessLogMode.LEGACY
    log_file_prefix: Optional[str] = Field(None, description="Prefix without leading/trailing slash")
    hive_compatible_partitions: bool = False
    expiration_days: int = Field(365, gt=0)
    analytics: bool = True


class WebsiteConfig(BaseModel):
    site_name: str = Field(..., pattern=r"^[a-z][a-z0-9-]*$")
    contents_path: Optional[str] = None
    directory_index: bool = True
    error_document: Optional[str] = "error.html"
    webp: WebpConfig = Field(default_factory=WebpConfig)
    custom_domain: Optional[CustomDomainConfig] = None
    waf: WafConfig = Field(default_factory=WafConfig)
    access_log: AccessLogConfig = Field(default_factory=AccessLogConfig)
    allow_delete_bucket_and_objects: bool = False


def load_config(path: str = CONFIG_FILE) -> WebsiteConfig:
    """Load and validate the website configuration YAML"""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Website configuration not found at {path}")

    with open(path, "r") as file:
        data = yaml.safe_load(file) or {}
    return WebsiteConfig.model_validate(data.get("website", {}))


class WebsiteStack(Stack):
    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: Optional[WebsiteConfig] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.config = config or load_config()
        logging.info(
            f"Synthesizing {self.config.site_name}: webp={self.config.webp.strategy.value} "
            f"directory_index={self.config.directory_index} access_log={self.config.access_log.enabled}"
        )

        if self.config.webp.strategy == WebpStrategy.ORIGIN_PROBE:
            logging.warning(
                "The origin_probe strategy sends unsigned HEAD requests: the private website "
                "bucket answers 403, so only publicly readable origins get WebP rewrites"
            )

        edge_functions = self.create_edge_functions()
        web_acl_arn = self.create_waf()
        log_bucket = self.create_log_bucket()
        legacy_logging = (
            log_bucket is not None and self.config.access_log.mode == AccessLogMode.LEGACY
        )

        self.website = StaticWebsite(
            self,
            "Website",
            site_name=self.config.site_name,
            source_path=self.config.contents_path,
            custom_domain=self.config.custom_domain,
            edge_functions=edge_functions,
            web_acl_arn=web_acl_arn,
            log_bucket=log_bucket if legacy_logging else None,
            log_file_prefix=self.config.access_log.log_file_prefix if legacy_logging else None,
            error_document=self.config.error_document,
            allow_delete_bucket_and_objects=self.config.allow_delete_bucket_and_objects,
        )

        if log_bucket is not None:
            AccessLogAnalytics(
                self,
                "AccessLogAnalytics",
                distribution=self.website.distribution,
                log_bucket=log_bucket,
                mode=self.config.access_log.mode.value,
                log_file_prefix=self.config.access_log.log_file_prefix,
                hive_compatible_partitions=self.config.access_log.hive_compatible_partitions,
                analytics=self.config.access_log.analytics,
                allow_delete_bucket_and_objects=self.config.allow_delete_bucket_and_objects,
            )

    def create_edge_functions(self) -> Optional[EdgeFunctions]:
        webp = self.config.webp
        if not self.config.directory_index and webp.strategy == WebpStrategy.NONE and not webp.normalize_cache_key:
            return None

        return EdgeFunctions(
            self,
            "EdgeFunctions",
            directory_index=self.config.directory_index,
            webp_strategy=webp.strategy.value,
            normalize_cache_key=webp.normalize_cache_key,
            fallback_original_uri=webp.fallback_original_uri,
        )

    def create_waf(self) -> Optional[str]:
        waf = self.config.waf
        if not waf.enabled:
            return None

        web_acl = WebsiteWaf(
            self,
            "Waf",
            web_acl_name=waf.web_acl_name or f"{self.config.site_name}-web-acl",
            rate_limit=waf.rate_limit,
        )
        return web_acl.web_acl_arn

    def create_log_bucket(self) -> Optional[s3.IBucket]:
        """Bucket for CloudFront access logs (legacy logging needs ACLs enabled)"""
        access_log = self.config.access_log
        if not access_log.enabled:
            return None

        allow_delete = self.config.allow_delete_bucket_and_objects
        return s3.Bucket(
            self,
            "CloudFrontAccessLogBucket",
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            encryption=s3.BucketEncryption.S3_MANAGED,
            enforce_ssl=True,
            object_ownership=s3.ObjectOwnership.OBJECT_WRITER,
            lifecycle_rules=[s3.LifecycleRule(expiration=Duration.days(access_log.expiration_days))],
            removal_policy=RemovalPolicy.DESTROY if allow_delete else RemovalPolicy.RETAIN,
            auto_delete_objects=allow_delete,
        )
