"""
Static Website Construct - S3 + CloudFront Hosting

Features:
- Private S3 bucket for website content, read through Origin Access Control
- CloudFront distribution with HTTPS redirect and security headers
- Lambda@Edge content negotiation (directory index, WebP) via EdgeFunctions
- Optional WAF WebACL, access log bucket and custom domain

Note: Lambda@Edge functions, CLOUDFRONT-scoped WebACLs and CloudFront
certificates all live in us-east-1, so deploy the stack there.
"""

from typing import Optional
from aws_cdk import (
    aws_s3 as s3,
    aws_s3_deployment as s3_deployment,
    aws_cloudfront as cloudfront,
    aws_cloudfront_origins as origins,
    aws_certificatemanager as acm,
    aws_route53 as route53,
    aws_route53_targets as route53_targets,
    CfnOutput,
    Duration,
    RemovalPolicy,
)
from constructs import Construct
from pydantic import BaseModel, Field

from stack.constructs.edge_functions import EdgeFunctions


class CustomDomainConfig(BaseModel):
    """Configuration for custom domain setup"""
    domain_name: str = Field(..., description="Custom domain name (e.g., www.example.com)")
    hosted_zone_name: str = Field(..., description="Route53 hosted zone name (e.g., example.com)")
    certificate_arn: Optional[str] = Field(None, description="Existing ACM certificate ARN. If not provided, a new certificate is created with DNS validation.")
    hosted_zone_id: Optional[str] = Field(None, description="Route53 hosted zone ID (optional, skips the lookup)")


class StaticWebsite(Construct):
    """
    Static website served from a private S3 bucket through CloudFront.

    Usage:
        website = StaticWebsite(
            self, "Website",
            site_name="my-site",
            source_path="contents",
            edge_functions=EdgeFunctions(self, "EdgeFunctions", webp_strategy="unconditional"),
        )
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        site_name: str,
        source_path: Optional[str] = None,
        custom_domain: Optional[CustomDomainConfig] = None,
        edge_functions: Optional[EdgeFunctions] = None,
        web_acl_arn: Optional[str] = None,
        log_bucket: Optional[s3.IBucket] = None,
        log_file_prefix: Optional[str] = None,
        error_document: Optional[str] = "error.html",
        allow_delete_bucket_and_objects: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(scope, id, **kwargs)

        self.site_name = site_name

        self.bucket = s3.Bucket(
            self,
            "WebsiteBucket",
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            encryption=s3.BucketEncryption.S3_MANAGED,
            enforce_ssl=True,
            removal_policy=RemovalPolicy.DESTROY if allow_delete_bucket_and_objects else RemovalPolicy.RETAIN,
            auto_delete_objects=allow_delete_bucket_and_objects,
        )

        domain_names = None
        certificate = None
        self._hosted_zone = None

        if custom_domain:
            domain_names = [custom_domain.domain_name]
            self._hosted_zone = self._lookup_hosted_zone(custom_domain)
            certificate = self._resolve_certificate(custom_domain)

        cache_policy = cloudfront.CachePolicy.CACHING_OPTIMIZED
        edge_lambdas = None
        if edge_functions:
            cache_policy = edge_functions.cache_policy or cache_policy
            edge_lambdas = edge_functions.edge_lambdas or None
            edge_functions.grant_origin_read(self.bucket)

        error_responses = None
        if error_document:
            error_responses = [
                cloudfront.ErrorResponse(
                    http_status=status,
                    response_http_status=status,
                    response_page_path=f"/{error_document}",
                    ttl=Duration.minutes(1),
                )
                for status in (403, 404)
            ]

        self.distribution = cloudfront.Distribution(
            self,
            "Distribution",
            default_behavior=cloudfront.BehaviorOptions(
                origin=origins.S3BucketOrigin.with_origin_access_control(self.bucket),
                viewer_protocol_policy=cloudfront.ViewerProtocolPolicy.REDIRECT_TO_HTTPS,
                allowed_methods=cloudfront.AllowedMethods.ALLOW_GET_HEAD,
                cached_methods=cloudfront.CachedMethods.CACHE_GET_HEAD,
                cache_policy=cache_policy,
                response_headers_policy=cloudfront.ResponseHeadersPolicy.SECURITY_HEADERS,
                edge_lambdas=edge_lambdas,
                compress=True,
            ),
            default_root_object="index.html",
            domain_names=domain_names,
            certificate=certificate,
            error_responses=error_responses,
            web_acl_id=web_acl_arn,
            enable_logging=log_bucket is not None,
            log_bucket=log_bucket,
            log_file_prefix=f"{log_file_prefix}/" if log_file_prefix else None,
            price_class=cloudfront.PriceClass.PRICE_CLASS_ALL,
            http_version=cloudfront.HttpVersion.HTTP2_AND_3,
            minimum_protocol_version=cloudfront.SecurityPolicyProtocol.TLS_V1_2_2021,
        )

        if source_path:
            s3_deployment.BucketDeployment(
                self,
                "DeployContents",
                sources=[s3_deployment.Source.asset(source_path)],
                destination_bucket=self.bucket,
                distribution=self.distribution,
                distribution_paths=["/*"],
            )

        if custom_domain and self._hosted_zone:
            route53.ARecord(
                self,
                "AliasRecord",
                zone=self._hosted_zone,
                record_name=custom_domain.domain_name,
                target=route53.RecordTarget.from_alias(
                    route53_targets.CloudFrontTarget(self.distribution)
                ),
            )

        CfnOutput(
            self,
            "WebsiteURL",
            value=self.distribution_url,
            description="CloudFront distribution URL",
        )

        CfnOutput(
            self,
            "BucketName",
            value=self.bucket.bucket_name,
            description="S3 bucket name for website content",
        )

        CfnOutput(
            self,
            "DistributionId",
            value=self.distribution.distribution_id,
            description="CloudFront distribution ID",
        )

    def _lookup_hosted_zone(self, config: CustomDomainConfig) -> route53.IHostedZone:
        if config.hosted_zone_id:
            return route53.HostedZone.from_hosted_zone_attributes(
                self,
                "HostedZone",
                hosted_zone_id=config.hosted_zone_id,
                zone_name=config.hosted_zone_name,
            )
        return route53.HostedZone.from_lookup(
            self,
            "HostedZone",
            domain_name=config.hosted_zone_name,
        )

    def _resolve_certificate(self, config: CustomDomainConfig) -> acm.ICertificate:
        """Import the given certificate, or issue one validated through the hosted zone"""
        if config.certificate_arn:
            return acm.Certificate.from_certificate_arn(
                self,
                "Certificate",
                certificate_arn=config.certificate_arn,
            )
        return acm.Certificate(
            self,
            "Certificate",
            domain_name=config.domain_name,
            validation=acm.CertificateValidation.from_dns(self._hosted_zone),
        )

    @property
    def distribution_url(self) -> str:
        return f"https://{self.distribution.distribution_domain_name}"
