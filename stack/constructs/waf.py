"""
CloudFront WebACL

- Rate limit per IP + URI path on directory-style URIs ("/" or empty)
- AWS managed common and known-bad-inputs rule sets

CLOUDFRONT scope: the stack must be deployed in us-east-1.
"""

from aws_cdk import (
    aws_logs as logs,
    aws_wafv2 as wafv2,
    ArnFormat,
    RemovalPolicy,
    Stack,
)
from constructs import Construct

MANAGED_RULE_GROUPS = [
    "AWSManagedRulesCommonRuleSet",
    "AWSManagedRulesKnownBadInputsRuleSet",
]


def _visibility(metric_name: str) -> wafv2.CfnWebACL.VisibilityConfigProperty:
    return wafv2.CfnWebACL.VisibilityConfigProperty(
        cloud_watch_metrics_enabled=True,
        sampled_requests_enabled=True,
        metric_name=metric_name,
    )


class WebsiteWaf(Construct):
    def __init__(self, scope: Construct, id: str, web_acl_name: str, rate_limit: int = 100, **kwargs) -> None:
        super().__init__(scope, id, **kwargs)

        no_transformation = [wafv2.CfnWebACL.TextTransformationProperty(priority=0, type="NONE")]

        rate_limit_rule = wafv2.CfnWebACL.RuleProperty(
            name="RateLimit_SameIPSameURI",
            priority=10,
            action=wafv2.CfnWebACL.RuleActionProperty(block={}),
            statement=wafv2.CfnWebACL.StatementProperty(
                rate_based_statement=wafv2.CfnWebACL.RateBasedStatementProperty(
                    limit=rate_limit,
                    aggregate_key_type="CUSTOM_KEYS",
                    evaluation_window_sec=60,
                    custom_keys=[
                        wafv2.CfnWebACL.RateBasedStatementCustomKeyProperty(
                            uri_path=wafv2.CfnWebACL.RateLimitUriPathProperty(
                                text_transformations=no_transformation,
                            )
                        ),
                        wafv2.CfnWebACL.RateBasedStatementCustomKeyProperty(ip={}),
                    ],
                    scope_down_statement=wafv2.CfnWebACL.StatementProperty(
                        regex_match_statement=wafv2.CfnWebACL.RegexMatchStatementProperty(
                            field_to_match=wafv2.CfnWebACL.FieldToMatchProperty(uri_path={}),
                            text_transformations=no_transformation,
                            regex_string=".*/$|^$",
                        )
                    ),
                )
            ),
            visibility_config=_visibility("RateLimit_SameIPSameURI"),
        )

        managed_rules = [
            wafv2.CfnWebACL.RuleProperty(
                name=group,
                priority=20 + index,
                override_action=wafv2.CfnWebACL.OverrideActionProperty(none={}),
                statement=wafv2.CfnWebACL.StatementProperty(
                    managed_rule_group_statement=wafv2.CfnWebACL.ManagedRuleGroupStatementProperty(
                        vendor_name="AWS",
                        name=group,
                    )
                ),
                visibility_config=_visibility(group),
            )
            for index, group in enumerate(MANAGED_RULE_GROUPS)
        ]

        self.web_acl = wafv2.CfnWebACL(
            self,
            "WebAcl",
            name=web_acl_name,
            scope="CLOUDFRONT",
            default_action=wafv2.CfnWebACL.DefaultActionProperty(allow={}),
            visibility_config=_visibility(web_acl_name),
            rules=[rate_limit_rule, *managed_rules],
        )

        # WAF only delivers logs to groups named aws-waf-logs-*
        # and wants the group ARN without the trailing ":*"
        log_group = logs.LogGroup(
            self,
            "LogGroup",
            log_group_name=f"aws-waf-logs-{web_acl_name}",
            retention=logs.RetentionDays.ONE_YEAR,
            removal_policy=RemovalPolicy.DESTROY,
        )

        wafv2.CfnLoggingConfiguration(
            self,
            "LoggingConfiguration",
            log_destination_configs=[
                Stack.of(self).format_arn(
                    service="logs",
                    resource="log-group",
                    resource_name=log_group.log_group_name,
                    arn_format=ArnFormat.COLON_RESOURCE_NAME,
                )
            ],
            resource_arn=self.web_acl.attr_arn,
        )

    @property
    def web_acl_arn(self) -> str:
        return self.web_acl.attr_arn
