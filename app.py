#!/usr/bin/env python3
import os
import aws_cdk as cdk
from stack.website_stack import WebsiteStack, load_config


app = cdk.App()
config = load_config(app.node.try_get_context("config") or os.path.join("config", "website.yaml"))
WebsiteStack(
    app,
    f"{config.site_name.title().replace('-', '')}WebsiteStack",
    config=config,
    env=cdk.Environment(
        account=os.getenv("CDK_DEFAULT_ACCOUNT"), region=os.getenv("CDK_DEFAULT_REGION", "us-east-1")
    ),
)

app.synth()
