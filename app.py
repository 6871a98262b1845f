#!/usr/bin/env python3
"""
S3 Image Compressor CDK Application

This app defines the infrastructure for the event-triggered image
compressor: source and destination buckets and the compressor Lambda.
"""

import aws_cdk as cdk
from lib.compressor_stack import CompressorStack

app = cdk.App()

# Get environment configuration
env = cdk.Environment(
    account=app.node.try_get_context("account"),
    region=app.node.try_get_context("region") or "us-east-1"
)

CompressorStack(
    app,
    "ImageCompressorStack",
    env=env,
    description="S3 Image Compressor - halves and recompresses uploaded JPEG/PNG images"
)

app.synth()
