"""
Compressor Stack - Event-triggered image compression

This stack creates:
- S3 bucket for source images
- S3 bucket for compressed output
- Pillow Lambda layer
- Compressor Lambda function
- S3 event trigger on the source bucket for supported image suffixes
"""

from aws_cdk import (
    Stack,
    Duration,
    RemovalPolicy,
    CfnOutput,
    aws_s3 as s3,
    aws_lambda as lambda_,
    aws_iam as iam,
    aws_s3_notifications as s3n,
    aws_logs as logs,
)
from constructs import Construct
import json

from config.constants import NOTIFICATION_SUFFIXES, SIZE_THRESHOLD_BYTES


class CompressorStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Load configuration
        config = self._load_config()

        # Create S3 bucket for uploaded images
        self.source_bucket = s3.Bucket(
            self,
            "SourceBucket",
            bucket_name=config["buckets"].get("source_bucket"),
            removal_policy=RemovalPolicy.DESTROY,
            auto_delete_objects=True,
            versioned=False,
        )

        # Create S3 bucket for compressed images
        # Must not share the source bucket, otherwise outputs re-trigger the function
        self.dest_bucket = s3.Bucket(
            self,
            "DestinationBucket",
            bucket_name=config["buckets"].get("dest_bucket"),
            removal_policy=RemovalPolicy.DESTROY,
            auto_delete_objects=True,
            versioned=False,
        )

        lambda_role = self._create_lambda_role()

        self.compressor_lambda = self._create_compressor_lambda(lambda_role, config)

        self._setup_s3_trigger()

        CfnOutput(
            self,
            "SourceBucketName",
            value=self.source_bucket.bucket_name,
            description="Upload images here to trigger compression",
        )
        CfnOutput(
            self,
            "DestinationBucketName",
            value=self.dest_bucket.bucket_name,
            description="Compressed images are written here",
        )
        CfnOutput(
            self,
            "CompressorFunctionName",
            value=self.compressor_lambda.function_name,
            description="Compressor Lambda function",
        )

    def _load_config(self) -> dict:
        """Load configuration from context or use defaults"""
        env = self.node.try_get_context("environment") or "dev"
        config_path = f"config/{env}.json"

        try:
            with open(config_path, "r") as f:
                return json.load(f)
        except FileNotFoundError:
            # Return default config (CloudFormation generates bucket names)
            return {
                "buckets": {},
                "compressor": {
                    "size_threshold_bytes": SIZE_THRESHOLD_BYTES,
                    "memory_size": 1024,
                    "timeout_seconds": 60,
                },
            }

    def _create_lambda_role(self) -> iam.Role:
        """Create IAM role with read/tag access to the source and write/tag access to the destination"""
        role = iam.Role(
            self,
            "CompressorLambdaRole",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(
                    "service-role/AWSLambdaBasicExecutionRole"
                )
            ],
        )

        # Source: read bytes and tags, write the compressed tag
        role.add_to_policy(
            iam.PolicyStatement(
                actions=[
                    "s3:GetObject",
                    "s3:GetObjectTagging",
                    "s3:PutObjectTagging",
                ],
                resources=[f"{self.source_bucket.bucket_arn}/*"],
            )
        )

        # HeadObject on a missing key needs ListBucket to return 404 instead of 403
        role.add_to_policy(
            iam.PolicyStatement(
                actions=["s3:ListBucket"],
                resources=[self.source_bucket.bucket_arn],
            )
        )

        # Destination: PutObject with Tagging requires both actions
        role.add_to_policy(
            iam.PolicyStatement(
                actions=[
                    "s3:PutObject",
                    "s3:PutObjectTagging",
                ],
                resources=[f"{self.dest_bucket.bucket_arn}/*"],
            )
        )

        return role

    def _create_compressor_lambda(
        self, role: iam.Role, config: dict
    ) -> lambda_.Function:
        """Create the compressor Lambda with the Pillow layer"""
        compressor_config = config.get("compressor", {})

        # Pillow ships native wheels, build the layer for the Lambda architecture
        pillow_layer = lambda_.LayerVersion(
            self,
            "PillowLayer",
            code=lambda_.Code.from_asset("lambda/layers/pillow"),
            compatible_runtimes=[lambda_.Runtime.PYTHON_3_11],
            description="Pillow for image decoding, resizing and encoding",
        )

        return lambda_.Function(
            self,
            "CompressorFunction",
            runtime=lambda_.Runtime.PYTHON_3_11,
            handler="index.handler",
            code=lambda_.Code.from_asset("lambda/compressor"),
            layers=[pillow_layer],
            role=role,
            timeout=Duration.seconds(compressor_config.get("timeout_seconds", 60)),
            memory_size=compressor_config.get("memory_size", 1024),  # Full image is decoded in memory
            log_retention=logs.RetentionDays.THREE_DAYS,  # Auto-delete logs after 3 days
            environment={
                "DEST_BUCKET": self.dest_bucket.bucket_name,
                "SIZE_THRESHOLD_BYTES": str(
                    compressor_config.get("size_threshold_bytes", SIZE_THRESHOLD_BYTES)
                ),
            },
        )

    def _setup_s3_trigger(self):
        """Invoke the compressor for every new object with a supported suffix"""
        for suffix in NOTIFICATION_SUFFIXES:
            self.source_bucket.add_event_notification(
                s3.EventType.OBJECT_CREATED,
                s3n.LambdaDestination(self.compressor_lambda),
                s3.NotificationKeyFilter(suffix=suffix),
            )
