#!/usr/bin/env python3
"""
Invoke the deployed compressor Lambda for an existing object, as if S3 had
just sent the ObjectCreated notification.

Usage: invoke_compressor.py <function-name> <bucket> <key>
"""

import json
import sys
from datetime import datetime, timezone
from urllib.parse import quote_plus

import boto3


def build_event(bucket, key):
    """S3-shaped notification with the key encoded the way S3 encodes it"""
    return {
        "Records": [
            {
                "eventTime": datetime.now(timezone.utc).isoformat(),
                "eventName": "ObjectCreated:Put",
                "s3": {
                    "bucket": {"name": bucket},
                    "object": {"key": quote_plus(key, safe="/")},
                },
            }
        ]
    }


def invoke(function_name, bucket, key):
    lambda_client = boto3.client("lambda")
    event = build_event(bucket, key)

    print(f"\n📤 Invoking {function_name} for s3://{bucket}/{key}")
    print("-" * 60)

    response = lambda_client.invoke(
        FunctionName=function_name,
        InvocationType="RequestResponse",
        Payload=json.dumps(event).encode("utf-8"),
    )
    payload = json.loads(response["Payload"].read())

    if "FunctionError" in response:
        print(f"❌ Function error: {response['FunctionError']}")
    print(f"Status Code: {payload.get('statusCode')}")
    print(f"Body: {payload.get('body')}")
    return payload


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(1)

    result = invoke(sys.argv[1], sys.argv[2], sys.argv[3])
    sys.exit(0 if result.get("statusCode") == 200 else 1)
