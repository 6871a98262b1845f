"""
Lambda: Image Compressor

Triggered directly by S3 ObjectCreated notifications on the source bucket.
- Reads the first record of the event (bucket, key, event time)
- Hands the object to the compression decider
- Returns {statusCode, body} for the invocation
"""

import os
from typing import Any, Dict

import boto3

from decider import CompressorConfig, create_response, decide, parse_notification, FAILURE_MESSAGE

# Initialize client
s3_client = boto3.client('s3')

# Environment variables
DEST_BUCKET = os.environ['DEST_BUCKET']
SIZE_THRESHOLD_BYTES = int(os.environ.get('SIZE_THRESHOLD_BYTES', str(300 * 1024)))

config = CompressorConfig(
    s3_client=s3_client,
    dest_bucket=DEST_BUCKET,
    size_threshold=SIZE_THRESHOLD_BYTES,
)

print(f"Lambda initialized - DEST_BUCKET: {DEST_BUCKET}")


def handler(event: Dict[str, Any], context) -> Dict[str, Any]:
    """
    Main handler for Image Compressor Lambda

    Args:
        event: S3 notification with a Records list
        context: Lambda context

    Returns:
        Dict with statusCode and body
    """
    try:
        notification = parse_notification(event)
    except (KeyError, IndexError, TypeError) as e:
        print(f"Error parsing S3 event: {str(e)}")
        return create_response(500, FAILURE_MESSAGE)

    records = event.get('Records', [])
    if len(records) > 1:
        print(f"Event contains {len(records)} records, processing only the first")

    print(f"{notification.event_time} - {notification.bucket_name}/{notification.object_key}")

    return decide(notification, config)
