"""
Compression decider

Decides the terminal outcome for one S3 object-created notification:
- Rejects unsupported file types (400) before any S3 call
- Skips objects already tagged compressed=true (200)
- Tags objects below the size threshold without transcoding (200)
- Otherwise halves the image, recompresses it into the destination
  bucket and tags the source (200)

Any failure, including an undecodable key, is reported as a 500 result. There are
no retries and no rollback of tags written before a later step fails.
"""

import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List
from urllib.parse import unquote_plus, urlencode

from policies import SCALE_FACTOR, compute_target_size, get_policy, load_image, probe_dimensions

# Copies of config/constants.py values; the Lambda asset only bundles this directory
SUPPORTED_FORMATS = frozenset({'jpg', 'jpeg', 'png'})
SIZE_THRESHOLD_BYTES = 300 * 1024

COMPRESSED_TAG_KEY = 'compressed'
COMPRESSED_TAG_VALUE = 'true'

FAILURE_MESSAGE = 'Error occurred while compressing the image.'


@dataclass(frozen=True)
class Notification:
    bucket_name: str
    object_key: str
    event_time: str = ''


@dataclass(frozen=True)
class CompressorConfig:
    """Dependencies for one decide() call; s3_client is any boto3-compatible S3 client"""
    s3_client: Any
    dest_bucket: str
    supported_formats: FrozenSet[str] = field(default=SUPPORTED_FORMATS)
    size_threshold: int = SIZE_THRESHOLD_BYTES
    scale_factor: float = SCALE_FACTOR

    def __post_init__(self):
        if not self.dest_bucket:
            raise ValueError("Destination bucket is required")


def parse_notification(event: Dict[str, Any]) -> Notification:
    """
    Build a Notification from an S3 event.

    Only the first record is used; further records in the batch are ignored.

    Raises:
        KeyError, IndexError: if the event is not S3-shaped
    """
    record = event['Records'][0]
    s3 = record['s3']

    return Notification(
        bucket_name=s3['bucket']['name'],
        object_key=s3['object']['key'],
        event_time=record.get('eventTime', ''),
    )


def decode_key(raw_key: str) -> str:
    """
    Undo S3 event key encoding ('+' for space, then percent escapes)

    Raises:
        UnicodeDecodeError: if the escapes are not valid UTF-8
    """
    return unquote_plus(raw_key, errors='strict')


def get_extension(key: str) -> str:
    """Lowercase text after the final '.', or '' if the key has none"""
    _, dot, extension = key.rpartition('.')
    if not dot:
        return ''
    return extension.lower()


def has_compressed_tag(tag_set: List[Dict[str, str]]) -> bool:
    return any(
        tag.get('Key') == COMPRESSED_TAG_KEY and tag.get('Value') == COMPRESSED_TAG_VALUE
        for tag in tag_set
    )


def replace_tag_set(s3_client, bucket: str, key: str) -> None:
    """
    Write compressed=true as the object's entire tag set.

    PutObjectTagging replaces the full set, so any other tags on the object
    are dropped. Callers that need to keep them must read-modify-write.
    """
    s3_client.put_object_tagging(
        Bucket=bucket,
        Key=key,
        Tagging={
            'TagSet': [
                {'Key': COMPRESSED_TAG_KEY, 'Value': COMPRESSED_TAG_VALUE}
            ]
        },
    )


def create_response(status_code: int, body: str) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'body': body,
    }


def decide(notification: Notification, config: CompressorConfig) -> Dict[str, Any]:
    """
    Run the compression pipeline for one object

    Args:
        notification: Source bucket and raw (encoded) key
        config: S3 client, destination bucket and thresholds

    Returns:
        Dict with statusCode (200, 400 or 500) and a body message
    """
    try:
        src_bucket = notification.bucket_name
        src_key = decode_key(notification.object_key)
        extension = get_extension(src_key)

        if extension not in config.supported_formats:
            print(f"Unsupported file type ({extension}) for {src_bucket}/{src_key}")
            return create_response(400, f"Unsupported file type ({extension})")

        s3_client = config.s3_client

        # Step 1: Idempotency check
        tagging = s3_client.get_object_tagging(Bucket=src_bucket, Key=src_key)
        tags = tagging.get('TagSet', [])
        print(f"Current tags: {tags}")

        if has_compressed_tag(tags):
            message = f"Image {src_bucket}/{src_key} has already been compressed. Skipping compression."
            print(message)
            return create_response(200, message)

        # Step 2: Size check
        head = s3_client.head_object(Bucket=src_bucket, Key=src_key)
        image_size = head['ContentLength']

        if image_size < config.size_threshold:
            print(
                f"Image {src_bucket}/{src_key} is below {config.size_threshold // 1024} KB "
                f"({image_size} bytes). Tagging without compression."
            )
            replace_tag_set(s3_client, src_bucket, src_key)
            return create_response(
                200,
                f"Image {src_bucket}/{src_key} is below {config.size_threshold // 1024} KB. "
                f"Skipping compression but added the tag \"{COMPRESSED_TAG_KEY}={COMPRESSED_TAG_VALUE}\".",
            )

        # Step 3: Fetch and probe
        obj = s3_client.get_object(Bucket=src_bucket, Key=src_key)
        content_type = obj.get('ContentType', 'application/octet-stream')
        image = load_image(obj['Body'].read())

        width, height = probe_dimensions(image)
        target_size = compute_target_size(width, height, config.scale_factor)
        print(f"Resizing {width}x{height} to fit within {target_size[0]}x{target_size[1]}")

        # Step 4: Transcode
        output = get_policy(extension).encode(image, target_size)
        print(f"Encoded {len(output)} bytes (source {image_size} bytes)")

        # Step 5: Publish to destination, tagged at creation
        s3_client.put_object(
            Bucket=config.dest_bucket,
            Key=src_key,
            Body=output,
            ContentType=content_type,
            Tagging=urlencode({COMPRESSED_TAG_KEY: COMPRESSED_TAG_VALUE}),
        )

        # Step 6: Mark the source
        replace_tag_set(s3_client, src_bucket, src_key)

        message = (
            f"Successfully resized and compressed {src_bucket}/{src_key} "
            f"and uploaded to {config.dest_bucket}/{src_key}"
        )
        print(message)
        return create_response(200, message)

    except Exception as e:
        print(f"Error compressing s3://{notification.bucket_name}/{notification.object_key}: {str(e)}")
        traceback.print_exc()
        return create_response(500, FAILURE_MESSAGE)
