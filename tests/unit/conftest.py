"""
Shared fixtures for compressor unit tests
"""

import io
from urllib.parse import parse_qsl

import numpy as np
import pytest
from botocore.exceptions import ClientError
from PIL import Image


class FakeS3:
    """
    In-memory stand-in for the boto3 S3 client methods the compressor uses.

    Every call is recorded in `calls` as (method, bucket, key). Methods listed
    in `failures` raise a ClientError instead of running.
    """

    def __init__(self):
        self.objects = {}
        self.calls = []
        self.failures = {}

    def add_object(self, bucket, key, body, content_type='image/jpeg', tags=None, content_length=None):
        self.objects[(bucket, key)] = {
            'Body': body,
            'ContentType': content_type,
            'TagSet': list(tags or []),
            'ContentLength': len(body) if content_length is None else content_length,
        }

    def tags(self, bucket, key):
        return self.objects[(bucket, key)]['TagSet']

    def method_names(self):
        return [name for name, _, _ in self.calls]

    def _record(self, name, bucket, key):
        self.calls.append((name, bucket, key))
        if name in self.failures:
            raise self.failures[name]

    def _get(self, operation, bucket, key):
        try:
            return self.objects[(bucket, key)]
        except KeyError:
            raise ClientError(
                {'Error': {'Code': 'NoSuchKey', 'Message': 'The specified key does not exist.'}},
                operation,
            )

    def get_object_tagging(self, Bucket, Key):
        self._record('get_object_tagging', Bucket, Key)
        return {'TagSet': list(self._get('GetObjectTagging', Bucket, Key)['TagSet'])}

    def put_object_tagging(self, Bucket, Key, Tagging):
        self._record('put_object_tagging', Bucket, Key)
        self._get('PutObjectTagging', Bucket, Key)['TagSet'] = list(Tagging['TagSet'])
        return {}

    def head_object(self, Bucket, Key):
        self._record('head_object', Bucket, Key)
        obj = self._get('HeadObject', Bucket, Key)
        return {'ContentLength': obj['ContentLength'], 'ContentType': obj['ContentType']}

    def get_object(self, Bucket, Key):
        self._record('get_object', Bucket, Key)
        obj = self._get('GetObject', Bucket, Key)
        return {
            'Body': io.BytesIO(obj['Body']),
            'ContentType': obj['ContentType'],
            'ContentLength': obj['ContentLength'],
        }

    def put_object(self, Bucket, Key, Body, ContentType, Tagging=''):
        self._record('put_object', Bucket, Key)
        tags = [{'Key': k, 'Value': v} for k, v in parse_qsl(Tagging)]
        self.add_object(Bucket, Key, Body, content_type=ContentType, tags=tags)
        return {}


def noise_image(width, height, mode='RGB'):
    """Random pixels, so encoded files stay well above the size threshold"""
    channels = len(mode)
    rng = np.random.default_rng(seed=42)
    pixels = rng.integers(0, 256, size=(height, width, channels), dtype=np.uint8)
    return Image.fromarray(pixels)


def encode(image, fmt, **params):
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **params)
    return buffer.getvalue()


@pytest.fixture
def fake_s3():
    return FakeS3()


@pytest.fixture(scope='session')
def large_jpeg():
    return encode(noise_image(1000, 800), 'JPEG', quality=95)


@pytest.fixture(scope='session')
def large_png():
    return encode(noise_image(1000, 800), 'PNG')


def gradient_16bit(width, height):
    """Black to white left-to-right ramp stored with 16 bits per sample"""
    ramp = np.linspace(0, 65535, num=width, dtype=np.uint16)
    return Image.fromarray(np.tile(ramp, (height, 1)))


def column_means(image):
    """Mean grey level of the left and right quarters"""
    pixels = np.asarray(image.convert('L'), dtype=np.float64)
    quarter = pixels.shape[1] // 4
    return pixels[:, :quarter].mean(), pixels[:, -quarter:].mean()


@pytest.fixture(scope='session')
def large_png_16bit():
    return encode(gradient_16bit(1000, 800), 'PNG')
