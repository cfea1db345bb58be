"""
Advisory blob storage for uploaded images.

Uploads go to S3 when a bucket is configured. When S3 is missing or
failing, images are inlined as base64 data URIs instead.
"""
import base64
import logging
import mimetypes
import uuid
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from .results import AdvisoryResult

logger = logging.getLogger(__name__)


class BlobStoreNotConfigured(Exception):
    pass


class S3BlobStore:
    def __init__(self, bucket, region_name, client=None, **credentials):
        self.bucket = bucket
        self.region_name = region_name
        self._client = client
        self._credentials = {k: v for k, v in credentials.items() if v}

    @property
    def enabled(self):
        return bool(self.bucket)

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client('s3', region_name=self.region_name, **self._credentials)
        return self._client

    def public_url(self, key):
        return f'https://{self.bucket}.s3.amazonaws.com/{key}'

    def upload(self, key, content, content_type='application/octet-stream'):
        if not self.enabled:
            return AdvisoryResult.failure(BlobStoreNotConfigured('S3 bucket is not configured'))
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=content_type,
                ACL='public-read',
            )
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"S3 upload failed for {key}: {e}")
            return AdvisoryResult.failure(e)
        logger.info(f"Uploaded {key} to S3 bucket {self.bucket}")
        return AdvisoryResult.success(self.public_url(key))

    def key_for_url(self, url):
        """Object key behind one of our public URLs, or None for anything else."""
        prefix = self.public_url('')
        if self.enabled and url and url.startswith(prefix):
            return url[len(prefix):] or None
        return None

    def delete(self, key):
        if not self.enabled:
            return AdvisoryResult.failure(BlobStoreNotConfigured('S3 bucket is not configured'))
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"S3 delete failed for {key}: {e}")
            return AdvisoryResult.failure(e)
        return AdvisoryResult.success(True)

    def ping(self):
        if not self.enabled:
            return AdvisoryResult.failure(BlobStoreNotConfigured('S3 bucket is not configured'))
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except (BotoCoreError, ClientError) as e:
            return AdvisoryResult.failure(e)
        return AdvisoryResult.success({'bucket': self.bucket})


def inline_data_uri(content, content_type):
    encoded = base64.b64encode(content).decode('ascii')
    return f'data:{content_type};base64,{encoded}'


def save_image(uploaded_file, prefix, blob_store=None):
    """
    Store an uploaded image and return a URL for it.

    Returns the S3 URL when the upload succeeds, otherwise a base64 data URI.
    """
    blob_store = blob_store or get_blob_store()
    content = uploaded_file.read()
    content_type = (
        getattr(uploaded_file, 'content_type', None)
        or mimetypes.guess_type(uploaded_file.name)[0]
        or 'application/octet-stream'
    )
    key = f'{prefix}/{uuid.uuid4()}-{uploaded_file.name}'

    result = blob_store.upload(key, content, content_type)
    if result.ok:
        return result.value
    return inline_data_uri(content, content_type)


@lru_cache()
def get_blob_store():
    return S3BlobStore(
        bucket=settings.S3_BUCKET_NAME,
        region_name=settings.AWS_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
    )


def discard_image(url, blob_store=None):
    """Remove a replaced image from S3; inline data URIs need no cleanup."""
    blob_store = blob_store or get_blob_store()
    key = blob_store.key_for_url(url)
    if key is None:
        return AdvisoryResult.success(False)
    return blob_store.delete(key)
