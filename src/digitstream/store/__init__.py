"""Object store layer - delivers bounded byte windows of stored objects."""

# Re-export these for import convenience
from .base import ObjectStore, StoredObject
from .local import LocalObjectStore, open_local_store
from .http import HTTPObjectStore, open_http_store


def open_store(source):
    """Factory function to create the appropriate ObjectStore for a source string."""
    source_str = str(source)
    if source_str.startswith(('http://', 'https://')):
        return open_http_store(source_str)
    if source_str.startswith('s3://'):
        # Imported lazily, boto3 is optional
        from .s3 import S3ObjectStore
        bucket, _, prefix = source_str[len('s3://'):].partition('/')
        return S3ObjectStore(bucket, prefix=prefix)
    return open_local_store(source)
