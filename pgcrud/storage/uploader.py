"""
File uploads to an S3-compatible object store (Cloudflare R2, MinIO, AWS S3).

All network calls go through a boto3 S3 client, which may be injected for
testing or to share one client across services.
"""

import hashlib
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple, Union

import boto3
from botocore.config import Config

from pgcrud.logging_config import get_logger, log_performance
from pgcrud.storage.config import (
    DEFAULT_CONTENT_TYPE,
    UploadFile,
    UploaderConfig,
    build_object_key,
    guess_mime_type,
)

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = get_logger(__name__)

PathLike = Union[str, os.PathLike]

# S3 DeleteObjects accepts at most 1000 keys per request
DELETE_BATCH_SIZE = 1000


class StorageError(RuntimeError):
    """Raised when the object store rejects an operation."""


class UploadError(StorageError):
    """Raised when an upload does not complete successfully."""


class FileValidationError(ValueError):
    """Raised when a file violates the size or type restrictions."""


class FileUploaderService:
    """
    Upload, sign, list and delete objects in a bucket.

    Args:
        config: Uploader settings; read from the environment when omitted
        s3_client: Optional boto3 S3 client; one is created from ``config``
            when omitted
    """

    def __init__(self, config: Optional[UploaderConfig] = None, s3_client: Optional["S3Client"] = None):
        self.config = config or UploaderConfig.from_env()
        self._max_file_size = self.config.max_file_size
        self._allowed_file_types = list(self.config.allowed_file_types)
        self._file_cache: Dict[Tuple[str, str, str], str] = {}
        self._cache_lock = threading.Lock()

        if s3_client is None:
            s3_client = boto3.client(
                "s3",
                region_name=self.config.region,
                endpoint_url=self.config.endpoint,
                aws_access_key_id=self.config.access_key_id,
                aws_secret_access_key=self.config.secret_access_key,
                config=Config(signature_version="s3v4"),
            )
        self.s3_client = s3_client

    # Restrictions

    @property
    def max_file_size(self) -> int:
        return self._max_file_size

    @max_file_size.setter
    def max_file_size(self, value: int) -> None:
        if value <= 0:
            raise ValueError("max_file_size must be positive")
        self._max_file_size = value

    @property
    def allowed_file_types(self) -> List[str]:
        return self._allowed_file_types

    @allowed_file_types.setter
    def allowed_file_types(self, value: Sequence[str]) -> None:
        self._allowed_file_types = list(value)

    def _validate(self, file: UploadFile) -> None:
        if file.size > self._max_file_size:
            raise FileValidationError(
                f"File size {file.size} exceeds the limit of {self._max_file_size} bytes"
            )
        if self._allowed_file_types and file.content_type not in self._allowed_file_types:
            raise FileValidationError(f"Invalid file type: {file.content_type}")

    @staticmethod
    def get_mime_type(extension: str) -> str:
        """Return the MIME type for an extension or file name, or the binary default."""
        return guess_mime_type(extension) or DEFAULT_CONTENT_TYPE

    # Uploads

    @staticmethod
    def create_file_from_path(file_path: PathLike) -> UploadFile:
        """Load a local file into an :class:`UploadFile`."""
        try:
            return UploadFile.from_path(file_path)
        except OSError as e:
            logger.error("Error creating file object from %s: %s", file_path, e)
            raise

    def upload_file(
        self,
        file: UploadFile,
        bucket_name: str,
        key_prefix: str = "",
        key_name: str = "",
        key_suffix: str = "",
    ) -> str:
        """
        Upload an in-memory file and return its public URL.

        Uploading identical content to the same bucket and key again returns
        the cached URL without another request.

        Args:
            file: File to upload
            bucket_name: Target bucket
            key_prefix: Key prefix without leading slash, e.g. ``demo/upload``
            key_name: Object name without extension; defaults to the file stem
            key_suffix: Extension such as ``png``; defaults to the file's own

        Raises:
            ValueError: If ``bucket_name`` is empty
            FileValidationError: If the file is too large or of a disallowed type
            UploadError: If the store does not acknowledge the upload
        """
        logger.info(
            "Uploading file: %s to %s, key_prefix: %s, key_name: %s, key_suffix: %s",
            file.name, bucket_name, key_prefix, key_name, key_suffix,
        )
        if not bucket_name:
            raise ValueError("bucket_name cannot be empty")

        self._validate(file)

        key = build_object_key(file.name, key_prefix, key_name, key_suffix)
        cache_key = (bucket_name, key, hashlib.sha256(file.content).hexdigest())
        with self._cache_lock:
            cached = self._file_cache.get(cache_key)
        if cached is not None:
            logger.debug("Returning cached URL for %s", key)
            return cached

        url = self._upload_to_storage(bucket_name, key, file.content, file.content_type)

        with self._cache_lock:
            self._file_cache[cache_key] = url
        return url

    def upload_local_file(
        self,
        file_path: PathLike,
        bucket_name: str,
        key_prefix: str = "",
        key_name: str = "",
        key_suffix: str = "",
        remove_after_upload: bool = False,
    ) -> str:
        """
        Upload a file from disk and return its public URL.

        With ``remove_after_upload`` the local file is deleted once the upload
        succeeded; a failed deletion is logged and does not fail the upload.

        Raises:
            FileNotFoundError: If ``file_path`` does not exist
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")
        if not bucket_name:
            raise ValueError("bucket_name cannot be empty")

        key = build_object_key(path.name, key_prefix, key_name, key_suffix)
        content_type = self.get_mime_type(key_suffix or path.name)

        url = self._upload_to_storage(bucket_name, key, path.read_bytes(), content_type)

        if remove_after_upload:
            try:
                path.unlink()
            except OSError as e:
                logger.error("Failed to delete file %s: %s", path, e)

        return url

    def upload_file_buffer(self, bucket_name: str, key: str, data: bytes, file_ext: str) -> str:
        """Upload raw bytes under an explicit key; the content type follows ``file_ext``."""
        return self._upload_to_storage(bucket_name, key, data, self.get_mime_type(file_ext))

    def upload_batch(
        self,
        file_paths: Sequence[PathLike],
        bucket_name: str,
        key_prefix: str = "",
        key_suffix: str = "",
        remove_after_upload: bool = False,
    ) -> List[str]:
        """
        Upload several local files in parallel.

        Each file keeps its own name. URLs are returned in input order; the
        first failure is re-raised.
        """
        if not file_paths:
            return []

        workers = min(self.config.max_workers, len(file_paths))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(
                    self.upload_local_file,
                    file_path,
                    bucket_name,
                    key_prefix=key_prefix,
                    key_suffix=key_suffix,
                    remove_after_upload=remove_after_upload,
                )
                for file_path in file_paths
            ]
            return [future.result() for future in futures]

    @log_performance(logger, "object upload")
    def _upload_to_storage(self, bucket_name: str, key: str, data: bytes, content_type: str) -> str:
        params: Dict[str, Any] = {
            "Bucket": bucket_name,
            "Key": key,
            "Body": data,
            "ContentType": content_type or DEFAULT_CONTENT_TYPE,
        }
        if self.config.acl:
            params["ACL"] = self.config.acl

        response = self.s3_client.put_object(**params)

        status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if status == 200:
            logger.info("File uploaded successfully: %s/%s", bucket_name, key)
            return f"{self.config.base_remote_url.rstrip('/')}/{key}"

        logger.error("File upload error: %s", response)
        raise UploadError(f"Upload of {key} failed with status {status}")

    # Signed URLs

    def get_presigned_upload_url(self, bucket_name: str, key: str, expires_in: int = 3600) -> str:
        return self.s3_client.generate_presigned_url(
            "put_object", Params={"Bucket": bucket_name, "Key": key}, ExpiresIn=expires_in
        )

    def get_presigned_download_url(self, bucket_name: str, key: str, expires_in: int = 3600) -> str:
        return self.s3_client.generate_presigned_url(
            "get_object", Params={"Bucket": bucket_name, "Key": key}, ExpiresIn=expires_in
        )

    # Deletion and listing

    def delete_object(self, bucket_name: str, key: str) -> None:
        self.s3_client.delete_object(Bucket=bucket_name, Key=key)

    def delete_objects(self, bucket_name: str, keys: Sequence[str]) -> None:
        """
        Delete several objects.

        Raises:
            StorageError: If the store reports keys it could not delete
        """
        failed = []
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            response = self.s3_client.delete_objects(
                Bucket=bucket_name,
                Delete={"Objects": [{"Key": key} for key in batch]},
            )
            failed.extend(error["Key"] for error in response.get("Errors", []))

        if failed:
            logger.error("Failed to delete %d objects from %s", len(failed), bucket_name)
            raise StorageError(f"Could not delete objects: {', '.join(failed)}")

    def list_objects(self, bucket_name: str, prefix: str = "") -> Dict[str, Any]:
        """Return the raw ``ListObjectsV2`` response for the bucket."""
        return self.s3_client.list_objects_v2(Bucket=bucket_name, Prefix=prefix)
