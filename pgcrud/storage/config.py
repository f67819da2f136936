"""
Configuration and payload models for the object storage helper.
"""
import mimetypes
import os
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from pgcrud.settings import get_storage_base_url, get_storage_credentials, get_storage_endpoint

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB


class UploaderConfig(BaseModel):
    """Settings for :class:`~pgcrud.storage.uploader.FileUploaderService`."""
    max_file_size: int = Field(DEFAULT_MAX_FILE_SIZE, gt=0, description="Upload size limit in bytes")
    allowed_file_types: List[str] = Field(
        default_factory=list, description="Allowed MIME types; empty allows everything"
    )
    endpoint: Optional[str] = Field(None, description="S3-compatible endpoint URL")
    access_key_id: Optional[str] = Field(None, description="Access key id")
    secret_access_key: Optional[str] = Field(None, description="Secret access key")
    base_remote_url: str = Field("", description="Public base URL objects are served from")
    region: str = Field("auto", description="Region name passed to the client")
    acl: Optional[str] = Field("public-read", description="Canned ACL for uploaded objects")
    max_workers: int = Field(8, ge=1, description="Thread pool size for batch uploads")

    @classmethod
    def from_env(cls, **overrides) -> "UploaderConfig":
        """Build a config from ``R2_*`` / ``STORAGE_*`` variables; keyword overrides win."""
        access_key_id, secret_access_key = get_storage_credentials()
        values = {
            "endpoint": get_storage_endpoint(),
            "access_key_id": access_key_id,
            "secret_access_key": secret_access_key,
            "base_remote_url": get_storage_base_url(),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


class UploadFile(BaseModel):
    """An in-memory file ready to be uploaded."""
    name: str = Field(..., description="Original file name, including extension")
    content: bytes = Field(..., description="Raw file content")
    content_type: str = Field(DEFAULT_CONTENT_TYPE, description="MIME type of the content")

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, file_path: Union[str, os.PathLike]) -> "UploadFile":
        path = Path(file_path)
        return cls(
            name=path.name,
            content=path.read_bytes(),
            content_type=guess_mime_type(path.name) or DEFAULT_CONTENT_TYPE,
        )


def guess_mime_type(name_or_extension: str) -> Optional[str]:
    """Resolve a MIME type from a file name (``a.png``) or a bare extension (``png``, ``.png``)."""
    name = name_or_extension.lstrip(".")
    if "." not in name:
        name = f"file.{name}"
    mime_type, _ = mimetypes.guess_type(name)
    return mime_type


def build_object_key(file_name: str, key_prefix: str = "", key_name: str = "", key_suffix: str = "") -> str:
    """
    Build ``prefix/name.suffix``.

    ``key_name`` defaults to the file stem and ``key_suffix`` to its
    extension; the dot is left out when there is no suffix.
    """
    stem, extension = os.path.splitext(os.path.basename(file_name))
    name = key_name or stem
    suffix = (key_suffix or extension).lstrip(".")
    key = f"{name}.{suffix}" if suffix else name

    prefix = key_prefix.strip("/")
    return f"{prefix}/{key}" if prefix else key
