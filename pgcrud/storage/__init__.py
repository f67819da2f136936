from pgcrud.storage.config import UploadFile, UploaderConfig
from pgcrud.storage.uploader import (
    FileUploaderService,
    FileValidationError,
    StorageError,
    UploadError,
)

__all__ = [
    "FileUploaderService",
    "FileValidationError",
    "StorageError",
    "UploadError",
    "UploadFile",
    "UploaderConfig",
]
