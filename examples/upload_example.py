"""
Example usage of the upload helper.

Expects R2_ENDPOINT, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY and
STORAGE_DOMAIN in the environment, and a bucket name as first argument.
"""

import sys
import tempfile
from pathlib import Path

from pgcrud.logging_config import setup_logging
from pgcrud.storage import FileUploaderService, UploadFile, UploaderConfig


def main(bucket_name: str):
    uploader = FileUploaderService(UploaderConfig.from_env(allowed_file_types=["image/png", "text/plain"]))

    # In-memory file
    file = UploadFile(name="hello.txt", content=b"hello world", content_type="text/plain")
    print(uploader.upload_file(file, bucket_name, key_prefix="examples"))

    # Local files, uploaded in parallel and removed afterwards
    with tempfile.TemporaryDirectory() as directory:
        paths = []
        for index in range(3):
            path = Path(directory) / f"note-{index}.txt"
            path.write_text(f"note {index}")
            paths.append(path)

        for url in uploader.upload_batch(paths, bucket_name, key_prefix="examples/notes", remove_after_upload=True):
            print(url)

    # Let a client upload directly
    print(uploader.get_presigned_upload_url(bucket_name, "examples/direct.png", expires_in=600))

    listing = uploader.list_objects(bucket_name, prefix="examples/")
    keys = [obj["Key"] for obj in listing.get("Contents", [])]
    print(f"{len(keys)} objects under examples/")

    uploader.delete_objects(bucket_name, keys)


if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit(f"usage: {sys.argv[0]} BUCKET")
    setup_logging()
    main(sys.argv[1])
