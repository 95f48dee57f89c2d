"""
Key-value media the event log can live on.

Each backend maps a string key to a string value and raises StorageError
when the medium rejects an operation. A missing key reads as None.
"""
import contextlib
import os
import tempfile
from typing import Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError


class StorageError(Exception):
    pass


class MemoryStorage:
    name = "memory"

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)


class LocalFileStorage:
    """One file per key under a data directory."""

    name = "local"

    def __init__(self, data_dir: str):
        self.data_dir = data_dir

    def _path(self, key: str) -> str:
        return os.path.join(self.data_dir, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Error reading {path}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = None
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except (OSError, UnicodeEncodeError) as e:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.remove(tmp_path)
            raise StorageError(f"Error writing {path}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Error removing {path}: {e}") from e


class S3Storage:
    """One object per key under s3://bucket/prefix."""

    name = "s3"

    def __init__(self, bucket: str, prefix: str = "", s3=None):
        if s3 is None:
            from toptop_analytics.s3_client import make_s3_client
            s3 = make_s3_client()
        self.s3 = s3
        self.bucket = bucket
        self.prefix = prefix

    def _object_key(self, key: str) -> str:
        return f"{self.prefix}{key}.json"

    def get(self, key: str) -> Optional[str]:
        obj_key = self._object_key(key)
        try:
            obj = self.s3.get_object(Bucket=self.bucket, Key=obj_key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404"):
                return None
            raise StorageError(f"Error reading s3://{self.bucket}/{obj_key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Error reading s3://{self.bucket}/{obj_key}: {e}") from e

        body_stream = obj["Body"]
        try:
            body_bytes = body_stream.read()
        finally:
            body_stream.close()
        return body_bytes.decode("utf-8", errors="replace")

    def set(self, key: str, value: str) -> None:
        obj_key = self._object_key(key)
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=obj_key,
                Body=value.encode("utf-8"),
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error writing to s3://{self.bucket}/{obj_key}: {e}") from e

    def delete(self, key: str) -> None:
        obj_key = self._object_key(key)
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=obj_key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Error deleting s3://{self.bucket}/{obj_key}: {e}") from e
