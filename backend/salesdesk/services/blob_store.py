"""
Path-addressed blob storage backends.

Paths are bucket-relative POSIX paths such as ``shops/ACM/images/ACM00001.jpg``.
Uploads overwrite existing content; removing a missing blob is not an error.
"""

import logging
import shutil
from pathlib import Path, PurePosixPath

from salesdesk.exceptions import StorageError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """
    Blob store kept on the local filesystem under ``root/bucket``.

    Files are expected to be served as static files at ``base_url``, so the
    public URL of a blob is ``{base_url}/{bucket}/{path}``.
    """

    def __init__(self, root: str, base_url: str, bucket: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket

    def put(self, path: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = target.with_name(target.name + ".part")
            tmp.write_bytes(content)
            tmp.replace(target)
        except OSError as e:
            raise StorageError(f"Upload of '{path}' failed: {e}") from e
        logger.debug(f"Stored {len(content)} bytes ({content_type}) at {target}")
        return self.public_url(path)

    def copy(self, src: str, dst: str) -> str:
        source = self._resolve(src)
        target = self._resolve(dst)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as e:
            raise StorageError(f"Copy of '{src}' to '{dst}' failed: {e}") from e
        return self.public_url(dst)

    def remove(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Removal of '{path}' failed: {e}") from e

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{self.bucket}/{path}"

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise StorageError(f"Invalid blob path: '{path}'")
        return self.root / self.bucket / Path(*relative.parts)
