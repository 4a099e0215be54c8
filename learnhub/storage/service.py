"""Firebase Storage access for media cleanup.

Lesson and course rows reference their media by object-storage key. When a
row is deleted its files are removed here, after the database commit; a
failed removal is logged and never undoes the delete.
"""

import asyncio
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from learnhub.config.settings import Settings


if TYPE_CHECKING:
    from google.cloud.storage import Bucket


logger = structlog.get_logger(__name__)


class StorageError(Exception):
    """Base error for storage operations."""

    def __init__(self, message: str, code: str = "storage_error") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


class StorageNotConfiguredError(StorageError):
    """Error when Firebase Storage is not configured."""

    def __init__(self, message: str = "Firebase Storage is not configured") -> None:
        super().__init__(message, "storage_not_configured")


# Firebase app singleton
_firebase_app = None


def _init_bucket(settings: Settings) -> "Bucket":
    """Initialize Firebase Admin SDK and get the storage bucket.

    Raises:
        StorageNotConfiguredError: If Firebase is not configured.
    """
    global _firebase_app  # noqa: PLW0603

    if not settings.firebase_configured:
        raise StorageNotConfiguredError

    # Lazy import to avoid loading Firebase SDK unless needed
    import firebase_admin  # noqa: PLC0415
    from firebase_admin import credentials, storage  # noqa: PLC0415

    creds_path = settings.firebase_credentials_path
    if not creds_path or not Path(creds_path).exists():
        raise StorageNotConfiguredError(
            f"Firebase credentials file not found: {creds_path}"
        )

    try:
        if _firebase_app is None:
            cred = credentials.Certificate(creds_path)
            _firebase_app = firebase_admin.initialize_app(
                cred,
                {
                    "storageBucket": settings.firebase_storage_bucket,
                    "projectId": settings.firebase_project_id,
                },
            )
            logger.info(
                "firebase_initialized",
                project_id=settings.firebase_project_id,
                bucket=settings.firebase_storage_bucket,
            )
        return storage.bucket(app=_firebase_app)
    except Exception as e:
        logger.exception("firebase_init_failed", error=str(e))
        raise StorageNotConfiguredError(f"Failed to initialize Firebase: {e}") from e


class ObjectStorageService:
    """Deletes media files from Firebase Storage."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._bucket: Bucket | None = None

    @property
    def is_configured(self) -> bool:
        """Check if Firebase Storage is configured."""
        return self.settings.firebase_configured

    def _get_bucket(self) -> "Bucket":
        if self._bucket is None:
            self._bucket = _init_bucket(self.settings)
        return self._bucket

    def _delete_blob(self, storage_path: str) -> bool:
        blob = self._get_bucket().blob(storage_path.lstrip("/"))
        if not blob.exists():
            return False
        blob.delete()
        return True

    async def delete_file(self, storage_path: str) -> bool:
        """Delete a file from Firebase Storage.

        Returns:
            True if deleted, False if not found.

        Raises:
            StorageNotConfiguredError: If Firebase is not configured.
            StorageError: If the delete call fails.
        """
        if not self.is_configured:
            raise StorageNotConfiguredError

        try:
            deleted = await asyncio.to_thread(self._delete_blob, storage_path)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete file: {e}") from e

        if deleted:
            logger.info("file_deleted", storage_path=storage_path)
        else:
            logger.warning("delete_file_not_found", storage_path=storage_path)
        return deleted

    async def cleanup(self, storage_paths: Iterable[str]) -> int:
        """Best-effort removal of several files.

        Failures are logged per file. Skipped entirely when storage is not
        configured.

        Returns:
            Number of files deleted.
        """
        paths = [path for path in storage_paths if path]
        if not paths:
            return 0
        if not self.is_configured:
            logger.debug("storage_cleanup_skipped", files=len(paths))
            return 0

        deleted = 0
        for path in paths:
            try:
                if await self.delete_file(path):
                    deleted += 1
            except StorageError as e:
                logger.warning(
                    "storage_cleanup_failed", storage_path=path, error=e.message
                )
        return deleted
