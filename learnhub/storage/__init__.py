"""Object storage for lesson media and course thumbnails."""

from learnhub.storage.service import (
    ObjectStorageService,
    StorageError,
    StorageNotConfiguredError,
)


__all__ = [
    "ObjectStorageService",
    "StorageError",
    "StorageNotConfiguredError",
]
