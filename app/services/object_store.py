"""
Image and document uploads.

Uploads go to the Firebase Storage bucket configured on the default
firebase_admin app. Callers treat a failed upload as "no file" and carry on.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging
import mimetypes
import uuid

from app.core.settings import settings

logger = logging.getLogger(__name__)


def _extension_for(mime_type: Optional[str]) -> str:
    extension = mimetypes.guess_extension(mime_type or "") or ".bin"
    # guess_extension returns ".jpe" for image/jpeg on some platforms
    return ".jpg" if extension in (".jpe", ".jpeg") else extension


class ObjectStore(ABC):

    @abstractmethod
    def upload(self, data: bytes, mime_type: Optional[str], folder: str) -> str:
        """Store the bytes and return a URL for them. Raises on failure."""
        raise NotImplementedError


class FirebaseObjectStore(ObjectStore):

    def __init__(self):
        from firebase_admin import storage

        from app.config.firebase import initialize_firebase_app

        initialize_firebase_app()
        self.bucket = storage.bucket()

    def upload(self, data: bytes, mime_type: Optional[str], folder: str) -> str:
        path = f"{folder.strip('/')}/{uuid.uuid4().hex}{_extension_for(mime_type)}"
        blob = self.bucket.blob(path)
        blob.upload_from_string(data, content_type=mime_type or "application/octet-stream")
        blob.make_public()
        logger.info(f"Uploaded {len(data)} bytes to {path}")
        return blob.public_url


class SimulatedObjectStore(ObjectStore):
    """Keeps uploads in memory and hands out stable fake URLs."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}

    def upload(self, data: bytes, mime_type: Optional[str], folder: str) -> str:
        path = f"{folder.strip('/')}/{uuid.uuid4().hex}{_extension_for(mime_type)}"
        self.objects[path] = data
        logger.info(f"[SIMULATED] Stored {len(data)} bytes at {path}")
        return f"{settings.SERVER_URL.rstrip('/')}/uploads/{path}"


# Global service instance (singleton pattern)
_object_store: Optional[ObjectStore] = None


def get_object_store() -> ObjectStore:
    global _object_store
    if _object_store is None:
        if settings.USE_MOCK_DB or not settings.FIREBASE_STORAGE_BUCKET:
            _object_store = SimulatedObjectStore()
            logger.info("Object store initialized: simulated")
        else:
            _object_store = FirebaseObjectStore()
            logger.info(f"Object store initialized: firebase ({settings.FIREBASE_STORAGE_BUCKET})")
    return _object_store


def set_object_store(store: Optional[ObjectStore]) -> None:
    global _object_store
    _object_store = store
