"""
Object storage for task image blobs.

ObjectStorage is the contract the image service relies on: upload bytes under
a suggested name and get back a stable URL, delete by that URL. Size limits
are enforced by the caller. LocalObjectStorage keeps blobs on local disk.
"""
from __future__ import annotations

import logging
import os
import uuid
from typing import Protocol

from sprintboard.core.config import settings

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):

    async def upload(self, data: bytes, suggested_name: str) -> str: ...

    async def delete(self, url: str) -> None: ...


def _safe_name(suggested_name: str) -> str:
    base = os.path.basename(suggested_name or "") or "image"
    return f"{uuid.uuid4()}_{base.replace(' ', '_')}"


class LocalObjectStorage:
    """Stores blobs under upload_dir and serves them from base_url."""

    def __init__(self, upload_dir: str, base_url: str) -> None:
        self.upload_dir = upload_dir
        self.base_url = base_url.rstrip("/")

    async def upload(self, data: bytes, suggested_name: str) -> str:
        os.makedirs(self.upload_dir, exist_ok=True)
        stored_name = _safe_name(suggested_name)
        file_path = os.path.join(self.upload_dir, stored_name)
        with open(file_path, "wb") as f:
            f.write(data)
        logger.info("Stored blob %s (%d bytes)", stored_name, len(data))
        return f"{self.base_url}/{stored_name}"

    async def delete(self, url: str) -> None:
        stored_name = url.rsplit("/", 1)[-1]
        file_path = os.path.join(self.upload_dir, stored_name)
        if os.path.exists(file_path):
            os.remove(file_path)
            logger.info("Removed blob %s", stored_name)


def get_object_storage() -> ObjectStorage:
    """FastAPI dependency returning the configured object storage."""
    return LocalObjectStorage(settings.UPLOAD_DIR, settings.UPLOAD_BASE_URL)
