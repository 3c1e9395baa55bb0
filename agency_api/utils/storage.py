# agency_api/utils/storage.py

"""
Blob storage for uploaded files. Files live under STORAGE_DIR and are served
from STORAGE_PUBLIC_URL; keys are ``<folder>/<uuid>-<safe file name>``.
"""

import os
import re
import uuid
import aiofiles
import aiofiles.os
from fastapi import HTTPException, UploadFile

from agency_api.config import settings


async def read_upload(file: UploadFile) -> bytes:
    """Content of an uploaded file; empty files and files above MAX_UPLOAD_BYTES are refused."""
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Geen bestand ontvangen.")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        max_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise HTTPException(status_code=413, detail=f"Bestand is te groot (maximaal {max_mb} MB).")
    return content


def safe_file_name(file_name: str) -> str:
    base = os.path.basename(file_name or "").strip()
    base = re.sub(r"[^A-Za-z0-9._-]+", "_", base).strip("._")
    return base[:120] or "bestand"


class BlobStorage:
    def __init__(self, root: str | None = None, public_url: str | None = None):
        self.root = os.path.abspath(root or settings.STORAGE_DIR)
        self.public_url = (public_url or settings.STORAGE_PUBLIC_URL).rstrip("/")
        os.makedirs(self.root, exist_ok=True)

    def build_key(self, folder: str, file_name: str) -> str:
        return f"{folder}/{uuid.uuid4().hex}-{safe_file_name(file_name)}"

    def path_for(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root, key))
        if not path.startswith(self.root + os.sep):
            raise ValueError(f"Invalid storage key: {key}")
        return path

    def url_for(self, key: str) -> str:
        return f"{self.public_url}/{key}"

    async def put(self, folder: str, file_name: str, content: bytes) -> str:
        """Writes the bytes and returns the storage key."""
        key = self.build_key(folder, file_name)
        path = self.path_for(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        async with aiofiles.open(path, mode="wb") as f:
            await f.write(content)
        return key

    async def delete(self, key: str) -> bool:
        """Removes the blob; False when it was already gone."""
        path = self.path_for(key)
        if not os.path.exists(path):
            return False
        await aiofiles.os.remove(path)
        return True
