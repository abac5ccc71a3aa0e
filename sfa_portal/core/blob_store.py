# sfa_portal/core/blob_store.py
import logging
from pathlib import Path, PurePosixPath
from typing import Optional

import aiofiles
import aiofiles.os

from sfa_portal.core.config import UPLOAD_DIR, FILES_BASE_URL

logger = logging.getLogger(__name__)


class BlobStore:
    """Stores uploaded files on local disk and hands back a retrievable URL."""

    def __init__(self, root: Path, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Invalid blob path: {path!r}")
        return self.root.joinpath(*relative.parts)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    async def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        target = self._resolve(path)
        await aiofiles.os.makedirs(target.parent, exist_ok=True)
        async with aiofiles.open(target, "wb") as f:
            await f.write(data)
        logger.info(f"Stored blob '{path}' ({len(data)} bytes, {content_type or 'unknown type'}).")
        return self.url_for(path)


blob_store = BlobStore(UPLOAD_DIR, FILES_BASE_URL)


def get_blob_store() -> BlobStore:
    return blob_store
