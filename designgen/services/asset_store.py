import asyncio
import logging
import re
import uuid
from pathlib import Path

import httpx

from designgen.models.exceptions import StoreError

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = 30.0


class LocalAssetStore:
    """Stores assets on local disk and serves them under ``base_url``."""

    def __init__(self, root: str | Path, base_url: str) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    async def store(self, data: bytes, name: str) -> str:
        """Persist ``data`` and return its public url."""
        stem, _, suffix = name.rpartition(".")
        if not stem:
            stem, suffix = name, "png"
        safe_stem = re.sub(r"[^\w\-]", "_", stem)
        key = f"{safe_stem}_{uuid.uuid4().hex[:12]}.{suffix}"

        path = self.root / key
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            raise StoreError(f"Could not store asset {key}: {e}", {"key": key}) from e

        logger.debug("Stored asset", extra={"key": key, "size": len(data)})
        return self.url_for(key)

    async def fetch(self, url: str) -> bytes:
        """Read an asset back, from disk when this store owns it, else over HTTP."""
        prefix = f"{self.base_url}/"
        if url.startswith(prefix):
            path = (self.root / url[len(prefix):]).resolve()
            if not path.is_relative_to(self.root.resolve()):
                raise StoreError(f"Asset url escapes the storage root: {url}", {"url": url})
            try:
                return await asyncio.to_thread(path.read_bytes)
            except OSError as e:
                raise StoreError(f"Could not read asset {url}: {e}", {"url": url}) from e

        async with httpx.AsyncClient(timeout=FETCH_TIMEOUT, follow_redirects=True) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise StoreError(f"Could not fetch asset {url}: {e}", {"url": url}) from e
        return response.content

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
