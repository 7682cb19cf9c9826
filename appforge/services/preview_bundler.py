"""
Preview bundler adapters

The bundler/preview runtime is external. The projection always hands it the
complete file set in sandbox shape ({path: {"code": str}}); adapters never
receive diffs, so additions, edits and removals-by-absence all land the same
way.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from appforge.core.config import settings
from appforge.core.logging_config import logger


class PreviewBundler:
    """Interface every bundler adapter implements"""

    async def update_files(self, chat_id: str, files: Dict[str, Dict[str, str]]) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


@dataclass
class PreviewSnapshot:
    """What the preview currently shows"""
    files: Dict[str, Dict[str, str]] = field(default_factory=dict)
    revision: int = 0
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "revision": self.revision,
            "file_count": len(self.files),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "files": self.files,
        }


class InMemoryBundler(PreviewBundler):
    """Keeps the latest full snapshot per chat; served back by the API."""

    def __init__(self):
        self._snapshots: Dict[str, PreviewSnapshot] = {}

    async def update_files(self, chat_id: str, files: Dict[str, Dict[str, str]]) -> None:
        previous = self._snapshots.get(chat_id)
        self._snapshots[chat_id] = PreviewSnapshot(
            files=dict(files),
            revision=(previous.revision + 1) if previous else 1,
            updated_at=datetime.utcnow(),
        )

    def snapshot(self, chat_id: str) -> PreviewSnapshot:
        return self._snapshots.get(chat_id) or PreviewSnapshot()

    def forget(self, chat_id: str) -> None:
        self._snapshots.pop(chat_id, None)


class HttpBundler(PreviewBundler):
    """Pushes the full file set to a remote preview service."""

    def __init__(self, sync_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.sync_url = (sync_url or settings.PREVIEW_SYNC_URL).rstrip("/")
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(settings.HTTP_TIMEOUT_SECONDS))
        return self._client

    async def update_files(self, chat_id: str, files: Dict[str, Dict[str, str]]) -> None:
        client = await self._get_client()
        response = await client.put(f"{self.sync_url}/{chat_id}/files", json={"files": files})
        response.raise_for_status()
        logger.debug(f"[HttpBundler] Pushed {len(files)} files for chat {chat_id}")

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def create_bundler() -> PreviewBundler:
    """Pick the adapter from settings"""
    if settings.PREVIEW_SYNC_URL:
        logger.info(f"[Preview] Using remote preview sync at {settings.PREVIEW_SYNC_URL}")
        return HttpBundler()
    return InMemoryBundler()
