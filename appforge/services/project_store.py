"""
Project Store - persisted baseline file set per chat

Layout:
    {PROJECT_STORE_DIR}/{chat_id}.json   -> {"chat_id": ..., "updated_at": ..., "files": {path: {"code": ...}}}

Writes go to a temp file first and are renamed into place so a crash never
leaves a half-written baseline behind.
"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from appforge.core.config import settings
from appforge.core.exceptions import StorageError, ValidationError
from appforge.core.logging_config import logger
from appforge.services.file_set import FileSet
from appforge.services.response_normalizer import normalize_project_payload

CHAT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def validate_chat_id(chat_id: str) -> str:
    if not isinstance(chat_id, str) or not CHAT_ID_PATTERN.match(chat_id):
        raise ValidationError(f"Invalid chat id {chat_id!r}", field="chat_id")
    return chat_id


class ProjectStore:
    """JSON-file store for chat baselines"""

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir or settings.PROJECT_STORE_DIR)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"ProjectStore initialized at {self.base_dir}")

    def _get_path(self, chat_id: str) -> Path:
        return self.base_dir / f"{validate_chat_id(chat_id)}.json"

    async def load(self, chat_id: str) -> FileSet:
        """Baseline for a chat; empty for chats never saved."""
        path = self._get_path(chat_id)
        if not await aiofiles.os.path.exists(path):
            return FileSet.empty()

        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                data = json.loads(await f.read())
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read baseline: {e}", chat_id=chat_id) from e

        if not isinstance(data, dict) or not isinstance(data.get("files"), dict):
            logger.warning(f"[ProjectStore] Stored baseline for {chat_id} has no files object, ignoring")
            return FileSet.empty()

        # Same entry rules as generated payloads; bad entries are dropped
        return normalize_project_payload({"files": data["files"]}).file_set

    async def save(self, chat_id: str, file_set: FileSet) -> None:
        path = self._get_path(chat_id)
        tmp_path = path.with_suffix(".json.tmp")
        payload = json.dumps({
            "chat_id": chat_id,
            "updated_at": datetime.utcnow().isoformat(),
            "files": file_set.to_sandbox(),
        })

        try:
            async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
                await f.write(payload)
            await aiofiles.os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to save baseline: {e}", chat_id=chat_id) from e

        logger.debug(f"[ProjectStore] Saved {len(file_set)} files for chat {chat_id}")
