"""
Project Session - per-chat state owned by the workspace

The session holds the baseline layer of the project. Its file set is only
ever replaced wholesale with merge-engine output; every change is pushed to
the sandbox projection as the full defaults ⊕ baseline view.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from appforge.core.logging_config import logger
from appforge.services.file_merge import FileSetMergeEngine, MergeResult
from appforge.services.file_set import FileSet
from appforge.services.sandbox_projection import DeploymentResult, SandboxProjection


class NoticeKind:
    GENERATION_FAILED = "generation_failed"
    DEPLOYMENT_FAILED = "deployment_failed"


@dataclass
class SessionNotice:
    """Non-fatal condition surfaced to the user"""
    kind: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


ChangeListener = Callable[["ProjectSession"], Awaitable[None]]


class ProjectSession:
    """One open chat/project view"""

    MAX_NOTICES = 50

    def __init__(
        self,
        chat_id: str,
        baseline: FileSet,
        merge_engine: FileSetMergeEngine,
        projection: SandboxProjection,
        on_change: Optional[ChangeListener] = None,
    ):
        self.chat_id = chat_id
        self.file_set = baseline
        self.merge_engine = merge_engine
        self.projection = projection
        self.active_prompt: Optional[str] = None
        self.generating = False
        self.notices: List[SessionNotice] = []
        self.revision = 0
        self.closed = False
        self.created_at = datetime.utcnow()
        self._on_change = on_change
        self._commit_lock = asyncio.Lock()

    @property
    def merged_file_set(self) -> FileSet:
        """defaults ⊕ baseline, the view handed to the projection"""
        return self.merge_engine.merge(self.file_set)

    async def mount(self) -> None:
        """Initial sync so the preview runs before any generation."""
        await self.projection.synchronize(self.merged_file_set)

    async def apply_generated(self, incoming: FileSet) -> MergeResult:
        """
        Fold generated files in; re-sync and persist only when something changed.

        Commits are serialized per session; a later merge always sees the
        result of an earlier one.
        """
        async with self._commit_lock:
            result = self.merge_engine.fold(self.file_set, incoming)
            if not result.changed:
                logger.info(f"[Session] Chat {self.chat_id}: generated files match current state, no update")
                return result

            self.file_set = result.file_set
            self.revision += 1
            logger.info(
                f"[Session] Chat {self.chat_id} revision {self.revision}: "
                f"+{result.added} new, {result.updated} updated ({len(self.file_set)} files)"
            )

            await self.projection.synchronize(self.merged_file_set)
            if self._on_change is not None:
                await self._on_change(self)
            return result

    def record_notice(self, kind: str, message: str, **details: Any) -> SessionNotice:
        notice = SessionNotice(kind=kind, message=message, details=details)
        self.notices.append(notice)
        del self.notices[:-self.MAX_NOTICES]
        return notice

    async def deploy(self) -> DeploymentResult:
        result = await self.projection.deploy()
        if not result.success:
            self.record_notice(NoticeKind.DEPLOYMENT_FAILED, result.error or "Deployment failed")
        return result

    def export_all(self) -> bytes:
        return self.projection.export_all()

    def close(self) -> None:
        self.closed = True
        self.generating = False
        self.projection.close()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chat_id": self.chat_id,
            "active_prompt": self.active_prompt,
            "generating": self.generating,
            "revision": self.revision,
            "file_count": len(self.merged_file_set),
            "notices": [notice.to_dict() for notice in self.notices],
            **self.projection.to_dict(),
        }
