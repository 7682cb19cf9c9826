"""
Sandbox Projection - keeps the preview/editor surface in step with a session

Responsibilities:
1. Push the complete merged file set to the bundler on every change
2. Track the code/preview view mode and the "building preview" countdown
3. Export the merged set as a zip archive
4. Deploy the merged set, refusing re-entry while a deploy is outstanding

The projection only reads the file set it is given; it never writes back
into the session.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from appforge.core.config import settings
from appforge.core.exceptions import DeploymentFailedError, DeploymentInProgressError
from appforge.core.logging_config import logger
from appforge.services.deploy_client import DeployClient
from appforge.services.file_set import FileSet
from appforge.services.preview_bundler import PreviewBundler
from appforge.services.project_export import build_project_zip


class ViewMode(str, Enum):
    CODE = "code"
    PREVIEW = "preview"


@dataclass
class PreviewIndicator:
    """Best-effort "building preview" overlay state"""
    visible: bool = False
    remaining_seconds: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"visible": self.visible, "remaining_seconds": self.remaining_seconds}


@dataclass
class DeploymentResult:
    """Outcome of a deploy() call"""
    success: bool
    url: Optional[str] = None
    error: Optional[str] = None
    file_count: int = 0
    finished_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "url": self.url,
            "error": self.error,
            "file_count": self.file_count,
            "finished_at": self.finished_at.isoformat(),
        }


class SandboxProjection:
    """Projection of one session onto the external bundler"""

    def __init__(
        self,
        chat_id: str,
        bundler: PreviewBundler,
        deploy_client: DeployClient,
        countdown_seconds: int = None,
        tick_seconds: float = None,
        reentry_guard: bool = None,
    ):
        self.chat_id = chat_id
        self._bundler = bundler
        self._deploy_client = deploy_client
        self.countdown_seconds = countdown_seconds if countdown_seconds is not None else settings.PREVIEW_COUNTDOWN_SECONDS
        self.tick_seconds = tick_seconds if tick_seconds is not None else settings.PREVIEW_TICK_SECONDS
        self.reentry_guard = settings.DEPLOY_REENTRY_GUARD if reentry_guard is None else reentry_guard

        self._file_set: FileSet = FileSet.empty()
        self.sync_count = 0
        self.view_mode = ViewMode.CODE
        self.indicator = PreviewIndicator()
        self._countdown_task: Optional[asyncio.Task] = None

        self.deploying = False
        self.last_deployment: Optional[DeploymentResult] = None

    @property
    def file_set(self) -> FileSet:
        return self._file_set

    # ==================== Synchronization ====================

    async def synchronize(self, file_set: FileSet) -> bool:
        """
        Hand the full file set to the bundler.

        Returns False when the bundler rejected the update; the projection
        still tracks the new set so export and deploy stay authoritative.
        """
        self._file_set = file_set
        try:
            await self._bundler.update_files(self.chat_id, file_set.to_sandbox())
        except Exception as e:
            logger.log_error_with_context(e, context=f"bundler sync for chat {self.chat_id}")
            return False

        self.sync_count += 1
        logger.debug(f"[Projection] Synced {len(file_set)} files to bundler (sync #{self.sync_count})")
        return True

    # ==================== View state ====================

    def set_view(self, mode: ViewMode) -> None:
        """Switch between code and preview; preview starts the countdown."""
        mode = ViewMode(mode)
        if mode == self.view_mode:
            return

        self.view_mode = mode
        self._cancel_countdown()

        if mode == ViewMode.PREVIEW:
            self.indicator = PreviewIndicator(visible=True, remaining_seconds=self.countdown_seconds)
            self._countdown_task = asyncio.create_task(self._run_countdown(self.indicator))
        else:
            self.indicator = PreviewIndicator()

    async def _run_countdown(self, indicator: PreviewIndicator) -> None:
        try:
            while indicator.remaining_seconds > 0:
                await asyncio.sleep(self.tick_seconds)
                indicator.remaining_seconds -= 1
        finally:
            # Hidden whether or not the bundler reported ready
            indicator.visible = False

    def _cancel_countdown(self) -> None:
        if self._countdown_task is not None and not self._countdown_task.done():
            self._countdown_task.cancel()
        self._countdown_task = None

    async def wait_for_countdown(self) -> None:
        if self._countdown_task is not None:
            try:
                await self._countdown_task
            except asyncio.CancelledError:
                pass

    # ==================== Export ====================

    def export_all(self) -> bytes:
        return build_project_zip(self._file_set)

    # ==================== Deploy ====================

    async def deploy(self) -> DeploymentResult:
        """
        Deploy the current merged set.

        Raises:
            DeploymentInProgressError: another deploy is outstanding and the
                re-entry guard is on
        """
        if self.deploying and self.reentry_guard:
            logger.warning(f"[Projection] Deploy already in progress for chat {self.chat_id}")
            raise DeploymentInProgressError(self.chat_id)

        self.deploying = True
        file_set = self._file_set
        try:
            url = await self._deploy_client.deploy(file_set)
            result = DeploymentResult(success=True, url=url, file_count=len(file_set))
            logger.info(f"[Projection] Deployed chat {self.chat_id} to {url}")
        except DeploymentFailedError as e:
            logger.warning(f"[Projection] Deployment failed for chat {self.chat_id}: {e.message}")
            result = DeploymentResult(success=False, error=e.message, file_count=len(file_set))
        finally:
            self.deploying = False

        self.last_deployment = result
        return result

    # ==================== Lifecycle ====================

    def close(self) -> None:
        self._cancel_countdown()
        self.indicator = PreviewIndicator()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "view_mode": self.view_mode.value,
            "preview_indicator": self.indicator.to_dict(),
            "sync_count": self.sync_count,
            "deploying": self.deploying,
            "last_deployment": self.last_deployment.to_dict() if self.last_deployment else None,
        }
