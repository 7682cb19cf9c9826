"""
Generation Request Dispatcher

Flow per prompt submission:
1. Cancel whatever is pending for the chat (debouncing or in flight)
2. Wait out the quiet period so only the last prompt of a burst is sent
3. Call the generation backend
4. Before merging, check the request is still the latest for the chat;
   stale results are dropped without touching the session

At most one request per chat is live at any time.
"""

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from appforge.core.config import settings
from appforge.core.exceptions import GenerationFailedError, InvalidPromptError
from appforge.core.logging_config import logger
from appforge.services.generation_client import GenerationClient
from appforge.services.project_session import NoticeKind, ProjectSession


class GenerationOutcome(str, Enum):
    MERGED = "merged"
    UNCHANGED = "unchanged"
    STALE = "stale"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class CancellationToken:
    """Checked before any state mutation once a response arrives"""
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class GenerationRequest:
    chat_id: str
    prompt: str
    request_id: int
    token: CancellationToken = field(default_factory=CancellationToken)
    created_at: datetime = field(default_factory=datetime.utcnow)
    dispatched: bool = False
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    def to_dict(self) -> Dict:
        return {
            "chat_id": self.chat_id,
            "prompt": self.prompt,
            "request_id": self.request_id,
            "cancelled": self.token.cancelled,
            "created_at": self.created_at.isoformat(),
        }


class GenerationDispatcher:
    """Debounced, cancellable generation requests, one live request per chat"""

    def __init__(self, client: GenerationClient, debounce_seconds: float = None):
        self._client = client
        self.debounce_seconds = settings.GENERATION_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self._pending: Dict[str, GenerationRequest] = {}
        self._sequence = itertools.count(1)
        self.dispatched_count = 0

    def submit(self, session: ProjectSession, prompt: str) -> GenerationRequest:
        """
        "On prompt submitted" command.

        Raises:
            InvalidPromptError: prompt is empty
        """
        if not prompt or not prompt.strip():
            raise InvalidPromptError()

        self.cancel(session.chat_id)

        request = GenerationRequest(
            chat_id=session.chat_id,
            prompt=prompt,
            request_id=next(self._sequence),
        )
        session.active_prompt = prompt
        request.task = asyncio.create_task(self._run(session, request))
        self._pending[session.chat_id] = request

        logger.log_generation_event(session.chat_id, "submitted", request.request_id)
        return request

    def cancel(self, chat_id: str) -> bool:
        """Invalidate the pending request for a chat, if any."""
        request = self._pending.pop(chat_id, None)
        if request is None:
            return False

        request.token.cancel()
        if request.task is not None and not request.task.done():
            request.task.cancel()
        logger.log_generation_event(chat_id, "cancelled", request.request_id)
        return True

    def pending(self, chat_id: str) -> Optional[GenerationRequest]:
        return self._pending.get(chat_id)

    def _is_current(self, request: GenerationRequest) -> bool:
        return not request.token.cancelled and self._pending.get(request.chat_id) is request

    async def wait(self, chat_id: str) -> Optional[GenerationOutcome]:
        """Await the outcome of the chat's pending request."""
        request = self._pending.get(chat_id)
        if request is None or request.task is None:
            return None
        try:
            return await asyncio.shield(request.task)
        except asyncio.CancelledError:
            if request.task.cancelled():
                return GenerationOutcome.CANCELLED
            raise

    async def _run(self, session: ProjectSession, request: GenerationRequest) -> GenerationOutcome:
        chat_id = request.chat_id
        try:
            if self.debounce_seconds:
                await asyncio.sleep(self.debounce_seconds)
            if not self._is_current(request):
                return GenerationOutcome.CANCELLED

            request.dispatched = True
            session.generating = True
            self.dispatched_count += 1
            logger.log_generation_event(chat_id, "dispatched", request.request_id)

            try:
                normalized = await self._client.generate(chat_id, request.prompt)
            except GenerationFailedError as e:
                if not self._is_current(request):
                    return GenerationOutcome.STALE
                logger.warning(f"[Dispatcher] Generation failed for chat {chat_id}: {e.message}")
                session.record_notice(NoticeKind.GENERATION_FAILED, e.message, **e.details)
                return GenerationOutcome.FAILED

            if not self._is_current(request) or session.closed:
                logger.log_generation_event(chat_id, "stale response discarded", request.request_id)
                return GenerationOutcome.STALE

            # Past this point the merge must finish its sync and persist even if superseded
            result = await asyncio.shield(session.apply_generated(normalized.file_set))
            logger.log_generation_event(
                chat_id,
                "merged" if result.changed else "unchanged",
                request.request_id,
                file_count=len(normalized.file_set),
                dropped=normalized.dropped_count,
            )
            return GenerationOutcome.MERGED if result.changed else GenerationOutcome.UNCHANGED

        except asyncio.CancelledError:
            logger.debug(f"[Dispatcher] Request {request.request_id} for chat {chat_id} cancelled")
            raise

        finally:
            current = self._pending.get(chat_id)
            if current is request:
                del self._pending[chat_id]
                session.generating = False
            elif current is None or not current.dispatched:
                # Successor is still debouncing; it sets the flag again on dispatch
                session.generating = False

    async def shutdown(self) -> None:
        """Cancel everything still pending."""
        tasks = []
        for chat_id in list(self._pending):
            request = self._pending.get(chat_id)
            if request is not None and request.task is not None:
                tasks.append(request.task)
            self.cancel(chat_id)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
