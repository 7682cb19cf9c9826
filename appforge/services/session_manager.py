"""
Session Manager - registry of open project sessions

"Open chat" and "switch chat" are explicit commands: opening loads the
persisted baseline and performs the first sync, closing cancels whatever
generation is still outstanding for that chat.
"""

from typing import Dict, List, Optional

from appforge.core.exceptions import AppForgeError, SessionNotFoundError
from appforge.core.logging_config import logger
from appforge.services.deploy_client import DeployClient
from appforge.services.file_merge import FileSetMergeEngine
from appforge.services.generation_dispatcher import GenerationDispatcher, GenerationRequest
from appforge.services.preview_bundler import InMemoryBundler, PreviewBundler
from appforge.services.project_session import ProjectSession
from appforge.services.project_store import ProjectStore, validate_chat_id
from appforge.services.sandbox_projection import SandboxProjection


class SessionManager:
    """Owns sessions, their projections, and the dispatcher that feeds them"""

    def __init__(
        self,
        merge_engine: FileSetMergeEngine,
        dispatcher: GenerationDispatcher,
        store: ProjectStore,
        bundler: PreviewBundler,
        deploy_client: DeployClient,
        countdown_seconds: int = None,
        tick_seconds: float = None,
        reentry_guard: bool = None,
    ):
        self.merge_engine = merge_engine
        self.dispatcher = dispatcher
        self.store = store
        self.bundler = bundler
        self.deploy_client = deploy_client
        self._projection_options = {
            "countdown_seconds": countdown_seconds,
            "tick_seconds": tick_seconds,
            "reentry_guard": reentry_guard,
        }
        self._sessions: Dict[str, ProjectSession] = {}

    def get(self, chat_id: str) -> ProjectSession:
        session = self._sessions.get(chat_id)
        if session is None:
            raise SessionNotFoundError(chat_id)
        return session

    def list_sessions(self) -> List[str]:
        return list(self._sessions)

    async def open(self, chat_id: str) -> ProjectSession:
        """Mount a chat; reopening an open chat returns the live session."""
        validate_chat_id(chat_id)
        existing = self._sessions.get(chat_id)
        if existing is not None:
            return existing

        baseline = await self.store.load(chat_id)
        projection = SandboxProjection(
            chat_id=chat_id,
            bundler=self.bundler,
            deploy_client=self.deploy_client,
            **self._projection_options,
        )
        session = ProjectSession(
            chat_id=chat_id,
            baseline=baseline,
            merge_engine=self.merge_engine,
            projection=projection,
            on_change=self._persist,
        )
        self._sessions[chat_id] = session
        await session.mount()

        logger.info(f"[Sessions] Opened chat {chat_id} with {len(baseline)} baseline files")
        return session

    async def close(self, chat_id: str) -> bool:
        session = self._sessions.pop(chat_id, None)
        if session is None:
            return False

        self.dispatcher.cancel(chat_id)
        session.close()
        if isinstance(self.bundler, InMemoryBundler):
            self.bundler.forget(chat_id)

        logger.info(f"[Sessions] Closed chat {chat_id}")
        return True

    async def switch(self, from_chat_id: Optional[str], to_chat_id: str) -> ProjectSession:
        """Close the current chat (cancelling its generation) and open another."""
        if from_chat_id and from_chat_id != to_chat_id:
            await self.close(from_chat_id)
        return await self.open(to_chat_id)

    def submit_prompt(self, chat_id: str, prompt: str) -> GenerationRequest:
        session = self.get(chat_id)
        return self.dispatcher.submit(session, prompt)

    async def _persist(self, session: ProjectSession) -> None:
        try:
            await self.store.save(session.chat_id, session.file_set)
        except AppForgeError as e:
            # The in-memory session stays authoritative; next change retries the save
            logger.log_error_with_context(e, context=f"persisting chat {session.chat_id}")

    async def shutdown(self) -> None:
        await self.dispatcher.shutdown()
        for chat_id in list(self._sessions):
            await self.close(chat_id)
