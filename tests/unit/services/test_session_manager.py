"""
Unit Tests for SessionManager

Open / switch / close commands and persistence of generated changes.
"""
import asyncio
import pytest

from appforge.core.exceptions import SessionNotFoundError, ValidationError
from appforge.services.file_set import FileSet
from appforge.services.generation_dispatcher import GenerationOutcome


class TestOpenClose:
    """Explicit chat lifecycle commands"""

    @pytest.mark.asyncio
    async def test_open_syncs_defaults_and_baseline(self, session_manager, project_store, bundler, defaults):
        await project_store.save("chat-1", FileSet({"/App.js": "stored"}))

        session = await session_manager.open("chat-1")

        assert session.file_set == {"/App.js": "stored"}
        snapshot = bundler.snapshot("chat-1")
        assert set(snapshot.files) == set(defaults) | {"/App.js"}
        assert snapshot.files["/App.js"] == {"code": "stored"}

    @pytest.mark.asyncio
    async def test_reopen_returns_live_session(self, session_manager):
        first = await session_manager.open("chat-1")
        second = await session_manager.open("chat-1")
        assert first is second

    @pytest.mark.asyncio
    async def test_get_unknown_raises(self, session_manager):
        with pytest.raises(SessionNotFoundError):
            session_manager.get("missing")

    @pytest.mark.asyncio
    async def test_invalid_chat_id(self, session_manager):
        with pytest.raises(ValidationError):
            await session_manager.open("not a valid id!")

    @pytest.mark.asyncio
    async def test_close(self, session_manager, bundler):
        session = await session_manager.open("chat-1")

        assert await session_manager.close("chat-1") is True
        assert session.closed is True
        assert bundler.snapshot("chat-1").revision == 0
        assert await session_manager.close("chat-1") is False
        assert session_manager.list_sessions() == []


class TestSwitch:
    """Switching chats cancels outstanding generation"""

    @pytest.mark.asyncio
    async def test_switch_cancels_previous_chat(self, session_manager, scripted_client):
        scripted_client.respond("slow", [{"path": "/App.js", "content": "late"}], gated=True)
        old = await session_manager.open("chat-1")
        request = session_manager.submit_prompt("chat-1", "slow")
        await scripted_client.started["slow"].wait()

        new = await session_manager.switch("chat-1", "chat-2")
        scripted_client.gates["slow"].set()
        with pytest.raises(asyncio.CancelledError):
            await request.task

        assert new.chat_id == "chat-2"
        assert session_manager.list_sessions() == ["chat-2"]
        assert request.token.cancelled is True
        assert "/App.js" not in old.file_set

    @pytest.mark.asyncio
    async def test_switch_to_same_chat_keeps_session(self, session_manager):
        session = await session_manager.open("chat-1")
        assert await session_manager.switch("chat-1", "chat-1") is session


class TestPersistence:
    """Generated changes are saved as the new baseline"""

    @pytest.mark.asyncio
    async def test_merged_generation_is_persisted(self, session_manager, scripted_client, project_store):
        scripted_client.respond("add nav", [{"path": "/Nav.jsx", "content": "nav"}])
        session = await session_manager.open("chat-1")

        session_manager.submit_prompt("chat-1", "add nav")
        outcome = await session_manager.dispatcher.wait("chat-1")

        assert outcome == GenerationOutcome.MERGED
        assert session.revision == 1
        assert await project_store.load("chat-1") == {"/Nav.jsx": "nav"}

    @pytest.mark.asyncio
    async def test_superseding_prompt_does_not_interrupt_save(self, session_manager, scripted_client, project_store):
        scripted_client.respond("a", [{"path": "/A.jsx", "content": "a"}])
        scripted_client.respond("b", [{"path": "/A.jsx", "content": "a"}])
        saving = asyncio.Event()
        original_save = project_store.save

        async def slow_save(chat_id, file_set):
            saving.set()
            await asyncio.sleep(0.2)
            await original_save(chat_id, file_set)

        project_store.save = slow_save
        session = await session_manager.open("chat-1")

        session_manager.submit_prompt("chat-1", "a")
        await saving.wait()
        session_manager.submit_prompt("chat-1", "b")
        outcome = await session_manager.dispatcher.wait("chat-1")

        assert outcome == GenerationOutcome.UNCHANGED
        assert session.file_set == {"/A.jsx": "a"}
        assert session.revision == 1
        assert await project_store.load("chat-1") == {"/A.jsx": "a"}

    @pytest.mark.asyncio
    async def test_submit_to_unknown_session(self, session_manager):
        with pytest.raises(SessionNotFoundError):
            session_manager.submit_prompt("missing", "hello")
