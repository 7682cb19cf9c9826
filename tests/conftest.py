"""
AppForge - Test Configuration and Fixtures
"""
import os
import asyncio
import tempfile
from typing import AsyncGenerator, Callable, Dict, List
import pytest
import httpx
from httpx import AsyncClient, ASGITransport
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'testing'
os.environ['LOG_FILE'] = ''
os.environ['PROJECT_STORE_DIR'] = tempfile.mkdtemp(prefix='appforge_test_store_')
os.environ['ANTHROPIC_API_KEY'] = 'test-api-key'

from appforge.services.deploy_client import DeployClient
from appforge.services.file_merge import FileSetMergeEngine
from appforge.services.file_set import FileSet
from appforge.services.generation_client import GenerationClient
from appforge.services.generation_dispatcher import GenerationDispatcher
from appforge.services.preview_bundler import InMemoryBundler
from appforge.services.project_session import ProjectSession
from appforge.services.project_store import ProjectStore
from appforge.services.response_normalizer import NormalizedFiles, normalize_file_list
from appforge.services.sandbox_projection import SandboxProjection
from appforge.services.session_manager import SessionManager

fake = Faker()

DEFAULT_FILES = {
    "/public/index.html": "<div id=\"root\"></div>",
    "/App.css": "@tailwind base;",
    "/tailwind.config.js": "export default {}",
}


def mock_http_client(handler: Callable) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by handler (sync or async)"""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def generation_handler(files: List[Dict[str, str]], status_code: int = 200) -> Callable:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"success": True, "files": files})
    return handler


def deploy_handler(url: str = "https://app.example.dev") -> Callable:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "url": url})
    return handler


class ScriptedGenerationClient:
    """
    Stand-in for GenerationClient.

    Each prompt answers with the files registered for it; prompts listed in
    ``gates`` block until their event is set.
    """

    def __init__(self):
        self.responses: Dict[str, List[Dict[str, str]]] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.started: Dict[str, asyncio.Event] = {}
        self.calls: List[str] = []

    def respond(self, prompt: str, files: List[Dict[str, str]], gated: bool = False) -> None:
        self.responses[prompt] = files
        self.started[prompt] = asyncio.Event()
        if gated:
            self.gates[prompt] = asyncio.Event()

    async def generate(self, chat_id: str, prompt: str) -> NormalizedFiles:
        self.calls.append(prompt)
        if prompt in self.started:
            self.started[prompt].set()
        if prompt in self.gates:
            await self.gates[prompt].wait()
        return normalize_file_list(self.responses.get(prompt, []))


@pytest.fixture
def defaults() -> FileSet:
    return FileSet(DEFAULT_FILES)


@pytest.fixture
def merge_engine(defaults: FileSet) -> FileSetMergeEngine:
    return FileSetMergeEngine(defaults)


@pytest.fixture
def bundler() -> InMemoryBundler:
    return InMemoryBundler()


@pytest.fixture
async def deploy_client() -> AsyncGenerator[DeployClient, None]:
    client = DeployClient(base_url="http://deploy.test", client=mock_http_client(deploy_handler()))
    yield client
    await client._client.aclose()


@pytest.fixture
def chat_id() -> str:
    return f"chat-{fake.uuid4()[:8]}"


@pytest.fixture
def make_session(merge_engine, bundler, deploy_client) -> Callable[..., ProjectSession]:
    """Build a session without going through the SessionManager"""
    def _make(chat_id: str, baseline: FileSet = None, **projection_options) -> ProjectSession:
        projection = SandboxProjection(
            chat_id=chat_id,
            bundler=bundler,
            deploy_client=deploy_client,
            countdown_seconds=projection_options.get("countdown_seconds", 5),
            tick_seconds=projection_options.get("tick_seconds", 0.01),
            reentry_guard=projection_options.get("reentry_guard", True),
        )
        return ProjectSession(
            chat_id=chat_id,
            baseline=baseline or FileSet.empty(),
            merge_engine=merge_engine,
            projection=projection,
        )
    return _make


@pytest.fixture
def project_store(tmp_path) -> ProjectStore:
    return ProjectStore(base_dir=tmp_path / "projects")


@pytest.fixture
def scripted_client() -> ScriptedGenerationClient:
    return ScriptedGenerationClient()


@pytest.fixture
async def session_manager(merge_engine, project_store, bundler, deploy_client, scripted_client) -> AsyncGenerator[SessionManager, None]:
    manager = SessionManager(
        merge_engine=merge_engine,
        dispatcher=GenerationDispatcher(scripted_client, debounce_seconds=0),
        store=project_store,
        bundler=bundler,
        deploy_client=deploy_client,
        countdown_seconds=5,
        tick_seconds=0.01,
    )
    yield manager
    await manager.shutdown()


class FakeClaudeClient:
    """Answers generate() with canned text and streams canned chunks"""

    def __init__(self, content: str = "", chunks: List[str] = None):
        self.content = content
        self.chunks = chunks or []
        self.prompts: List[str] = []

    async def generate(self, prompt: str, system_prompt: str = None, **kwargs) -> Dict:
        self.prompts.append(prompt)
        return {"content": self.content, "model": "test", "input_tokens": 1, "output_tokens": 1, "total_tokens": 2}

    async def generate_stream(self, prompt: str, system_prompt: str = None, **kwargs):
        self.prompts.append(prompt)
        for chunk in self.chunks:
            yield chunk


@pytest.fixture
def fake_claude() -> FakeClaudeClient:
    return FakeClaudeClient()


@pytest.fixture
async def client(tmp_path, fake_claude, defaults) -> AsyncGenerator[AsyncClient, None]:
    """API client with the workspace wired to mock transports"""
    from appforge.main import app
    from appforge.services.code_generator import CodeGenerationService

    generated = [{"path": "/App.js", "content": "export default function App() { return null }"}]
    generation_http = mock_http_client(generation_handler(generated))
    deploy_http = mock_http_client(deploy_handler("https://live.example.dev"))

    store = ProjectStore(base_dir=tmp_path / "api_projects")
    manager = SessionManager(
        merge_engine=FileSetMergeEngine(defaults),
        dispatcher=GenerationDispatcher(
            GenerationClient(base_url="http://generation.test", client=generation_http),
            debounce_seconds=0,
        ),
        store=store,
        bundler=InMemoryBundler(),
        deploy_client=DeployClient(base_url="http://deploy.test", client=deploy_http),
        countdown_seconds=5,
        tick_seconds=0.01,
    )
    app.state.project_store = store
    app.state.session_manager = manager
    app.state.code_generator = CodeGenerationService(store, fake_claude)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    await manager.shutdown()
    await generation_http.aclose()
    await deploy_http.aclose()
