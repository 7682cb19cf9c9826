"""
Unit Tests for the Sandbox Projection

Covers bundler sync, view countdown, export archive and deploy.
"""
import asyncio
import io
import zipfile
import pytest
import httpx

from appforge.core.exceptions import DeploymentInProgressError
from appforge.services.deploy_client import DeployClient
from appforge.services.file_set import FileSet
from appforge.services.preview_bundler import HttpBundler, PreviewBundler
from appforge.services.project_session import NoticeKind
from appforge.services.sandbox_projection import SandboxProjection, ViewMode

from conftest import mock_http_client


class BrokenBundler(PreviewBundler):
    async def update_files(self, chat_id, files):
        raise RuntimeError("bundler offline")


def gated_deploy_client(gate: asyncio.Event, started: asyncio.Event) -> DeployClient:
    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        await gate.wait()
        return httpx.Response(200, json={"success": True, "url": "https://slow.example.dev"})

    return DeployClient(base_url="http://deploy.test", client=mock_http_client(handler))


class TestSynchronize:
    """Full file set is pushed to the bundler"""

    @pytest.mark.asyncio
    async def test_pushes_sandbox_shape(self, bundler, deploy_client):
        projection = SandboxProjection("chat-1", bundler, deploy_client)
        files = FileSet({"/App.js": "x"})

        assert await projection.synchronize(files) is True
        snapshot = bundler.snapshot("chat-1")
        assert snapshot.files == {"/App.js": {"code": "x"}}
        assert snapshot.revision == 1
        assert projection.sync_count == 1

    @pytest.mark.asyncio
    async def test_bundler_failure_keeps_file_set(self, deploy_client):
        projection = SandboxProjection("chat-1", BrokenBundler(), deploy_client)
        files = FileSet({"/App.js": "x"})

        assert await projection.synchronize(files) is False
        assert projection.file_set == files
        assert projection.sync_count == 0


class TestViewCountdown:
    """Preview view shows a best-effort building indicator"""

    @pytest.mark.asyncio
    async def test_countdown_hides_indicator(self, bundler, deploy_client):
        projection = SandboxProjection("chat-1", bundler, deploy_client, countdown_seconds=5, tick_seconds=0.01)

        projection.set_view(ViewMode.PREVIEW)
        assert projection.indicator.visible is True
        assert projection.indicator.remaining_seconds == 5

        await projection.wait_for_countdown()
        assert projection.indicator.visible is False
        assert projection.indicator.remaining_seconds == 0

    @pytest.mark.asyncio
    async def test_switching_back_to_code_clears_indicator(self, bundler, deploy_client):
        projection = SandboxProjection("chat-1", bundler, deploy_client, countdown_seconds=12, tick_seconds=10)

        projection.set_view("preview")
        projection.set_view("code")

        assert projection.view_mode == ViewMode.CODE
        assert projection.indicator.visible is False

    @pytest.mark.asyncio
    async def test_same_mode_does_not_restart_countdown(self, bundler, deploy_client):
        projection = SandboxProjection("chat-1", bundler, deploy_client, countdown_seconds=5, tick_seconds=0.01)

        projection.set_view(ViewMode.PREVIEW)
        await projection.wait_for_countdown()
        projection.set_view(ViewMode.PREVIEW)

        assert projection.indicator.visible is False


class TestExport:
    """Archive holds every merged path without its leading slash"""

    @pytest.mark.asyncio
    async def test_archive_matches_file_set(self, bundler, deploy_client, merge_engine):
        projection = SandboxProjection("chat-1", bundler, deploy_client)
        merged = merge_engine.merge(FileSet({"/App.js": "app", "/components/Nav.jsx": "nav ✨"}))
        await projection.synchronize(merged)

        archive = zipfile.ZipFile(io.BytesIO(projection.export_all()))

        assert len(archive.namelist()) == len(merged)
        assert archive.namelist() == [path.lstrip("/") for path in merged]
        assert archive.read("components/Nav.jsx") == "nav ✨".encode("utf-8")


class TestDeploy:
    """Deploy returns a URL and refuses re-entry"""

    @pytest.mark.asyncio
    async def test_successful_deploy(self, bundler, deploy_client):
        projection = SandboxProjection("chat-1", bundler, deploy_client)
        await projection.synchronize(FileSet({"/App.js": "x"}))

        result = await projection.deploy()

        assert result.success is True
        assert result.url == "https://app.example.dev"
        assert result.file_count == 1
        assert projection.deploying is False

    @pytest.mark.asyncio
    async def test_concurrent_deploy_is_rejected(self, bundler):
        gate, started = asyncio.Event(), asyncio.Event()
        client = gated_deploy_client(gate, started)
        projection = SandboxProjection("chat-1", bundler, client, reentry_guard=True)

        first = asyncio.create_task(projection.deploy())
        await started.wait()

        with pytest.raises(DeploymentInProgressError):
            await projection.deploy()

        gate.set()
        result = await first
        assert result.success is True
        assert result.url == "https://slow.example.dev"
        await client._client.aclose()

    @pytest.mark.asyncio
    async def test_failed_deploy_records_notice(self, make_session, bundler):
        client = DeployClient(
            base_url="http://deploy.test",
            client=mock_http_client(lambda request: httpx.Response(200, json={"success": False})),
        )
        session = make_session("chat-1")
        session.projection = SandboxProjection("chat-1", bundler, client)

        result = await session.deploy()

        assert result.success is False
        assert session.projection.deploying is False
        assert session.notices[-1].kind == NoticeKind.DEPLOYMENT_FAILED

    @pytest.mark.asyncio
    async def test_http_error_is_a_failed_result(self, bundler):
        client = DeployClient(
            base_url="http://deploy.test",
            client=mock_http_client(lambda request: httpx.Response(503)),
        )
        projection = SandboxProjection("chat-1", bundler, client)

        result = await projection.deploy()

        assert result.success is False
        assert "503" in result.error

    @pytest.mark.asyncio
    async def test_non_string_url_is_a_failed_result(self, make_session, bundler):
        client = DeployClient(
            base_url="http://deploy.test",
            client=mock_http_client(lambda request: httpx.Response(200, json={"success": True, "url": 123})),
        )
        session = make_session("chat-1")
        session.projection = SandboxProjection("chat-1", bundler, client)

        result = await session.deploy()

        assert result.success is False
        assert result.url is None
        assert session.notices[-1].kind == NoticeKind.DEPLOYMENT_FAILED


class TestHttpBundler:
    """Remote preview sync receives the whole set on every change"""

    @pytest.mark.asyncio
    async def test_puts_full_file_set(self, deploy_client):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, str(request.url), request.content))
            return httpx.Response(204)

        http = mock_http_client(handler)
        projection = SandboxProjection("chat-1", HttpBundler("http://preview.test/", client=http), deploy_client)

        assert await projection.synchronize(FileSet({"/App.js": "x"})) is True

        method, url, body = seen[0]
        assert method == "PUT"
        assert url == "http://preview.test/chat-1/files"
        assert b'"/App.js"' in body
        await http.aclose()

    @pytest.mark.asyncio
    async def test_remote_error_reported_as_failed_sync(self, deploy_client):
        http = mock_http_client(lambda request: httpx.Response(500))
        projection = SandboxProjection("chat-1", HttpBundler("http://preview.test", client=http), deploy_client)

        assert await projection.synchronize(FileSet({"/App.js": "x"})) is False
        await http.aclose()
