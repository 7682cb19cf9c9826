"""
Deployment endpoint client

    POST {DEPLOY_API_URL}/deploy
    body:     {"files": [{"path": "/App.js", "content": "..."}]}
    success:  {"success": true, "url": "https://..."}
"""

from typing import Optional

import httpx

from appforge.core.config import settings
from appforge.core.exceptions import DeploymentFailedError
from appforge.core.logging_config import logger
from appforge.services.file_set import FileSet


class DeployClient:
    """Uploads a full file set and returns the live URL"""

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or settings.DEPLOY_API_URL).rstrip("/")
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    settings.HTTP_TIMEOUT_SECONDS,
                    connect=settings.HTTP_CONNECT_TIMEOUT_SECONDS,
                )
            )
        return self._client

    async def deploy(self, file_set: FileSet) -> str:
        """
        Deploy every file and return the site URL.

        Raises:
            DeploymentFailedError: transport error, non-2xx, success=false or no url
        """
        client = await self._get_client()
        payload = {"files": file_set.to_wire()}

        logger.info(f"[Deploy] Uploading {len(file_set)} files ({file_set.total_bytes()} bytes)")

        try:
            response = await client.post(f"{self.base_url}/deploy", json=payload)
        except httpx.HTTPError as e:
            raise DeploymentFailedError(f"Deploy request failed: {type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise DeploymentFailedError(
                f"Deploy endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise DeploymentFailedError("Deploy response is not valid JSON") from e

        url = data.get("url") if isinstance(data, dict) else None
        if not isinstance(data, dict) or data.get("success") is not True or not isinstance(url, str) or not url:
            raise DeploymentFailedError(f"Deploy endpoint returned no live URL: {data!r}"[:300])

        return url

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
