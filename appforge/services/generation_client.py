"""
HTTP client for the code-generation backend

    POST {GENERATION_BACKEND_URL}/chat/code/{chat_id}
    body:     {"message": "..."}
    success:  {"success": true, "files": [{"path": "...", "content": "..."}]}

Anything else (transport error, non-2xx, success=false, non-JSON body,
missing files) is a GenerationFailedError.
"""

from typing import Optional

import httpx

from appforge.core.config import settings
from appforge.core.exceptions import GenerationFailedError
from appforge.core.logging_config import logger
from appforge.services.response_normalizer import NormalizedFiles, normalize_generation_payload


def build_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        settings.HTTP_TIMEOUT_SECONDS,
        connect=settings.HTTP_CONNECT_TIMEOUT_SECONDS,
    )


class GenerationClient:
    """Issues generation requests and normalizes the answer"""

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or settings.GENERATION_BACKEND_URL).rstrip("/")
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=build_timeout())
        return self._client

    async def generate(self, chat_id: str, prompt: str) -> NormalizedFiles:
        """
        Request generated files for a prompt.

        Cancellation of the calling task propagates into the in-flight
        httpx request.
        """
        client = await self._get_client()
        url = f"{self.base_url}/chat/code/{chat_id}"

        try:
            response = await client.post(url, json={"message": prompt})
        except httpx.HTTPError as e:
            raise GenerationFailedError(
                f"Generation request failed: {type(e).__name__}: {e}", chat_id=chat_id
            ) from e

        if response.status_code >= 400:
            raise GenerationFailedError(
                f"Generation backend returned HTTP {response.status_code}",
                chat_id=chat_id,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GenerationFailedError("Generation response is not valid JSON", chat_id=chat_id) from e

        if not isinstance(data, dict):
            raise GenerationFailedError("Generation response is not a JSON object", chat_id=chat_id)

        if data.get("success") is not True:
            error = data.get("error")
            logger.warning(f"[GenerationClient] Backend reported failure for chat {chat_id}: {error}")
            raise GenerationFailedError(
                f"Generation backend reported failure: {error or 'unknown error'}", chat_id=chat_id
            )

        return normalize_generation_payload(data)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
