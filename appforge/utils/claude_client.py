from anthropic import AsyncAnthropic, APIStatusError, APIError, APIConnectionError, APITimeoutError
from typing import Optional, Dict, List, Any, AsyncGenerator
import asyncio
import random
import httpx
from appforge.core.config import settings
from appforge.core.exceptions import AIServiceError
from appforge.core.logging_config import logger

RETRYABLE_ERRORS = ['overloaded_error', 'rate_limit_error', 'api_error']
RETRYABLE_STATUS_CODES = [429, 500, 502, 503, 529]
TOKEN_USAGE_MARKER = "__TOKEN_USAGE__"


class ClaudeClient:
    """Claude API client wrapper for both streaming and non-streaming requests"""

    def __init__(self, async_client: Optional[AsyncAnthropic] = None):
        self.model = settings.CLAUDE_MODEL
        self.max_retries = settings.CLAUDE_MAX_RETRIES
        self.base_delay = settings.CLAUDE_RETRY_BASE_DELAY
        self.max_delay = settings.CLAUDE_RETRY_MAX_DELAY

        if async_client is not None:
            self.async_client = async_client
            return

        client_kwargs = {"api_key": settings.ANTHROPIC_API_KEY}

        # Only set base_url if it's a non-empty string with actual content
        if settings.ANTHROPIC_BASE_URL and settings.ANTHROPIC_BASE_URL.strip():
            client_kwargs["base_url"] = settings.ANTHROPIC_BASE_URL.strip()
            logger.info(f"Using custom Claude API base URL: {settings.ANTHROPIC_BASE_URL}")

        client_kwargs["timeout"] = httpx.Timeout(
            connect=float(settings.CLAUDE_CONNECT_TIMEOUT),
            read=float(settings.CLAUDE_REQUEST_TIMEOUT),
            write=float(settings.CLAUDE_REQUEST_TIMEOUT),
            pool=float(settings.CLAUDE_REQUEST_TIMEOUT)
        )

        self.async_client = AsyncAnthropic(**client_kwargs)
        logger.info(f"Claude client initialized: timeout={settings.CLAUDE_REQUEST_TIMEOUT}s, model={self.model}")

    def _is_retryable_error(self, error: Exception) -> bool:
        """Check if an error is retryable (overload, rate limit, network issues)"""
        if isinstance(error, (APIConnectionError, APITimeoutError)):
            logger.warning(f"Network error detected (retryable): {type(error).__name__}")
            return True

        if isinstance(error, (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError)):
            logger.warning(f"HTTPX network error detected (retryable): {type(error).__name__}")
            return True

        if isinstance(error, APIStatusError):
            body = getattr(error, 'body', None)
            if isinstance(body, dict):
                error_type = body.get('error', {}).get('type', '')
                if error_type in RETRYABLE_ERRORS:
                    return True
            return error.status_code in RETRYABLE_STATUS_CODES

        return False

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay with exponential backoff and jitter"""
        delay = min(self.base_delay * (2 ** attempt), self.max_delay)
        jitter = delay * random.uniform(0, 0.25)
        return delay + jitter

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = None,
        temperature: float = None,
        messages: Optional[List[Dict[str, str]]] = None
    ) -> Dict[str, Any]:
        """
        Generate response from Claude (non-streaming)

        Args:
            prompt: User prompt
            system_prompt: System prompt
            max_tokens: Maximum tokens to generate
            temperature: Temperature for generation
            messages: Optional list of previous messages for conversation

        Returns:
            Dict with response content and token usage
        """
        messages = list(messages or [])
        messages.append({"role": "user", "content": prompt})

        if max_tokens is None:
            max_tokens = settings.CLAUDE_MAX_TOKENS
        if temperature is None:
            temperature = settings.CLAUDE_TEMPERATURE

        logger.info(f"Claude API: model={self.model}, max_tokens={max_tokens}, prompt_len={len(prompt)}")

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.async_client.messages.create(
                    model=self.model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system_prompt or "",
                    messages=messages
                )

                content = "".join(
                    block.text for block in response.content if getattr(block, "type", "") == "text"
                )

                result = {
                    "content": content,
                    "model": self.model,
                    "input_tokens": response.usage.input_tokens,
                    "output_tokens": response.usage.output_tokens,
                    "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
                    "stop_reason": response.stop_reason,
                    "id": response.id
                }

                logger.info(f"Claude API response: id={response.id}, tokens={result['total_tokens']}, stop={response.stop_reason}")
                return result

            except (APIError, httpx.HTTPError) as e:
                error_type = type(e).__name__
                if self._is_retryable_error(e) and attempt < self.max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    logger.warning(
                        f"Claude API error [{error_type}] (attempt {attempt + 1}/{self.max_retries + 1}), retrying in {delay:.1f}s...",
                        extra={
                            "event_type": "claude_api_retry",
                            "error_type": error_type,
                            "attempt": attempt + 1,
                            "retry_delay": delay
                        }
                    )
                    await asyncio.sleep(delay)
                    continue

                logger.error(
                    f"Claude API error (non-retryable or max retries exceeded): {error_type}: {e}",
                    extra={"event_type": "claude_api_error", "error_type": error_type, "attempt": attempt + 1}
                )
                raise AIServiceError(f"Claude API error: {error_type}: {e}") from e

        raise AIServiceError("Claude API retries exhausted")

    async def generate_stream(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = None,
        temperature: float = None,
        messages: Optional[List[Dict[str, str]]] = None
    ) -> AsyncGenerator[str, None]:
        """
        Generate streaming response from Claude

        Yields:
            Chunks of text as they arrive
        """
        messages = list(messages or [])
        messages.append({"role": "user", "content": prompt})

        if max_tokens is None:
            max_tokens = settings.CLAUDE_MAX_TOKENS
        if temperature is None:
            temperature = settings.CLAUDE_TEMPERATURE

        logger.info(f"Claude Streaming: model={self.model}, max_tokens={max_tokens}, prompt_len={len(prompt)}")

        for attempt in range(self.max_retries + 1):
            has_yielded = False
            try:
                async with self.async_client.messages.stream(
                    model=self.model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system_prompt or "",
                    messages=messages
                ) as stream:
                    async for text in stream.text_stream:
                        has_yielded = True
                        yield text

                    final_message = await stream.get_final_message()

                total_tokens = final_message.usage.input_tokens + final_message.usage.output_tokens
                logger.info(f"Claude Streaming response: id={final_message.id}, tokens={total_tokens}, stop={final_message.stop_reason}")

                # Format: __TOKEN_USAGE__:input:output:model
                yield f"{TOKEN_USAGE_MARKER}:{final_message.usage.input_tokens}:{final_message.usage.output_tokens}:{self.model}"
                return

            except (APIError, httpx.HTTPError) as e:
                error_type = type(e).__name__
                # Only retry if we haven't started yielding yet (can't recover mid-stream)
                if not has_yielded and self._is_retryable_error(e) and attempt < self.max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    logger.warning(
                        f"Claude Streaming API error [{error_type}] (attempt {attempt + 1}/{self.max_retries + 1}), retrying in {delay:.1f}s..."
                    )
                    await asyncio.sleep(delay)
                    continue

                logger.error(
                    f"Claude Streaming API error (non-retryable): {error_type}: {e}",
                    extra={"event_type": "claude_stream_error", "error_type": error_type, "has_yielded": has_yielded}
                )
                raise AIServiceError(f"Claude streaming error: {error_type}: {e}") from e


# Global client instance
claude_client = ClaudeClient()
