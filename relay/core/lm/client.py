"""
Llama Client — completions from a llama.cpp server.

Uses the server's OpenAI-compatible API (/v1/chat/completions) through the
openai SDK. The SDK's own retries are disabled: the dispatcher owns the
timeout and retry policy, this client only classifies failures as
retryable (LLMUnavailableError) or not (LLMRejectedError).
"""
from typing import Optional

import httpx
from openai import (
    AsyncOpenAI,
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
)

from ..config import LlamaConfig
from ..errors import LLMRejectedError, LLMUnavailableError
from ..logger import log


# HTTP codes worth retrying besides 5xx
RETRYABLE_STATUS = {408, 429}


class LlamaClient:
    """
    Client for llama.cpp's OpenAI-compatible chat API.

    One prompt in, one completion text out.
    """

    def __init__(
        self,
        config: Optional[LlamaConfig] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or LlamaConfig()
        self.base_url = f"{self.config.base_url.rstrip('/')}/v1"
        kwargs = {"timeout": timeout} if timeout is not None else {}
        self.client = AsyncOpenAI(
            base_url=self.base_url,
            api_key=self.config.api_key,  # llama.cpp doesn't check the key
            max_retries=0,
            http_client=http_client,
            **kwargs,
        )

    def build_params(self, prompt: str) -> dict:
        params = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
        }
        if self.config.max_tokens:
            params["max_tokens"] = self.config.max_tokens
        return params

    async def complete(self, prompt: str) -> str:
        """Send one chat completion request and return the reply text."""
        log.llm(f"Sending request to {self.base_url}/chat/completions", prompt=log.preview(prompt))
        try:
            response = await self.client.chat.completions.create(**self.build_params(prompt))
        except APITimeoutError as e:
            raise LLMUnavailableError(f"timeout: {e}") from e
        except APIConnectionError as e:
            raise LLMUnavailableError(f"connection failed: {e}") from e
        except APIStatusError as e:
            if e.status_code >= 500 or e.status_code in RETRYABLE_STATUS:
                raise LLMUnavailableError(f"HTTP {e.status_code}: {e.message}") from e
            raise LLMRejectedError(f"HTTP {e.status_code}: {e.message}") from e

        if not response.choices:
            raise LLMRejectedError("response has no choices")
        content = response.choices[0].message.content
        if content is None:
            raise LLMRejectedError("response has no message content")

        log.llm("Completion received", id=response.id, chars=len(content))
        return content

    async def close(self):
        await self.client.close()
