"""DashScope (Tongyi Qwen) LLM provider implementation."""

from typing import Any

import httpx

from reelsmith.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse, TokenUsage
from reelsmith.config import settings
from reelsmith.logging import get_logger

logger = get_logger(__name__)


class DashScopeLLMProvider(LLMProvider):
    """Alibaba DashScope text-generation provider for Qwen models."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.dashscope_api_key
        self.model = model or settings.dashscope_text_model
        self.base_url = (base_url or settings.dashscope_base_url).rstrip("/")
        self._transport = transport

        if not self.api_key:
            logger.warning("DashScope API key not configured")

    @property
    def name(self) -> str:
        return f"dashscope:{self.model}"

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> LLMResponse:
        """Generate completion using the DashScope text-generation endpoint."""
        if not self.api_key:
            raise ValueError("DashScope API key not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        parameters: dict[str, Any] = {
            "result_format": "message",
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        payload = {
            "model": self.model,
            "input": {
                "messages": [{"role": m.role, "content": m.content} for m in messages],
            },
            "parameters": parameters,
        }

        logger.debug(
            "dashscope_request",
            model=self.model,
            message_count=len(messages),
        )

        async with self._client(timeout=120.0) as client:
            response = await client.post(
                f"{self.base_url}/services/aigc/text-generation/generation",
                headers=headers,
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

        choice = data["output"]["choices"][0]
        usage = data.get("usage", {})

        logger.info(
            "dashscope_response",
            model=self.model,
            request_id=data.get("request_id"),
            tokens_used=usage.get("total_tokens", 0),
            finish_reason=choice.get("finish_reason"),
        )

        return LLMResponse(
            content=choice["message"]["content"],
            model=self.model,
            usage=TokenUsage(
                input_tokens=usage.get("input_tokens", 0),
                output_tokens=usage.get("output_tokens", 0),
            ),
            request_id=data.get("request_id"),
            finish_reason=choice.get("finish_reason"),
        )

    async def health_check(self) -> bool:
        """DashScope has no cheap ping endpoint; report whether a key is set."""
        return bool(self.api_key)
