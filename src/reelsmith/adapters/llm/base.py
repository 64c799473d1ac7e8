"""Chat-model interface used to write video scripts.

The script generator sends a single system prompt plus a single user prompt
and expects one JSON object back, so providers only implement plain chat
completion. Parsing and validation of the reply live in the generator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Literal

ChatRole = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class LLMMessage:
    """One chat turn."""

    role: ChatRole
    content: str

    @classmethod
    def system(cls, content: str) -> "LLMMessage":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "LLMMessage":
        return cls(role="user", content=content)


@dataclass
class TokenUsage:
    """Token accounting as reported by the provider."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class LLMResponse:
    """Text returned by a chat model."""

    content: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    request_id: str | None = None
    finish_reason: str | None = None

    @property
    def truncated(self) -> bool:
        """True when the reply hit the token limit, so any JSON in it is likely cut off."""
        return self.finish_reason == "length"


class LLMProvider(ABC):
    """A chat model that can write a scene-by-scene script.

    Implementations:
    - DashScopeLLMProvider: Tongyi Qwen through the DashScope REST API
    - StubLLMProvider: deterministic three-scene script for tests and offline runs
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> LLMResponse:
        """Return the model's reply to ``messages``.

        Transport and API errors propagate; the script generator wraps them.
        """
        ...

    async def health_check(self) -> bool:
        return True
