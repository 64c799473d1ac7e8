"""LLM provider adapters."""

from reelsmith.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse, TokenUsage
from reelsmith.adapters.llm.dashscope import DashScopeLLMProvider
from reelsmith.adapters.llm.stub import StubLLMProvider

__all__ = [
    "DashScopeLLMProvider",
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "StubLLMProvider",
    "TokenUsage",
]
