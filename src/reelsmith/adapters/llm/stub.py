"""Stub LLM provider for testing."""

import json

from reelsmith.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse, TokenUsage
from reelsmith.logging import get_logger

logger = get_logger(__name__)

_BEATS = [
    ("Opening shot establishing the setting", "wide establishing shot, soft morning light"),
    ("The subject comes into focus", "slow dolly-in, shallow depth of field, warm tones"),
    ("A closing moment that lingers", "crane shot pulling back, golden hour, gentle haze"),
]


class StubLLMProvider(LLMProvider):
    """Stub provider that returns a deterministic three-scene script."""

    @property
    def name(self) -> str:
        return "stub"

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,  # noqa: ARG002
        max_tokens: int = 2000,  # noqa: ARG002
    ) -> LLMResponse:
        """Return a mock script for the last user message."""
        logger.info(
            "stub_llm_complete",
            message_count=len(messages),
        )

        user_message = ""
        for msg in reversed(messages):
            if msg.role == "user":
                user_message = msg.content
                break

        content = json.dumps(
            {
                "title": f"Short film: {user_message[-40:]}",
                "total_duration": 15,
                "scenes": [
                    {
                        "scene_number": i + 1,
                        "description": description,
                        "visual_prompt": visual,
                        "duration": 5,
                    }
                    for i, (description, visual) in enumerate(_BEATS)
                ],
            },
            ensure_ascii=False,
            indent=2,
        )

        return LLMResponse(
            content=content,
            model="stub-model",
            usage=TokenUsage(
                input_tokens=len(user_message.split()),
                output_tokens=len(content.split()),
            ),
            finish_reason="stop",
        )
