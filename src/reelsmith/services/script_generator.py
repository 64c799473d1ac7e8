"""Script generation: turns a one-line idea into a scene-by-scene script."""

import json
import re

from pydantic import ValidationError

from reelsmith.adapters.llm.base import LLMMessage, LLMProvider
from reelsmith.adapters.llm.dashscope import DashScopeLLMProvider
from reelsmith.adapters.llm.stub import StubLLMProvider
from reelsmith.config import settings
from reelsmith.domain.script import VideoScript
from reelsmith.exceptions import ScriptGenerationError
from reelsmith.logging import get_logger

logger = get_logger(__name__)

# Outermost {...} block; tolerates code fences and prose around the JSON
JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def get_llm_provider() -> LLMProvider:
    """Pick the LLM provider named by ``LLM_PROVIDER``, falling back to the stub."""
    provider_name = settings.llm_provider.lower()

    if provider_name == "stub":
        return StubLLMProvider()
    if provider_name == "dashscope" and settings.dashscope_api_key:
        return DashScopeLLMProvider()

    logger.warning("llm_provider_not_configured_using_stub", requested=provider_name)
    return StubLLMProvider()


def parse_script(content: str) -> VideoScript:
    """Extract and validate a script from a raw LLM reply.

    Scenes are renumbered 1..N in the order the model returned them.

    Raises:
        ScriptGenerationError: If no valid script can be parsed.
    """
    match = JSON_BLOCK.search(content)
    if not match:
        raise ScriptGenerationError("Could not find script JSON in LLM response")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ScriptGenerationError(f"LLM returned invalid JSON: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("scenes"), list):
        for index, scene in enumerate(data["scenes"], start=1):
            if isinstance(scene, dict):
                scene["scene_number"] = index

    try:
        return VideoScript.model_validate(data)
    except ValidationError as e:
        raise ScriptGenerationError(f"LLM response is not a valid script: {e}") from e


class ScriptGenerator:
    """Generates storyboard scripts with an LLM.

    Produces 3-8 consecutive scenes, each with a narrative description, a
    visual prompt for the clip generator and a suggested duration.
    """

    SYSTEM_PROMPT = (
        "You are a professional video script writer. You turn a short creative "
        "idea into a detailed, shot-by-shot video storyboard."
    )

    def __init__(
        self,
        llm_provider: LLMProvider | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> None:
        self.llm = llm_provider or get_llm_provider()
        self.temperature = temperature
        self.max_tokens = max_tokens
        logger.info("script_generator_initialized", provider=self.llm.name)

    def _build_user_prompt(self, user_input: str) -> str:
        """Build the user prompt for script generation."""
        return f"""Turn the following video idea into a storyboard script.

IDEA: "{user_input}"

Write 3-8 consecutive scenes. Each scene has:
1. scene_number: 1, 2, 3...
2. description: what happens in the scene, its mood and emotion (1-3 sentences)
3. visual_prompt: a concrete prompt for an AI video model describing subject, camera movement, lighting and color
4. duration: suggested length in seconds (3-15)

Requirements:
- Scenes flow into each other and tell one story
- Visual prompts are specific and vivid
- Total length between 30 and 180 seconds

Return JSON only, in this shape:
{{
  "title": "Video title",
  "total_duration": 60,
  "scenes": [
    {{"scene_number": 1, "description": "...", "visual_prompt": "...", "duration": 5}}
  ]
}}"""

    async def generate_script(self, user_input: str) -> VideoScript:
        """Generate a script for a prompt.

        Raises:
            ScriptGenerationError: If the LLM call fails or its reply is unusable
        """
        logger.info(
            "script_generation_started",
            user_input=user_input[:100],
            llm_provider=self.llm.name,
        )

        messages = [
            LLMMessage.system(self.SYSTEM_PROMPT),
            LLMMessage.user(self._build_user_prompt(user_input)),
        ]

        try:
            response = await self.llm.complete(
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            logger.error("script_llm_call_failed", error=str(e))
            raise ScriptGenerationError(f"Script generation failed: {e}") from e

        try:
            script = parse_script(response.content)
        except ScriptGenerationError:
            logger.error(
                "script_parse_failed",
                content=response.content[:500],
                truncated=response.truncated,
            )
            raise

        logger.info(
            "script_generated",
            title=script.title,
            scene_count=len(script.scenes),
            total_duration=script.total_duration,
        )
        return script

    async def health_check(self) -> bool:
        """Check if the script generator's LLM provider is healthy."""
        return await self.llm.health_check()
