"""Tests for the ScriptGenerator service."""

import json
from unittest.mock import AsyncMock

import pytest

from reelsmith.adapters.llm.base import LLMResponse
from reelsmith.adapters.llm.stub import StubLLMProvider
from reelsmith.domain.script import VideoScript
from reelsmith.exceptions import ScriptGenerationError
from reelsmith.services.script_generator import ScriptGenerator, parse_script

SCRIPT = {
    "title": "Spring",
    "total_duration": 20,
    "scenes": [
        {"scene_number": 1, "description": "Buds open", "visual_prompt": "macro", "duration": 5},
        {"scene_number": 2, "description": "Rain", "visual_prompt": "slow motion", "duration": 8},
    ],
}


class TestParseScript:
    def test_plain_json(self) -> None:
        script = parse_script(json.dumps(SCRIPT))

        assert isinstance(script, VideoScript)
        assert script.title == "Spring"
        assert [s.duration for s in script.scenes] == [5, 8]

    def test_json_inside_code_fence_and_prose(self) -> None:
        content = f"Here is your script:\n```json\n{json.dumps(SCRIPT)}\n```\nEnjoy!"

        script = parse_script(content)

        assert len(script.scenes) == 2

    def test_scenes_are_renumbered_in_returned_order(self) -> None:
        data = {
            "title": "Odd numbering",
            "scenes": [
                {"scene_number": 4, "description": "a", "visual_prompt": "a"},
                {"scene_number": 1, "description": "b", "visual_prompt": "b"},
                {"description": "c", "visual_prompt": "c"},
            ],
        }

        script = parse_script(json.dumps(data))

        assert [s.scene_number for s in script.scenes] == [1, 2, 3]
        assert [s.description for s in script.scenes] == ["a", "b", "c"]

    @pytest.mark.parametrize(
        "content",
        [
            "I cannot write that script.",
            "{not json}",
            json.dumps({"title": "No scenes", "scenes": []}),
            json.dumps({"title": "Bad scene", "scenes": [{"description": "missing prompt"}]}),
        ],
    )
    def test_unusable_replies(self, content: str) -> None:
        with pytest.raises(ScriptGenerationError):
            parse_script(content)


class TestScriptGenerator:
    @pytest.mark.asyncio
    async def test_stub_provider_returns_three_scenes(self) -> None:
        generator = ScriptGenerator(llm_provider=StubLLMProvider())

        script = await generator.generate_script("a short video about spring")

        assert [s.scene_number for s in script.scenes] == [1, 2, 3]
        assert all(s.visual_prompt for s in script.scenes)

    @pytest.mark.asyncio
    async def test_calls_llm_with_script_settings(self) -> None:
        llm = StubLLMProvider()
        llm.complete = AsyncMock(
            return_value=LLMResponse(content=json.dumps(SCRIPT), model="mock")
        )
        generator = ScriptGenerator(llm_provider=llm)

        await generator.generate_script("a short video about spring")

        kwargs = llm.complete.await_args.kwargs
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 2000
        messages = kwargs["messages"]
        assert [m.role for m in messages] == ["system", "user"]
        assert "a short video about spring" in messages[1].content

    @pytest.mark.asyncio
    async def test_llm_error_becomes_script_error(self) -> None:
        llm = StubLLMProvider()
        llm.complete = AsyncMock(side_effect=RuntimeError("quota exceeded"))
        generator = ScriptGenerator(llm_provider=llm)

        with pytest.raises(ScriptGenerationError, match="quota exceeded"):
            await generator.generate_script("a short video about spring")

    @pytest.mark.asyncio
    async def test_health_check_delegates(self) -> None:
        generator = ScriptGenerator(llm_provider=StubLLMProvider())

        assert await generator.health_check() is True
