"""
Tests for the two-stage generate-then-parse executor.
"""

import pytest
from unittest.mock import Mock

from datafact.models.keys import KeyPool
from datafact.models.providers.base import TextGenerator, UpstreamTerminalError
from datafact.pipeline.factory.executor import TwoStagePipeline
from datafact.pipeline.factory.types import GenerationTask, PipelineConfig, StageError


@pytest.fixture
def config():
    return PipelineConfig(
        model="gemini-2.5-flash",
        parser_system_prompt="You output JSON only.",
        parser_user_prompt="  Return a JSON array.  ",
    )


@pytest.fixture
def generator():
    gen = Mock(spec=TextGenerator)
    gen.generate.side_effect = ["  raw persona answer \n", "  [\"a\", \"b\"]  "]
    return gen


class TestTwoStagePipeline:

    def test_runs_both_stages_in_order(self, generator, config):
        pipeline = TwoStagePipeline(generator, KeyPool(["k1", "k2"]), config)
        task = GenerationTask(index=0, persona_prompt="You are Budi.", user_prompt="Form: {{ $json.form }}", form_text="Q1?")

        result = pipeline.run(task)

        assert result == '["a", "b"]'
        first, second = generator.generate.call_args_list
        assert first.args == ("gemini-2.5-flash", "k1", "You are Budi.", "Form: Q1?")
        assert second.args == (
            "gemini-2.5-flash", "k2", "You output JSON only.",
            "raw persona answer\n\nReturn a JSON array.",
        )

    def test_placeholder_left_when_no_form_text(self, generator, config):
        pipeline = TwoStagePipeline(generator, KeyPool(["k"]), config)
        task = GenerationTask(index=0, persona_prompt="p", user_prompt="Form: {{ $json.form }}")

        pipeline.run(task)

        assert generator.generate.call_args_list[0].args[3] == "Form: {{ $json.form }}"

    def test_every_placeholder_occurrence_is_replaced(self, generator, config):
        pipeline = TwoStagePipeline(generator, KeyPool(["k"]), config)
        task = GenerationTask(index=0, persona_prompt="p", user_prompt="{{ $json.form }} / {{ $json.form }}", form_text="F")

        assert pipeline.render_user_prompt(task) == "F / F"

    def test_generate_failure_skips_parse(self, config):
        """
        Test: Stage A fails
        How: Generator raises on first call
        Ensures: Stage B is never called and the error is tagged 'generate' with the task index
        """
        gen = Mock(spec=TextGenerator)
        gen.generate.side_effect = UpstreamTerminalError("gemini api error 403: forbidden")
        pipeline = TwoStagePipeline(gen, KeyPool(["k"]), config)

        with pytest.raises(StageError) as exc_info:
            pipeline.run(GenerationTask(index=3, persona_prompt="p", user_prompt="u"))

        assert exc_info.value.stage == "generate"
        assert exc_info.value.index == 3
        assert isinstance(exc_info.value.cause, UpstreamTerminalError)
        assert gen.generate.call_count == 1

    def test_parse_failure_is_tagged_parse(self, config):
        gen = Mock(spec=TextGenerator)
        gen.generate.side_effect = ["draft", UpstreamTerminalError("retries exhausted")]
        pipeline = TwoStagePipeline(gen, KeyPool(["k"]), config)

        with pytest.raises(StageError) as exc_info:
            pipeline.run(GenerationTask(index=1, persona_prompt="p", user_prompt="u"))

        assert exc_info.value.stage == "parse"
        assert "parse stage failed" in str(exc_info.value)
        assert gen.generate.call_count == 2
