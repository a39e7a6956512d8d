import threading

from datafact.models.keys import KeyPool
from datafact.models.providers.base import TextGenerator, UpstreamTerminalError
from datafact.pipeline.factory.runner import FactoryRunner, build_tasks
from datafact.pipeline.factory.types import PipelineConfig


class PersonaEchoGenerator(TextGenerator):
    """Stage A echoes the persona, stage B upper-cases what it was given."""

    def __init__(self, failing_personas=()):
        self.failing_personas = set(failing_personas)
        self.keys_used = []
        self._lock = threading.Lock()

    def generate(self, model, api_key, system_prompt, user_prompt):
        with self._lock:
            self.keys_used.append(api_key)
        if system_prompt in self.failing_personas:
            raise UpstreamTerminalError(f"gemini api error 403: {system_prompt}")
        if system_prompt == "PARSER":
            return user_prompt.split("\n\n")[0].upper()
        return f"answer from {system_prompt}"

    def health_check(self):
        return True


CONFIG = PipelineConfig(model="m", parser_system_prompt="PARSER", parser_user_prompt="format it")


class TestFactoryRunner:

    def test_build_tasks_indexes_personas(self):
        tasks = build_tasks(["p0", "p1"], "tmpl", "form")
        assert [(t.index, t.persona_prompt, t.form_text) for t in tasks] == [(0, "p0", "form"), (1, "p1", "form")]

    def test_results_aligned_with_personas(self):
        personas = [f"persona-{i}" for i in range(12)]
        generator = PersonaEchoGenerator()

        outcome = FactoryRunner(generator, max_concurrency=5).run(build_tasks(personas, "u"), KeyPool(["a", "b"]), CONFIG)

        assert outcome.results == [f"ANSWER FROM PERSONA-{i}" for i in range(12)]
        assert outcome.success_count == 12
        # two calls per persona, spread evenly over the two keys
        assert generator.keys_used.count("a") == generator.keys_used.count("b") == 12

    def test_one_failing_persona_does_not_affect_others(self):
        personas = ["ok-0", "bad", "ok-2"]
        generator = PersonaEchoGenerator(failing_personas={"bad"})

        outcome = FactoryRunner(generator).run(build_tasks(personas, "u"), KeyPool(["k"]), CONFIG)

        assert outcome.results == ["ANSWER FROM OK-0", None, "ANSWER FROM OK-2"]
        assert outcome.success_count == 2
        assert len(outcome.errors) == 1
        assert outcome.errors[0].startswith("Task 1 failed: generate stage failed:")
