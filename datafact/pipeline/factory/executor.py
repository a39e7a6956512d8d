import logging

from datafact.models.keys import KeyPool
from datafact.models.providers.base import TextGenerator
from .types import GenerationTask, PipelineConfig, StageError, STAGE_GENERATE, STAGE_PARSE

logger = logging.getLogger(__name__)

class TwoStagePipeline:
    """
    Generate-then-parse chain for one persona.

    Stage A renders the user template (form text substituted for the
    placeholder) and generates under the persona system prompt. Stage B sends
    the trimmed stage-A output followed by the parser user prompt to the
    parser system prompt. Each call draws its own key from the pool.
    """

    def __init__(self, generator: TextGenerator, key_pool: KeyPool, config: PipelineConfig):
        self.generator = generator
        self.key_pool = key_pool
        self.config = config

    def render_user_prompt(self, task: GenerationTask) -> str:
        if task.form_text:
            return task.user_prompt.replace(self.config.form_placeholder, task.form_text)
        return task.user_prompt

    def build_parser_prompt(self, generated: str) -> str:
        return generated.strip() + "\n\n" + self.config.parser_user_prompt.strip()

    def run(self, task: GenerationTask) -> str:
        try:
            generated = self.generator.generate(
                self.config.model,
                self.key_pool.next(),
                task.persona_prompt,
                self.render_user_prompt(task),
            )
        except Exception as e:
            raise StageError(task.index, STAGE_GENERATE, e) from e
        logger.debug(f"task {task.index}: generate stage returned {len(generated)} chars")

        try:
            parsed = self.generator.generate(
                self.config.model,
                self.key_pool.next(),
                self.config.parser_system_prompt,
                self.build_parser_prompt(generated),
            )
        except Exception as e:
            raise StageError(task.index, STAGE_PARSE, e) from e

        return parsed.strip()
