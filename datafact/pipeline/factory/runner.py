from typing import List, Optional, Sequence
import logging
import time

from datafact.models.keys import KeyPool
from datafact.models.providers.base import TextGenerator
from ..fanout import BatchOutcome, FanOutOrchestrator
from .executor import TwoStagePipeline
from .types import GenerationTask, PipelineConfig

logger = logging.getLogger(__name__)

def build_tasks(persona_prompts: Sequence[str], user_prompt: str, form_text: Optional[str] = None) -> List[GenerationTask]:
    return [
        GenerationTask(index=i, persona_prompt=persona, user_prompt=user_prompt, form_text=form_text)
        for i, persona in enumerate(persona_prompts)
    ]

class FactoryRunner:
    """Runs one TwoStagePipeline per persona through the bounded fan-out."""

    def __init__(self, generator: TextGenerator, max_concurrency: int = 5):
        self.generator = generator
        self.orchestrator = FanOutOrchestrator(max_concurrency, error_label="Task")

    def run(self, tasks: Sequence[GenerationTask], key_pool: KeyPool, config: PipelineConfig) -> BatchOutcome[str]:
        pipeline = TwoStagePipeline(self.generator, key_pool, config)
        start_time = time.time()
        logger.info(f"factory run: {len(tasks)} personas, model={config.model}, keys={len(key_pool)}")

        outcome = self.orchestrator.run_all(tasks, lambda _index, task: pipeline.run(task))

        logger.info(
            f"factory run finished in {time.time() - start_time:.2f}s: "
            f"{outcome.success_count}/{outcome.total} succeeded"
        )
        return outcome
