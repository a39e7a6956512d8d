from dataclasses import dataclass
from typing import Optional

STAGE_GENERATE = "generate"
STAGE_PARSE = "parse"

# Input types
@dataclass(frozen=True)
class GenerationTask:
    index: int
    persona_prompt: str
    user_prompt: str  # template, may contain the form placeholder
    form_text: Optional[str] = None

@dataclass(frozen=True)
class PipelineConfig:
    """Per-request settings shared by every task of one factory run."""
    model: str
    parser_system_prompt: str
    parser_user_prompt: str
    form_placeholder: str = "{{ $json.form }}"

class StageError(Exception):
    def __init__(self, index: int, stage: str, cause: BaseException):
        self.index = index
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} stage failed: {cause}")
