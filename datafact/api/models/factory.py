"""
API models for the generation factory endpoint.

Field names match what existing workflow clients send; a persona's result is
returned at the same position as its prompt in system_prompt_factory.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from .common import APIResponse

# API Request Models
class FactoryRequest(BaseModel):
    """One factory run: N persona prompts, each generated then parsed."""
    system_prompt_factory: List[str] = Field(..., min_length=1, description="Persona system prompts, one task each")
    user_prompt_factory: str = Field(..., min_length=1, description="Generation user prompt template")
    system_prompt_parser: str = Field(..., min_length=1, description="Parser system prompt")
    user_prompt_parser: str = Field(..., min_length=1, description="Parser instructions appended to the generated text")
    form_text: Optional[str] = Field(None, description="Substituted for the form placeholder in user_prompt_factory")
    gemini_api_key: str = Field(..., min_length=1, description="One or more API keys separated by ';'")
    model: Optional[str] = Field(None, description="Model id; the configured default when omitted")
    spreadsheet_id: Optional[str] = Field(None, description="Accepted for older clients and ignored")

    @field_validator("user_prompt_factory", "system_prompt_parser", "user_prompt_parser", "gemini_api_key")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "system_prompt_factory": [
                    "You are Budi, 34, a logistics supervisor from Surabaya.",
                    "You are Sari, 22, a design student from Bandung."
                ],
                "user_prompt_factory": "Answer this questionnaire in character:\n{{ $json.form }}",
                "system_prompt_parser": "You convert free text answers into strict JSON.",
                "user_prompt_parser": "Return only a JSON array of answers in question order.",
                "form_text": "1. How often do you shop online?\n2. Favourite payment method?",
                "gemini_api_key": "key-one;key-two",
                "model": "gemini-2.5-flash"
            }
        }

# API Response Models
class FactoryResponse(APIResponse):
    """Batch result; task-level failures are listed in errors, not raised."""
    total_processed: int = Field(..., description="Number of persona tasks run")
    success_count: int = Field(..., description="Tasks that completed both stages")
    results: List[Optional[str]] = Field(..., description="Parser output per persona, null where the task failed")
    errors: List[str] = Field(default_factory=list, description="One message per failed task")
