"""
API models for form scraping and answer injection.
"""

import json
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional

from datafact.pipeline.forms.types import FormSaveState, FormSchema

def _decode_if_string(value: Any) -> Any:
    # no-code tools often send nested JSON double-encoded as a string
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON string: {e}") from e
    return value

class SaveStateModel(BaseModel):
    form_id: str = ""
    fbzx: str = ""
    page_history: str = "0"
    entry_ids: List[int] = Field(default_factory=list)
    entry_mappings: Dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_state(cls, state: FormSaveState) -> "SaveStateModel":
        return cls(**state.to_dict())

    def to_state(self) -> FormSaveState:
        return FormSaveState.from_dict(self.model_dump())

class ScrapeRequest(BaseModel):
    form_url: str = Field(..., min_length=1, description="Public form URL (viewform)")

class QuestionItem(BaseModel):
    id: int
    text: str
    options: Optional[List[str]] = None

class ScrapeResponse(BaseModel):
    description: str
    questions: List[QuestionItem]
    page_count: int
    saves: SaveStateModel
    cookie_email: int = Field(..., description="1 when the form collects verified email, else 0")

    @classmethod
    def from_schema(cls, schema: FormSchema, save_state: FormSaveState) -> "ScrapeResponse":
        return cls(
            description=schema.description,
            questions=[
                QuestionItem(id=q.entry_id, text=q.text, options=list(q.options) or None)
                for q in schema.questions
            ],
            page_count=schema.page_count,
            saves=SaveStateModel.from_state(save_state),
            cookie_email=schema.cookie_email,
        )

class InjectRequest(BaseModel):
    form_url: Optional[str] = Field(
        None, description="Form URL; /viewform is rewritten to /formResponse. Defaults to the scraped URL when form_id is given"
    )
    saves: Optional[SaveStateModel] = Field(None, description="Save state from a scrape (object or JSON string)")
    form_id: Optional[str] = Field(None, description="Reference to a save state cached by an earlier scrape")
    answers: List[Any] = Field(default_factory=list, description="Rows as arrays or objects (or a JSON string of them)")

    @field_validator("saves", "answers", mode="before")
    @classmethod
    def _flexible_json(cls, value: Any) -> Any:
        return _decode_if_string(value)

    @model_validator(mode="after")
    def _needs_save_state(self) -> "InjectRequest":
        if self.saves is None and not self.form_id:
            raise ValueError("either saves or form_id is required")
        if self.saves is not None and not self.form_url:
            raise ValueError("form_url is required when saves are supplied")
        return self

class InjectResponse(BaseModel):
    total: int
    success: int
    failed: int
    details: List[str] = Field(default_factory=list)
