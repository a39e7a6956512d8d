from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple


class ScrapeError(Exception):
    """The form page could not be fetched or understood."""

class ScrapeStructureError(ScrapeError):
    """The embedded form data is missing or not shaped as expected."""


@dataclass(frozen=True)
class Question:
    entry_id: int
    text: str
    options: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FormSaveState:
    """Everything needed to replay a submission against the scraped form."""
    form_id: str
    fbzx: str
    page_history: str
    entry_ids: Tuple[int, ...]
    entry_mappings: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "form_id": self.form_id,
            "fbzx": self.fbzx,
            "page_history": self.page_history,
            "entry_ids": list(self.entry_ids),
            "entry_mappings": dict(self.entry_mappings),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FormSaveState":
        return cls(
            form_id=str(data.get("form_id") or ""),
            fbzx=str(data.get("fbzx") or ""),
            page_history=str(data.get("page_history") or "0"),
            entry_ids=tuple(int(i) for i in data.get("entry_ids") or []),
            entry_mappings={str(k): int(v) for k, v in (data.get("entry_mappings") or {}).items()},
        )


@dataclass(frozen=True)
class FormSchema:
    description: str
    questions: Tuple[Question, ...]
    page_count: int
    fbzx: str = ""
    cookie_email: int = 0  # 1 when the form collects verified (signed-in) email

    def __post_init__(self):
        seen = set()
        for question in self.questions:
            if question.entry_id in seen:
                raise ScrapeStructureError(f"duplicate entry id {question.entry_id} in form data")
            seen.add(question.entry_id)

    @property
    def entry_ids(self) -> List[int]:
        return [q.entry_id for q in self.questions]

    @property
    def page_history(self) -> str:
        return ",".join(str(i) for i in range(self.page_count + 1))

    @property
    def entry_mappings(self) -> Dict[str, int]:
        # later questions win when two share the same label
        return {q.text: q.entry_id for q in self.questions if q.text}

    def save_state(self, form_id: str) -> FormSaveState:
        return FormSaveState(
            form_id=form_id,
            fbzx=self.fbzx,
            page_history=self.page_history,
            entry_ids=tuple(self.entry_ids),
            entry_mappings=self.entry_mappings,
        )
