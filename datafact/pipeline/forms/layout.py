"""
Positional access to the FB_PUBLIC_LOAD_DATA_ array.

The array is undocumented; everything known about it is encoded as the
offsets below. Containers the scraper cannot do without are checked with
expect_list() and fail with ScrapeStructureError naming the path. Individual
question entries that do not fit the known shape are reported as None and
skipped by the caller.
"""

from typing import Any, List, Optional, Union

from .types import Question, ScrapeStructureError

FORM_CONTENT = 1           # root[1]
FBZX_OFFSET = 14           # root[14]
DESCRIPTION = 0            # root[1][0]
QUESTION_LIST = 1          # root[1][1]
EMAIL_COLLECTION = 10      # root[1][10]
EMAIL_VERIFIED = 2

ITEM_TEXT = 1              # entry[1]
ITEM_TYPE = 3              # entry[3]
ITEM_INPUTS = 4            # entry[4]
INPUT_ENTRY_ID = 0         # entry[4][0][0]
INPUT_OPTIONS = 1          # entry[4][0][1]
PAGE_BREAK_TYPE = 8


class PageBreak:
    __slots__ = ()

PAGE_BREAK = PageBreak()


def _describe(value: Any) -> str:
    if isinstance(value, list):
        return f"array of {len(value)}"
    return type(value).__name__

def expect_list(value: Any, where: str, min_len: int = 0) -> List[Any]:
    if not isinstance(value, list) or len(value) < min_len:
        raise ScrapeStructureError(f"expected array of at least {min_len} items at {where}, got {_describe(value)}")
    return value

def get(seq: List[Any], index: int) -> Any:
    return seq[index] if 0 <= index < len(seq) else None

def as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None

def as_text(value: Any) -> Optional[str]:
    """Strings as-is, numbers without exponent or trailing '.0'."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return None


class FormLayout:
    def __init__(self, raw: Any):
        self.root = expect_list(raw, "root", FORM_CONTENT + 1)
        self.content = expect_list(self.root[FORM_CONTENT], "root[1]", QUESTION_LIST + 1)

    @property
    def description(self) -> str:
        desc = get(self.content, DESCRIPTION)
        return desc if isinstance(desc, str) else ""

    @property
    def question_entries(self) -> List[Any]:
        return expect_list(self.content[QUESTION_LIST], "root[1][1]")

    @property
    def fbzx(self) -> str:
        return as_text(get(self.root, FBZX_OFFSET)) or ""

    @property
    def cookie_email(self) -> int:
        return 1 if as_int(get(self.content, EMAIL_COLLECTION)) == EMAIL_VERIFIED else 0


def parse_item(entry: Any) -> Union[Question, PageBreak, None]:
    if not isinstance(entry, list) or len(entry) <= ITEM_TYPE:
        return None
    if as_int(entry[ITEM_TYPE]) == PAGE_BREAK_TYPE:
        return PAGE_BREAK

    inputs = get(entry, ITEM_INPUTS)
    if not isinstance(inputs, list) or not inputs:
        return None
    detail = inputs[0]
    if not isinstance(detail, list) or not detail:
        return None
    entry_id = as_int(detail[INPUT_ENTRY_ID])
    if entry_id is None:
        return None

    text = entry[ITEM_TEXT] if isinstance(entry[ITEM_TEXT], str) else ""

    options = []
    raw_options = get(detail, INPUT_OPTIONS)
    if isinstance(raw_options, list):
        for option in raw_options:
            if isinstance(option, list) and option and isinstance(option[0], str):
                options.append(option[0])

    return Question(entry_id=entry_id, text=text, options=tuple(options))
