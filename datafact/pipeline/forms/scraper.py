import json
import logging
import re
import time
import uuid
from typing import Any, Optional

import httpx

from datafact.config import BROWSER_USER_AGENT
from .layout import FormLayout, PageBreak, parse_item
from .types import FormSchema, Question, ScrapeError, ScrapeStructureError

logger = logging.getLogger(__name__)

LOAD_DATA_PATTERN = re.compile(r"var\s+FB_PUBLIC_LOAD_DATA_\s*=\s*([\s\S]*?);\s*</script>")
LOAD_DATA_FALLBACK_PATTERN = re.compile(r"var\s+FB_PUBLIC_LOAD_DATA_\s*=\s*(\[[\s\S]*\]);")
FBZX_PATTERN = re.compile(r"""name=["']fbzx["']\s+value=["'](.*?)["']""")


def new_form_id() -> str:
    return f"scraped_{int(time.time())}_{uuid.uuid4().hex[:8]}"


def extract_load_data(html: str) -> Any:
    """Locate FB_PUBLIC_LOAD_DATA_ in the page and decode it."""
    match = LOAD_DATA_PATTERN.search(html) or LOAD_DATA_FALLBACK_PATTERN.search(html)
    if not match:
        raise ScrapeStructureError("form data not found (FB_PUBLIC_LOAD_DATA_)")

    literal = match.group(1).strip()
    try:
        # the fallback capture can run past the array; only the first value counts
        data, _ = json.JSONDecoder().raw_decode(literal)
    except json.JSONDecodeError as e:
        raise ScrapeStructureError(f"form data is not valid JSON: {e}") from e
    return data


def find_fbzx(html: str, layout: FormLayout) -> str:
    match = FBZX_PATTERN.search(html)
    if match:
        return match.group(1)
    return layout.fbzx


def parse_form_html(html: str) -> FormSchema:
    layout = FormLayout(extract_load_data(html))
    fbzx = find_fbzx(html, layout)

    questions = []
    page_count = 0
    skipped = 0
    for entry in layout.question_entries:
        item = parse_item(entry)
        if isinstance(item, PageBreak):
            page_count += 1
        elif isinstance(item, Question):
            questions.append(item)
        else:
            skipped += 1

    if skipped:
        logger.debug(f"skipped {skipped} form items without an entry id")
    if not fbzx:
        logger.warning("no fbzx token found in form page")

    return FormSchema(
        description=layout.description,
        questions=tuple(questions),
        page_count=page_count,
        fbzx=fbzx,
        cookie_email=layout.cookie_email,
    )


class FormScraper:
    def __init__(self, client: Optional[httpx.Client] = None, user_agent: str = BROWSER_USER_AGENT):
        self.client = client or httpx.Client(timeout=20.0, follow_redirects=True)
        self.user_agent = user_agent

    def fetch(self, form_url: str) -> str:
        try:
            response = self.client.get(form_url, headers={"User-Agent": self.user_agent})
        except httpx.HTTPError as e:
            raise ScrapeError(f"failed to fetch form page: {e}") from e
        if response.status_code >= 400:
            raise ScrapeError(f"form page returned HTTP {response.status_code}")
        return response.text

    def scrape(self, form_url: str) -> FormSchema:
        start_time = time.time()
        schema = parse_form_html(self.fetch(form_url))
        logger.info(
            f"scraped {form_url}: {len(schema.questions)} questions, "
            f"{schema.page_count + 1} pages in {time.time() - start_time:.2f}s"
        )
        return schema
