"""
Replays answer rows against a scraped form's response endpoint.

Rows arrive either as arrays (positional against the save state's entry ids)
or as objects. Object rows keyed by entry id are placed by id; any other
object row is ordered by its sorted keys, so callers that cannot key by id
should prefix their keys ("1_name", "2_email") to control the order.
"""

import json
import logging
import time
from typing import Any, Callable, List, Optional, Sequence

import httpx

from ..fanout import BatchOutcome, FanOutOrchestrator
from .types import FormSaveState

logger = logging.getLogger(__name__)

INJECTOR_USER_AGENT = "Mozilla/5.0 (DataFact Injector Bot)"
FORMS_ORIGIN = "https://docs.google.com"


class InjectionError(Exception):
    pass


def format_answer(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_answers(raw_rows: Sequence[Any], entry_ids: Sequence[int]) -> List[List[Any]]:
    rows: List[List[Any]] = []
    for item in raw_rows:
        if isinstance(item, list):
            rows.append(item)
        elif isinstance(item, dict):
            by_id = [item.get(str(entry_id)) for entry_id in entry_ids]
            if any(str(entry_id) in item for entry_id in entry_ids):
                rows.append(by_id)
            else:
                rows.append([item[key] for key in sorted(item)])
        # scalars are not rows
    return rows


def build_partial_response(row: Sequence[Any], save_state: FormSaveState) -> str:
    responses = []
    for entry_id, value in zip(save_state.entry_ids, row):
        if value is None:
            continue
        values = [format_answer(v) for v in value] if isinstance(value, list) else [format_answer(value)]
        responses.append([None, entry_id, values, 0])
    return json.dumps([responses, None, save_state.fbzx], separators=(",", ":"))


def build_submission(row: Sequence[Any], save_state: FormSaveState, timestamp_ms: int) -> dict:
    return {
        "fvv": "1",
        "partialResponse": build_partial_response(row, save_state),
        "pageHistory": save_state.page_history,
        "fbzx": save_state.fbzx,
        "submissionTimestamp": str(timestamp_ms),
    }


def response_endpoint(form_url: str) -> str:
    base, sep, query = form_url.partition("?")
    if base.endswith("/viewform"):
        base = base[: -len("viewform")] + "formResponse"
    return base + sep + query


class FormInjector:
    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        user_agent: str = INJECTOR_USER_AGENT,
        origin: str = FORMS_ORIGIN,
        max_concurrency: int = 20,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client or httpx.Client(timeout=20.0)
        self.user_agent = user_agent
        self.origin = origin
        self.orchestrator = FanOutOrchestrator(max_concurrency, error_label="Row")
        self._clock = clock

    def submit(self, url: str, row: Sequence[Any], save_state: FormSaveState) -> None:
        data = build_submission(row, save_state, int(self._clock() * 1000))
        try:
            response = self.client.post(
                url,
                data=data,
                headers={"User-Agent": self.user_agent, "Origin": self.origin},
            )
        except httpx.HTTPError as e:
            raise InjectionError(str(e)) from e
        if response.status_code != 200:
            raise InjectionError(f"HTTP Status {response.status_code}")

    def inject(self, form_url: str, save_state: FormSaveState, rows: Sequence[Sequence[Any]]) -> BatchOutcome[None]:
        url = response_endpoint(form_url)
        logger.info(f"injecting {len(rows)} rows into {url}")
        outcome = self.orchestrator.run_all(rows, lambda _index, row: self.submit(url, row, save_state))
        logger.info(f"injection finished: {outcome.success_count}/{outcome.total} accepted")
        return outcome
