"""
Tests for answer normalization and concurrent form submission.
"""

import json
import threading
from urllib.parse import parse_qs

import httpx
import pytest

from datafact.pipeline.forms.injector import (
    FormInjector,
    InjectionError,
    build_partial_response,
    build_submission,
    normalize_answers,
    response_endpoint,
)
from datafact.pipeline.forms.types import FormSaveState


@pytest.fixture
def save_state():
    return FormSaveState(
        form_id="scraped_1_abcd1234",
        fbzx="-777",
        page_history="0,1",
        entry_ids=(1001, 1002, 1003),
        entry_mappings={"Name": 1001, "Colour": 1002, "Age": 1003},
    )


class TestNormalizeAnswers:

    def test_arrays_pass_through(self):
        assert normalize_answers([["a", "b"], ["c"]], [1, 2]) == [["a", "b"], ["c"]]

    def test_objects_keyed_by_entry_id(self):
        rows = normalize_answers([{"2": "second", "1": "first"}], [1, 2, 3])
        assert rows == [["first", "second", None]]

    def test_other_objects_use_sorted_keys(self):
        rows = normalize_answers([{"2_email": "e@x.id", "1_name": "Budi"}], [1001, 1002])
        assert rows == [["Budi", "e@x.id"]]

    def test_scalars_are_dropped(self):
        assert normalize_answers(["oops", 3, None, ["ok"]], [1]) == [["ok"]]


class TestPayload:

    def test_partial_response_layout(self, save_state):
        payload = json.loads(build_partial_response(["Budi", ["Red", "Blue"], 30], save_state))
        assert payload == [
            [
                [None, 1001, ["Budi"], 0],
                [None, 1002, ["Red", "Blue"], 0],
                [None, 1003, ["30"], 0],
            ],
            None,
            "-777",
        ]

    def test_partial_response_is_compact_and_skips_none(self, save_state):
        raw = build_partial_response([None, "Green"], save_state)
        assert " " not in raw
        assert json.loads(raw)[0] == [[None, 1002, ["Green"], 0]]

    def test_submission_fields(self, save_state):
        form = build_submission(["x"], save_state, 1700000000123)
        assert form["fvv"] == "1"
        assert form["pageHistory"] == "0,1"
        assert form["fbzx"] == "-777"
        assert form["submissionTimestamp"] == "1700000000123"

    @pytest.mark.parametrize("url,expected", [
        ("https://docs.google.com/forms/d/e/abc/viewform", "https://docs.google.com/forms/d/e/abc/formResponse"),
        ("https://docs.google.com/forms/d/e/abc/viewform?usp=sf_link", "https://docs.google.com/forms/d/e/abc/formResponse?usp=sf_link"),
        ("https://docs.google.com/forms/d/e/abc/formResponse", "https://docs.google.com/forms/d/e/abc/formResponse"),
    ])
    def test_response_endpoint(self, url, expected):
        assert response_endpoint(url) == expected


class TestFormInjector:

    def test_inject_submits_every_row(self, save_state):
        """
        Test: Concurrent submission of several rows
        How: MockTransport rejects the row whose name is 'reject'
        Ensures: Other rows succeed, the failure is reported as 'Row i failed: HTTP Status 500'
        """
        seen = []
        lock = threading.Lock()

        def handler(request):
            form = parse_qs(request.content.decode())
            answers = json.loads(form["partialResponse"][0])[0]
            with lock:
                seen.append((str(request.url), request.headers["Origin"], form["fbzx"][0]))
            if answers[0][2] == ["reject"]:
                return httpx.Response(500)
            return httpx.Response(200, text="ok")

        injector = FormInjector(client=httpx.Client(transport=httpx.MockTransport(handler)), clock=lambda: 1.5)
        rows = [["a", "Red", 1], ["reject", "Blue", 2], ["c", "Green", 3]]

        outcome = injector.inject("https://docs.google.com/forms/d/e/abc/viewform", save_state, rows)

        assert outcome.total == 3
        assert outcome.success_count == 2
        assert outcome.errors == ["Row 1 failed: HTTP Status 500"]
        assert len(seen) == 3
        assert {s[0] for s in seen} == {"https://docs.google.com/forms/d/e/abc/formResponse"}
        assert {s[1] for s in seen} == {"https://docs.google.com"}
        assert {s[2] for s in seen} == {"-777"}

    def test_submit_transport_error(self, save_state):
        def handler(request):
            raise httpx.ReadTimeout("timed out")

        injector = FormInjector(client=httpx.Client(transport=httpx.MockTransport(handler)))
        with pytest.raises(InjectionError):
            injector.submit("https://forms.test/formResponse", ["x"], save_state)

    def test_timestamp_in_milliseconds(self, save_state):
        captured = {}

        def handler(request):
            captured.update(parse_qs(request.content.decode()))
            return httpx.Response(200)

        injector = FormInjector(client=httpx.Client(transport=httpx.MockTransport(handler)), clock=lambda: 12.5)
        injector.submit("https://forms.test/formResponse", ["x"], save_state)

        assert captured["submissionTimestamp"] == ["12500"]
