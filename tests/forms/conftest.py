import pytest

from form_pages import form_page, load_data, page_break, question


@pytest.fixture
def survey_entries():
    return [
        question(1001, "Name"),
        question(1002, "Favourite colour", options=["Red", "Green", "Blue"]),
        page_break(),
        question(1003, "Age"),
    ]


@pytest.fixture
def survey_html(survey_entries):
    return form_page(load_data(survey_entries, fbzx="-555"), fbzx_input="-777")
