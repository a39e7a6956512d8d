"""
Form scraping and answer injection endpoints.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from ..models.common import InvalidRequestError
from ..models.forms import ScrapeRequest, ScrapeResponse, InjectRequest, InjectResponse
from ..dependencies.auth import require_api_key
from ..dependencies.save_states import SaveStateStore, get_save_state_store
from ..dependencies.services import get_scraper, get_injector
from datafact.pipeline.forms.injector import FormInjector, normalize_answers
from datafact.pipeline.forms.scraper import FormScraper, new_form_id
from datafact.pipeline.forms.types import ScrapeError

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/scrape", response_model=ScrapeResponse, response_model_exclude_none=True)
async def scrape_form(
    request: ScrapeRequest,
    scraper: FormScraper = Depends(get_scraper),
    save_states: SaveStateStore = Depends(get_save_state_store),
):
    """
    Recover a form's questions and the save state needed to submit to it.

    The save state is also cached under its form_id for later injections.
    """
    try:
        schema = await run_in_threadpool(scraper.scrape, request.form_url)
    except ScrapeError as e:
        logger.error(f"scraping {request.form_url} failed: {e}")
        raise HTTPException(status_code=500, detail=f"scraping failed: {e}")

    save_state = schema.save_state(new_form_id())
    save_states.put(save_state, form_url=request.form_url)
    return ScrapeResponse.from_schema(schema, save_state)

@router.post("/inject", response_model=InjectResponse, dependencies=[Depends(require_api_key)])
async def inject_answers(
    request: InjectRequest,
    injector: FormInjector = Depends(get_injector),
    save_states: SaveStateStore = Depends(get_save_state_store),
):
    form_url = request.form_url
    if request.saves is not None:
        save_state = request.saves.to_state()
    else:
        cached = save_states.get_entry(request.form_id)
        if cached is None:
            raise InvalidRequestError(f"unknown or expired form_id: {request.form_id}")
        save_state = cached.save_state
        form_url = form_url or cached.form_url
    if not form_url:
        raise InvalidRequestError("form_url is required")

    rows = normalize_answers(request.answers, save_state.entry_ids)
    if not rows:
        raise InvalidRequestError("no answers provided/parsed")
    if not save_state.entry_ids:
        raise InvalidRequestError("invalid saves data: entry_ids missing")

    outcome = await run_in_threadpool(injector.inject, form_url, save_state, rows)
    return InjectResponse(
        total=outcome.total,
        success=outcome.success_count,
        failed=outcome.failed_count,
        details=outcome.errors,
    )
