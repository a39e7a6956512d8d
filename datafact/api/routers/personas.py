"""
Persona bank filter endpoint.
"""

from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool

from ..models.common import InvalidRequestError
from ..models.personas import PersonaFilterRequest, PersonaFilterResponse
from ..dependencies.auth import require_api_key
from ..dependencies.services import get_persona_store
from datafact.models.services.persona_store import PersonaStore, PersonaStoreError, normalize_filter

router = APIRouter()

@router.post("/filter", response_model=PersonaFilterResponse, dependencies=[Depends(require_api_key)])
async def filter_personas(
    request: PersonaFilterRequest,
    store: PersonaStore = Depends(get_persona_store),
):
    try:
        filters = normalize_filter(request.filter)
    except ValueError as e:
        raise InvalidRequestError(str(e)) from e

    try:
        rows = await run_in_threadpool(store.fetch, filters, request.limit, request.offset)
    except PersonaStoreError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return PersonaFilterResponse(count=len(rows), data=rows)
