"""
Generation factory endpoint.

Fans a request out into one generate-then-parse task per persona prompt and
returns the parser outputs in persona order. Individual task failures are
reported in the body; only request-level problems produce an error status.
"""

import logging
from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from ..models.common import InvalidRequestError
from ..models.factory import FactoryRequest, FactoryResponse
from ..dependencies.auth import require_api_key
from ..dependencies.services import get_config, get_generator
from datafact.config import AppConfig, ConfigError
from datafact.models.keys import KeyPool
from datafact.models.providers.base import TextGenerator
from datafact.pipeline.factory.runner import FactoryRunner, build_tasks
from datafact.pipeline.factory.types import PipelineConfig

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/run", response_model=FactoryResponse, dependencies=[Depends(require_api_key)])
async def run_factory(
    request: FactoryRequest,
    generator: TextGenerator = Depends(get_generator),
    config: AppConfig = Depends(get_config),
):
    try:
        key_pool = KeyPool.from_delimited(request.gemini_api_key)
    except ConfigError as e:
        raise InvalidRequestError(f"gemini_api_key: {e}") from e

    pipeline_config = PipelineConfig(
        model=request.model or config.gemini.default_model,
        parser_system_prompt=request.system_prompt_parser,
        parser_user_prompt=request.user_prompt_parser,
        form_placeholder=config.factory.form_placeholder,
    )
    tasks = build_tasks(request.system_prompt_factory, request.user_prompt_factory, request.form_text)

    runner = FactoryRunner(generator, max_concurrency=config.factory.max_concurrency)
    outcome = await run_in_threadpool(runner.run, tasks, key_pool, pipeline_config)

    return FactoryResponse(
        success=True,
        message=f"{outcome.success_count}/{outcome.total} tasks succeeded",
        total_processed=outcome.total,
        success_count=outcome.success_count,
        results=outcome.results,
        errors=outcome.errors,
    )
