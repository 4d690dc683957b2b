"""Natural-language REST command backend using FastAPI + Mangum for AWS Lambda."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache, partial

from fastapi import APIRouter, FastAPI, HTTPException
from mangum import Mangum

from nl_api.config import get_settings
from nl_api.constants import NOT_READY_RETRY_AFTER_SECONDS
from nl_api.errors import NlCommandError, NotReadyError
from nl_api.infra.runtime import (
    ensure_langsmith_configured,
    flush_langsmith_traces,
    get_rest_http_client,
)
from nl_api.openapi.converter import SchemaConverter
from nl_api.openapi.documents import fetch_api_description
from nl_api.orchestration.base import CommandFlow
from nl_api.orchestration.direct import DirectCommandFlow
from nl_api.orchestration.langgraph_flow import LangGraphCommandFlow
from nl_api.provider_registry import build_strategy
from nl_api.rest.executor import RestExecutor
from nl_api.schemas import (
    CommandRequest,
    CommandResponse,
    OperationMetadata,
    ReloadResponse,
    StatusResponse,
)
from nl_api.services.command_service import CommandService
from nl_api.services.initializer import initialize_in_background
from nl_api.services.orchestrator import NlOrchestrator

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

COMMAND_FLOWS: dict[str, type[CommandFlow]] = {
    "direct": DirectCommandFlow,
    "langgraph": LangGraphCommandFlow,
}


@lru_cache(maxsize=1)
def get_orchestrator() -> NlOrchestrator:
    settings = get_settings()
    converter = SchemaConverter(
        fetch_document=partial(fetch_api_description, get_http_client=get_rest_http_client)
    )
    return NlOrchestrator(
        strategy=build_strategy(settings, converter),
        converter=converter,
        executor=RestExecutor(settings.api_base_url, get_rest_http_client),
        flow=COMMAND_FLOWS[settings.orchestration](),
        spec_source=settings.spec_url,
    )


@lru_cache(maxsize=1)
def get_command_service() -> CommandService:
    return CommandService(orchestrator=get_orchestrator())


def start_background_initialization() -> None:
    settings = get_settings()
    initialize_in_background(
        get_orchestrator(),
        max_attempts=settings.init_max_attempts,
        retry_interval_seconds=settings.init_retry_interval_seconds,
    )


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    try:
        start_background_initialization()
    except Exception:
        # Commands answer 503 until POST /api/nl/reload succeeds.
        logger.exception("Failed to start orchestrator initialization")
    yield


app = FastAPI(lifespan=lifespan)
router = APIRouter(prefix="/api")


def _to_http_exception(exc: Exception) -> HTTPException:
    if isinstance(exc, NotReadyError):
        return HTTPException(
            status_code=503,
            detail=str(exc),
            headers={"Retry-After": str(NOT_READY_RETRY_AFTER_SECONDS)},
        )
    if isinstance(exc, NlCommandError):
        logger.warning(
            "Command failed",
            extra={"error_type": type(exc).__name__, "error": str(exc)},
        )
        return HTTPException(status_code=502, detail=str(exc))
    logger.exception("Command processing failed")
    return HTTPException(status_code=502, detail=str(exc))


@router.post("/nl/command", response_model=CommandResponse)
def command(request: CommandRequest) -> CommandResponse:
    """Translate a natural-language message into one REST call and summarize the result."""
    try:
        ensure_langsmith_configured()
        return get_command_service().handle_command(request)
    except Exception as e:
        raise _to_http_exception(e) from e
    finally:
        flush_langsmith_traces()


@router.get("/nl/operations", response_model=list[OperationMetadata])
def operations() -> list[OperationMetadata]:
    """List the operations the model may call."""
    try:
        return get_command_service().list_operations()
    except Exception as e:
        raise _to_http_exception(e) from e


@router.post("/nl/reload", response_model=ReloadResponse)
def reload() -> ReloadResponse:
    """Re-fetch the API description and replace the operation registry."""
    try:
        return get_command_service().reload()
    except Exception as e:
        raise _to_http_exception(e) from e


@router.get("/nl/status", response_model=StatusResponse)
def status() -> StatusResponse:
    try:
        return get_command_service().status()
    except Exception as e:
        raise _to_http_exception(e) from e


@router.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


app.include_router(router)


handler = Mangum(app)
