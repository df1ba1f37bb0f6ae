import time
import logging
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

# Load environment variables from .env file before anything else
load_dotenv()

from medx360.core.config import Settings, get_settings
from medx360.core.db import build_engine, build_sessionmaker, init_models
from medx360.core.errors import (
    ValidationError, SlotUnavailableError, NotFoundError, InvalidTransitionError, StorageTimeoutError, ConflictError,
)
from medx360.core.logging import setup_logging, request_id_ctx
from medx360.api.router import api_router
from medx360.modules.events.notifier import BookingNotifier
from medx360.platform.provider_registry import ProviderRegistry

logger = logging.getLogger(__name__)

def _error(status_code: int, exc: Exception, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc), **extra})

def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)
    app = FastAPI(title=settings.APP_NAME)

    app.state.settings = settings
    app.state.scheduling_config = settings.scheduling_config()
    app.state.engine = build_engine(settings)
    app.state.sessions = build_sessionmaker(app.state.engine)
    app.state.providers = ProviderRegistry(settings)
    app.state.notifier = BookingNotifier(app.state.providers.event_bus())

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = (time.time() - start_time) * 1000
        formatted_process_time = f"{process_time:.2f}ms"

        logger.info(
            f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {formatted_process_time}"
        )

        return response

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        rid = request.headers.get("x-request-id", "-")
        request_id_ctx.set(rid)
        response = await call_next(request)
        return response

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _error(422, exc, errors=exc.errors)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = {str(e["loc"][-1]): e["msg"] for e in exc.errors()}
        return JSONResponse(status_code=422, content={"detail": "invalid request", "errors": errors})

    @app.exception_handler(SlotUnavailableError)
    async def slot_unavailable_handler(request: Request, exc: SlotUnavailableError):
        return _error(409, exc, code="slot_unavailable")

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        return _error(409, exc, code="conflict")

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error(404, exc)

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
        return _error(409, exc, code="invalid_transition", current=exc.current, requested=exc.requested)

    @app.exception_handler(StorageTimeoutError)
    async def storage_timeout_handler(request: Request, exc: StorageTimeoutError):
        logger.error(f"Storage timeout for request {request.method} {request.url.path}: {exc}")
        return _error(503, exc, code="storage_timeout")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"message": "An internal server error occurred."},
        )

    @app.on_event("startup")
    async def on_startup():
        await init_models(app.state.engine, settings)

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.notifier.drain()
        await app.state.providers.close()
        await app.state.engine.dispose()

    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app

app = create_app()
