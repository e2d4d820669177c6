import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth.middleware import AuthorizationMiddleware
from .background import JobRunner
from .config import Settings, get_settings
from .crud.anime import AnimeRepository
from .crud.anime_redis import RedisAnimeStore, get_async_redis_client
from .crud.user import UserRepository
from .database import create_engine, create_session_factory, init_models
from .domain.ports.anime import AnimeStore
from .domain.ports.user import UserPort
from .errors import AppError, ValidationError, error_for_status, error_response
from .routers import anime, auth
from .security.authentication import CredentialsAuthenticationProvider

logger = logging.getLogger("anime_api")


def _resolve_log_level(value: str) -> int:
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level_name: str) -> None:
    log_level = _resolve_log_level(level_name)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(log_level)


def _build_store(
    settings: Settings, session_factory: async_sessionmaker[AsyncSession]
) -> AnimeStore:
    if settings.store_backend == "redis":
        return RedisAnimeStore(get_async_redis_client(settings.redis_url))
    return AnimeRepository(session_factory)


def _health_response(status_text: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status_text})


def _format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    return "; ".join(messages) or "Request validation failed"


def create_app(
    settings: Settings | None = None,
    *,
    store: AnimeStore | None = None,
    user_port: UserPort | None = None,
    job_runner: JobRunner | None = None,
) -> FastAPI:
    """Build the application and wire its collaborators.

    Collaborators that are not passed in are built from ``settings``. The
    engine connects lazily, so nothing touches the database until the first
    request (or the schema bootstrap in the lifespan).
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    engine: AsyncEngine | None = None
    if store is None or user_port is None:
        engine = create_engine(settings)
        session_factory = create_session_factory(engine)
        if user_port is None:
            user_port = UserRepository(session_factory)
        if store is None:
            store = _build_store(settings, session_factory)

    runner = job_runner or JobRunner()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting application store_backend=%s", settings.store_backend)
        if settings.debug:
            logger.warning("DEBUG=true, do not use in production")
        if engine is not None and settings.create_schema:
            await init_models(engine)

        yield

        # Let pending compensations finish before the store goes away.
        await runner.drain()
        await runner.stop()
        if isinstance(app.state.store, RedisAnimeStore):
            await app.state.store.close()
        if engine is not None:
            await engine.dispose()

    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.job_runner = runner
    app.state.auth_provider = CredentialsAuthenticationProvider(user_port, settings)

    app.add_middleware(AuthorizationMiddleware)

    app.include_router(anime.router)
    app.include_router(auth.router)

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        return error_response(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, str) else None
        return error_response(request, error_for_status(exc.status_code, detail))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(
            request,
            ValidationError(_format_validation_errors(exc), details=exc.errors()),
        )

    @app.exception_handler(Exception)
    async def handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
        return error_response(request, exc)

    @app.get("/health", tags=["health"])
    async def healthcheck(request: Request) -> Response:
        try:
            await request.app.state.store.ping()
        except Exception as exc:  # noqa: BLE001
            logger.error("Healthcheck store probe failed: %s", exc)
            return _health_response("error", status.HTTP_503_SERVICE_UNAVAILABLE)

        logger.debug("Healthcheck passed")
        return _health_response("ok", status.HTTP_200_OK)

    return app
