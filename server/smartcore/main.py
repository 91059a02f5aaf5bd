import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import ENV_NAMES, Settings, load_settings
from .errors import SmartCoreError, UpstreamServiceError
from .routes import employees_router, signup_codes_router

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message, **extra})


def validation_message(errors: list[dict]) -> str:
    """Pick a single user-facing message from pydantic's error list."""
    if not errors:
        return "Invalid request"
    error = errors[0]
    error_type = error.get("type", "")
    fields = [str(part) for part in error.get("loc", ()) if part != "body"]
    field = fields[-1] if fields else "request body"

    if error_type == "json_invalid":
        return "Invalid JSON body"
    if error_type == "missing":
        return f"Missing {field}"
    if error_type == "value_error":
        cause = (error.get("ctx") or {}).get("error")
        if cause is not None and str(cause):
            return str(cause)
    return f"Invalid {field}: {error.get('msg', 'invalid value')}"


async def smartcore_error_handler(request: Request, exc: SmartCoreError):
    if isinstance(exc, UpstreamServiceError):
        logger.error("[%s] %s (status %s)", exc.service, exc.message, exc.upstream_status)
    elif exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.message)
    return _error_response(exc.status_code, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    return _error_response(
        400,
        validation_message(errors),
        errors=[
            {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
            for error in errors
        ],
    )


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, "Internal server error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        logger.info("[SmartCore] Starting signup service on port %s", settings.port)
        missing = [env for name, env in ENV_NAMES.items() if not getattr(settings, name)]
        if missing:
            logger.warning("[SmartCore] Not configured: %s", ", ".join(missing))
        yield
        logger.info("[SmartCore] Server shutdown complete")

    app = FastAPI(
        title="SmartCore Signup API",
        description="Email-verified owner and employee signup",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SmartCoreError, smartcore_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(signup_codes_router, prefix="/api", tags=["signup"])
    app.include_router(employees_router, prefix="/api", tags=["employees"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "smartcore-signup"}

    return app


configure_logging()
app = create_app()
