"""Main FastAPI application for the blog API."""

import logging
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.config import Settings, load_settings
from src.database import create_db_engine, create_session_factory, init_db, seed_admin_user, seed_default_tags
from src.errors import ErrorKind, ServiceError
from src.routers import admin, auth, comments, posts, tags
from src.schemas import error_response

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def configure_logging(settings: Settings):
    """Configure root logging: console always, plus a file when LOG_FILE is set."""
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def _validation_details(exc: RequestValidationError) -> list:
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        field = ".".join(loc[1:]) if len(loc) > 1 else ".".join(loc)
        details.append({"field": field, "message": err.get("msg", ""), "type": err.get("type", "")})
    return details


def register_exception_handlers(app: FastAPI):
    """Render every error in the ``{success: false, error}`` envelope."""

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        headers = None
        if exc.kind == ErrorKind.UNAUTHENTICATED:
            headers = {"WWW-Authenticate": "Bearer"}
        elif exc.kind != ErrorKind.VALIDATION:
            logger.warning(f"{request.method} {request.url.path} -> {exc.kind.value}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(exc.message, exc.details),
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = _validation_details(exc)
        logger.warning(f"Validation failed for {request.method} {request.url.path}: {details}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_response("validation failed", details),
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to run with; read from the environment when omitted

    Returns:
        FastAPI: Application with its own engine and session factory
    """
    if settings is None:
        settings = load_settings()

    configure_logging(settings)

    # Create FastAPI application
    app = FastAPI(
        title=settings.name_app,
        description="Multi-user blog API with posts, comments, tags and JWT authentication",
        version=VERSION
    )

    engine = create_db_engine(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth.router, prefix="/api")
    app.include_router(posts.router, prefix="/api")
    app.include_router(tags.router, prefix="/api")
    app.include_router(comments.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")

    @app.on_event("startup")
    def startup_event():
        """Initialize database and seed admin user and default tags on startup."""
        logger.info(f"Starting {settings.name_app}")
        init_db(engine)
        logger.info("Database initialized successfully")
        seed_admin_user(app.state.session_factory, settings)
        logger.info("Admin user seed completed")
        if settings.seed_default_tags:
            seed_default_tags(app.state.session_factory)
            logger.info("Default tags seed completed")

    @app.get("/")
    def root():
        """Root endpoint."""
        return {
            "name": settings.name_app,
            "version": VERSION,
            "status": "running"
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("src.main:create_app", factory=True, host="0.0.0.0", port=8000)
