from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_pagination import add_pagination
from sqlalchemy.exc import SQLAlchemyError

from app.config import get_settings
from app.core.errors import AppError
from app.infra.logging_config import LoggingConfig, get_logger
from app.routers import (
    admin_router,
    matches_router,
    messages_router,
    presets_router,
    push_router,
)

logger = get_logger("main")


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "reason": exc.reason},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "reason": "database_error"},
    )


def create_app(testing: bool = False) -> FastAPI:
    LoggingConfig()
    settings = get_settings()

    app = FastAPI(
        title="Aikotoba API",
        version="0.1.0",
        description="Send the same words to each other to match.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    app.include_router(messages_router.router)
    app.include_router(matches_router.router)
    app.include_router(presets_router.router)
    app.include_router(push_router.router)
    app.include_router(admin_router.router)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "environment": settings.environment, "testing": testing}

    add_pagination(app)
    return app


app = create_app()
