# socialapp/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from socialapp.core.config import Settings, build_settings
from socialapp.core.errors import DomainError, TransientStoreError
from socialapp.core.logging_config import configure_logging
from socialapp.database import create_db_engine, create_session_factory, get_db, init_db
from socialapp.middleware.logging import RequestLoggingMiddleware
from socialapp.routers import auth, posts, user_routes
from socialapp.services.sample_data import seed_sample_data

load_dotenv()

logger = logging.getLogger(__name__)


def _install_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(DomainError)
    async def _domain_error(request: Request, exc: DomainError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(OperationalError)
    async def _store_unavailable(request: Request, exc: OperationalError):
        logger.error("database unavailable", exc_info=exc, extra={"path": request.url.path})
        error = TransientStoreError()
        return JSONResponse(status_code=error.status_code, content={"detail": error.message})

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.error("unhandled error", exc_info=exc, extra={"path": request.url.path})
        content = {"detail": "Internal server error"}
        if settings.is_development:
            content["error"] = repr(exc)
        return JSONResponse(status_code=500, content=content)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or build_settings()
    configure_logging(
        service="socialapp",
        environment=settings.ENV,
        log_level=settings.LOG_LEVEL,
        json_output=settings.LOG_JSON,
    )

    engine = create_db_engine(settings)
    session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(engine)
        if settings.SEED_SAMPLE_DATA:
            with session_factory() as db:
                seed_sample_data(db)
        logger.info("server started", extra={"environment": settings.ENV})
        yield
        engine.dispose()

    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory

    app.add_middleware(RequestLoggingMiddleware)
    # CORS with credentials (for cookie sessions)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOW_ORIGINS,
        allow_credentials=settings.ALLOW_CREDENTIALS,
        allow_methods=settings.ALLOW_METHODS,
        allow_headers=settings.ALLOW_HEADERS,
    )
    _install_error_handlers(app, settings)

    @app.get("/")
    def read_root():
        return {"message": f"{settings.APP_NAME} running 🚀"}

    @app.get("/api/health")
    def health(db: Session = Depends(get_db)):
        db.execute(text("SELECT 1"))
        return {"status": "OK", "environment": settings.ENV, "version": settings.APP_VERSION}

    @app.get("/api/info")
    def info():
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "endpoints": sorted(
                {f"{','.join(sorted(r.methods))} {r.path}" for r in app.routes if getattr(r, "methods", None)}
            ),
        }

    # Routers
    app.include_router(auth.router)
    app.include_router(user_routes.router)
    app.include_router(posts.router)

    def custom_openapi():
        if app.openapi_schema:
            return app.openapi_schema
        openapi_schema = get_openapi(
            title=settings.APP_NAME,
            version=settings.APP_VERSION,
            description="Paste your access_token into the Authorize button to test secured routes.",
            routes=app.routes,
        )
        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
        }
        for path in openapi_schema["paths"].values():
            for method in path.values():
                method["security"] = [{"BearerAuth": []}]
        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi
    return app


app = create_app()
