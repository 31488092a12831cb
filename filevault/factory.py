import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from filevault.core.app_logging import setup_logging
from filevault.core.config import Settings, get_settings
from filevault.core.errors import ServiceError, error_response
from filevault.models.database import Base, create_db_engine, create_session_factory
from filevault.models import file, refresh_token, user  # noqa: F401  (register tables)
from filevault.routers import auth, files

log = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    if settings.uses_default_secrets():
        log.warning("Token secrets are the development defaults, set ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET.")

    engine = create_db_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    Path(settings.users_files_path).mkdir(parents=True, exist_ok=True)

    app = FastAPI(title=settings.service_name)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # include our routers
    app.include_router(auth.router)
    app.include_router(files.router)

    @app.exception_handler(ServiceError)
    async def service_error(request: Request, ex: ServiceError) -> JSONResponse:
        return error_response(ex)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, ex: RequestValidationError) -> JSONResponse:
        log.info("%s %s: validation failed", request.method, request.url.path)
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(ex.errors())})

    @app.exception_handler(StarletteHTTPException)
    async def unmatched_route(request: Request, ex: StarletteHTTPException):
        # a known path with the wrong method is just as unmatched
        if ex.status_code in (404, 405):
            return JSONResponse(status_code=404, content={"detail": "page_not_found"})
        return await http_exception_handler(request, ex)

    log.info("%s ready, storing files under %s", settings.service_name, settings.users_files_path)
    return app
