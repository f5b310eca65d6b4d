from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
from erpia_core.core.config import settings
from erpia_core.core.logging_config import configure_logging
from erpia_core.core.minilog import MiniLog
from erpia_core.api import plugins as plugins_router
from erpia_core.api import export as export_router
from erpia_core.api import log as log_router
from erpia_core.db.session import init_db
from erpia_core.plugin_runtime import manager as plugin_manager

_log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, make sure the dynamic namespace exists and run plugin hooks."""
    configure_logging(settings.log_level)
    for line in settings.diagnostics or []:
        _log.debug("config %s", line)

    init_db()

    try:
        plugin_manager.extract_pending_zips()
        if not settings.dinamic_dir.is_dir():
            plugin_manager.deploy(clean=True, init_controllers=True)
        plugin_manager.init_plugins()
    except Exception:  # keep the API up so plugins can be fixed from it
        _log.error("plugin startup failed", exc_info=True)

    _log.info("startup complete version=%s enabled_plugins=%s", settings.version, plugin_manager.enabled_plugins())
    yield

    MiniLog.save()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    _log.warning("validation error url=%s errors=%s", request.url, exc.errors())
    return JSONResponse(status_code=422, content={'detail': exc.errors()})


app.include_router(plugins_router.router, prefix=settings.api_v1_prefix)
app.include_router(export_router.router, prefix=settings.api_v1_prefix)
app.include_router(log_router.router, prefix=settings.api_v1_prefix)

app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.get('/')
async def root():
    return {'status': 'ok', 'app': settings.app_name}


@app.get(settings.api_v1_prefix + '/version')
async def version():
    return {'version': settings.version, 'core_version': settings.core_version}
