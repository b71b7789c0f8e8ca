from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from .config import Settings, settings
from .routers import files, media
from .services.file_ops import FileOps
from .services.paths import ServerRoot
from .services.probe import MediaProbe
from .services.system_cmd import RealCommandRunner
from .services.uploads import UploadIngester

logger = logging.getLogger(__name__)

_SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}


def _parse_cors_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(',') if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: Settings = app.state.settings
    root = ServerRoot.from_config(config.root_dir)

    app.state.server_root = root
    app.state.file_ops = FileOps(root)
    app.state.ingester = UploadIngester(root, chunk_size=config.upload_chunk_size, atomic=config.atomic_uploads)
    app.state.probe = MediaProbe(
        command=config.probe_command,
        args=config.probe_args,
        runner=RealCommandRunner(default_timeout=config.command_timeout_sec),
    )
    logger.info('serving directory: %s', root.path)
    yield


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    if request.url.path.startswith('/api/'):
        return JSONResponse({'detail': 'Internal server error. Please try again.'}, status_code=500)
    return HTMLResponse('<h1>Unexpected error</h1><p>Please try again.</p>', status_code=500)


def create_app(config: Settings = settings) -> FastAPI:
    app = FastAPI(title=config.app_name, lifespan=lifespan)
    app.state.settings = config

    cors_origins = _parse_cors_origins(config.cors_origins)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=['GET', 'POST', 'DELETE', 'OPTIONS'],
            allow_headers=['Content-Type'],
        )

    @app.middleware('http')
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        for key, value in _SECURITY_HEADERS.items():
            response.headers[key] = value
        return response

    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get('/healthz')
    def healthz():
        return {'ok': True}

    app.include_router(files.router)
    app.include_router(media.router)
    app.mount('/static', StaticFiles(directory=config.root_dir, check_dir=False), name='static')
    return app


app = create_app()
