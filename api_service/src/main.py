"""
FastAPI front end for the replay server.

Endpoints:
    GET  /                  — Index page
    GET  /health            — Health check
    POST /upload            — Stage, relay and decode one replay (synchronous)
    GET  /replays/{path}    — Static files from the local replay store
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send
import uvicorn

from domain.models import UploadRequest
from shared_utils.config_loader import Settings, get_settings
from shared_utils.constants import APIEndpoints, ErrorCode, FormFields, LogScope
from shared_utils.di_container import get_di_container
from shared_utils.error_handler import PayloadTooLargeError, handle_error
from shared_utils.logging_utils import ContextualLogger, configure_logging


# ---------------------------------------------------------------------------
# Application bootstrap
# ---------------------------------------------------------------------------

settings = get_settings()
logger = ContextualLogger(scope=LogScope.API)

# Multipart framing around the file part; the body cap only rejects bodies
# that cannot possibly fit under the ceiling.
_MULTIPART_OVERHEAD_BYTES = 64 * 1024

_CORS_METHODS = ["POST", "GET", "OPTIONS", "PUT", "DELETE"]
_CORS_HEADERS = [
    "Accept", "Content-Type", "Content-Length", "Accept-Encoding",
    "X-CSRF-Token", "Authorization",
]


class UploadTooLargeError(HTTPException):
    """Raised while the upload body is still being received."""

    def __init__(self, limit_bytes: int) -> None:
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=PayloadTooLargeError(limit_bytes).to_text(),
        )


class UploadSizeLimitMiddleware:
    """Cap the request body of upload POSTs before the form parser buffers it.

    A declared Content-Length over the ceiling is refused without reading
    the body. Chunked or undeclared bodies are counted as they arrive and the
    request is aborted as soon as the count passes the ceiling.
    """

    def __init__(self, app: ASGIApp, settings: Settings, path: str = APIEndpoints.UPLOAD) -> None:
        self.app = app
        self.settings = settings
        self.path = path

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "POST" or scope["path"] != self.path:
            await self.app(scope, receive, send)
            return

        limit = self.settings.max_upload_bytes
        ceiling = limit + _MULTIPART_OVERHEAD_BYTES

        declared = Headers(scope=scope).get("content-length", "")
        if declared.isdigit() and int(declared) > ceiling:
            logger.warning("upload_rejected_content_length", content_length=int(declared))
            response = PlainTextResponse(
                PayloadTooLargeError(limit).to_text(),
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > ceiling:
                    logger.warning("upload_rejected_body_size", received_bytes=received)
                    raise UploadTooLargeError(limit)
            return message

        await self.app(scope, limited_receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    container = get_di_container()
    container.get_staging_area().purge_orphans()
    container.validate_decoder()
    logger.info(
        "api_initialized",
        environment=settings.environment,
        store_backend=settings.store_backend,
        relay_mode=settings.relay_mode,
    )
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=settings.app_description,
    lifespan=lifespan,
)

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_methods=_CORS_METHODS,
    allow_headers=_CORS_HEADERS,
)

_replay_dir = get_di_container().replay_directory()
_replay_dir.mkdir(parents=True, exist_ok=True)
app.mount(
    APIEndpoints.REPLAYS,
    StaticFiles(directory=str(_replay_dir)),
    name="replays",
)


app.add_middleware(UploadSizeLimitMiddleware, settings=settings)


@app.exception_handler(UploadTooLargeError)
async def upload_too_large_handler(request: Request, exc: UploadTooLargeError) -> PlainTextResponse:
    return PlainTextResponse(exc.detail, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def malformed_request_handler(request: Request, exc: RequestValidationError) -> PlainTextResponse:
    logger.warning("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
    return PlainTextResponse(
        f"{ErrorCode.INVALID_INPUT.value}: Malformed request",
        status_code=status.HTTP_400_BAD_REQUEST,
    )


# ---------------------------------------------------------------------------
# Index / health
# ---------------------------------------------------------------------------

@app.get(APIEndpoints.INDEX, response_class=HTMLResponse)
def index() -> str:
    return f"<h1>{settings.app_name}</h1>"


@app.get(APIEndpoints.HEALTH)
def health_check() -> dict:
    """Health check endpoint."""
    logger.debug("health_check_requested")
    return {
        "status": "healthy",
        "environment": settings.environment,
        "version": settings.app_version,
        "store_backend": settings.store_backend,
        "relay_mode": settings.relay_mode,
        "decoder_available": get_di_container().get_decoder().is_available(),
    }


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------

@app.post(APIEndpoints.UPLOAD, response_class=PlainTextResponse)
@limiter.limit(settings.upload_rate_limit)
def upload_replay(
    request: Request,
    rep_file: Optional[UploadFile] = File(None, alias=FormFields.FILE),
    owner_id: str = Form("", alias=FormFields.OWNER_ID),
    artifact_id: str = Form("", alias=FormFields.ARTIFACT_ID),
) -> PlainTextResponse:
    """Run the upload pipeline and answer with the stored key.

    Declared ``def`` so FastAPI runs it on its threadpool: the pipeline
    blocks on disk, subprocess and network I/O, and the client waits for
    the whole run.
    """
    upload = UploadRequest(
        owner_id=owner_id,
        artifact_id=artifact_id,
        filename=(rep_file.filename or "") if rep_file is not None else "",
        payload=rep_file.file if rep_file is not None else None,
    )
    log = logger.bind(owner_id=owner_id, artifact_id=artifact_id)
    log.info("upload_received", filename=upload.filename)

    try:
        result = get_di_container().get_upload_pipeline().process(upload)
    except Exception as e:
        handle_error(e, scope=LogScope.API)
        return PlainTextResponse(
            f"{ErrorCode.INTERNAL_ERROR.value}: Something went wrong processing the upload",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if not result.ok:
        log.warning(
            "upload_failed",
            error_code=result.error.error_code,
            http_status=result.error.http_status,
            remote_key=result.remote_key,
        )
        return PlainTextResponse(result.error.to_text(), status_code=result.error.http_status)

    return PlainTextResponse(result.response_key)


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        ssl_certfile=settings.tls_certfile if settings.tls_enabled() else None,
        ssl_keyfile=settings.tls_keyfile if settings.tls_enabled() else None,
    )
