"""FastAPI router for the upload/download endpoints.

Endpoints:
    GET  /              Static usage page
    POST /@{identifier} Store the multipart field ``file`` under identifier
    GET  /@{identifier} Stream the stored bytes back as an attachment

Any other method on ``/@...`` is answered with 405, any other path with 400.
Routes are registered in that order because Starlette picks the first full
match: the catch-all must come last.
"""
import logging
from typing import BinaryIO, Iterator

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from remcpy.retention.scheduler import RetentionScheduler
from remcpy.store.errors import MissingFilePart, StreamError
from remcpy.store.service import IDENTIFIER_MARKER, ContentStore

from .schemas import (
    DOWNLOAD_MEDIA_TYPE,
    INDEX_HTML,
    UPLOAD_FIELD,
    download_path,
    format_confirmation,
    parse_identifier,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transfer"])

_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_store(request: Request) -> ContentStore:
    """Return the ContentStore created by the application lifespan."""
    return request.app.state.store


def get_scheduler(request: Request) -> RetentionScheduler:
    """Return the RetentionScheduler created by the application lifespan."""
    return request.app.state.scheduler


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    return HTMLResponse(INDEX_HTML)


@router.post("/@{identifier:path}", response_class=PlainTextResponse)
async def upload_file(
    request: Request,
    identifier: str,
    store: ContentStore = Depends(get_store),
    scheduler: RetentionScheduler = Depends(get_scheduler),
) -> PlainTextResponse:
    """Store an uploaded file under *identifier* and arm its expiry.

    The identifier is checked before the body is touched, so a bad path
    never writes anything.

    Returns:
        Plaintext confirmation with filename, byte count and download path.

    Raises:
        InvalidIdentifier: 400 if the path is not ``/@{identifier}``.
        MissingFilePart: 400 if the form has no ``file`` part.
        CreateFailed / WriteFailed: 500 on storage errors.
    """
    ident = parse_identifier(IDENTIFIER_MARKER + identifier)

    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException, ValueError) as exc:
        logger.debug("Error reading file from formdata: %s", exc)
        raise MissingFilePart() from exc

    try:
        upload = form.get(UPLOAD_FIELD)
        if not isinstance(upload, UploadFile):
            logger.debug("Error reading file from formdata: no '%s' part", UPLOAD_FIELD)
            raise MissingFilePart()
        filename = upload.filename or ""
        written = await store.put(ident, upload)
    finally:
        await form.close()

    scheduler.arm(store.path_for(ident))
    logger.info(
        "File uploaded: %s (%d bytes) as %s", filename, written, download_path(ident)
    )
    return PlainTextResponse(format_confirmation(filename, written, ident))


@router.get("/@{identifier:path}")
async def download_file(
    identifier: str,
    request: Request,
    store: ContentStore = Depends(get_store),
) -> StreamingResponse:
    """Stream the object stored under *identifier* as an attachment.

    Raises:
        InvalidIdentifier: 400 if the path is not ``/@{identifier}``.
        NotFound: 404 if nothing is stored under the identifier.
        ReadFailed: 500 if the entry exists but cannot be opened.
    """
    ident = parse_identifier(IDENTIFIER_MARKER + identifier)
    fh = await store.get(ident)
    chunk_size = request.app.state.config.store.chunk_size
    return StreamingResponse(
        _iter_file(fh, ident, chunk_size),
        media_type=DOWNLOAD_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment"},
        background=BackgroundTask(fh.close),
    )


@router.api_route(
    "/@{identifier:path}",
    methods=[m for m in _ALL_METHODS if m not in ("GET", "POST")],
    include_in_schema=False,
)
async def method_not_allowed(identifier: str) -> None:
    raise HTTPException(status_code=405, detail="Method not allowed")


@router.api_route("/{path:path}", methods=_ALL_METHODS, include_in_schema=False)
async def invalid_endpoint(path: str) -> None:
    raise HTTPException(status_code=400, detail="Invalid endpoint. Use /@{identifier}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _iter_file(fh: BinaryIO, identifier: str, chunk_size: int) -> Iterator[bytes]:
    """Yield the file in chunks; Starlette runs this in the threadpool.

    The status line is already sent when a read fails, so the error is logged
    and re-raised to abort the connection instead of ending the body cleanly.
    """
    try:
        while True:
            try:
                chunk = fh.read(chunk_size)
            except OSError as exc:
                logger.error("Error streaming file %s: %s", download_path(identifier), exc)
                raise StreamError(identifier) from exc
            if not chunk:
                return
            yield chunk
    finally:
        fh.close()
