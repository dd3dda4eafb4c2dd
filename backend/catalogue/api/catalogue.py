"""
Publisher catalogue endpoints: batch book upload and author contracts.
"""

import asyncio
import json
import threading
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from catalogue.core.config import get_settings
from catalogue.core.database import get_db, get_session_factory
from catalogue.core.exceptions import BatchRejectedError
from catalogue.core.logging import get_logger
from catalogue.models.publisher import Publisher
from catalogue.schemas.imports import BatchJSONRequest, BatchResponse
from catalogue.schemas.publisher import AuthorResponse, ContractCreate, ContractResponse
from catalogue.services import auth_service, publisher_service
from catalogue.services.batch_engine import BatchEngine, BatchResult
from catalogue.services.images import ImageBlob
from catalogue.services.object_storage import ObjectStorage, get_object_storage
from catalogue.services.taxonomy import TaxonomyMode

router = APIRouter()
logger = get_logger(__name__)

# Seconds between client-disconnect checks while a batch runs
DISCONNECT_POLL_INTERVAL = 0.25

RESERVED_FIELDS = {"books", "restrictLimits"}


def get_batch_engine(
    storage: ObjectStorage = Depends(get_object_storage),
    session_factory: sessionmaker = Depends(get_session_factory),
) -> BatchEngine:
    return BatchEngine(session_factory=session_factory, storage=storage)


def parse_restrict_flag(value: Any) -> bool:
    """Form/JSON restrictLimits value, defaulting to the configured mode."""
    if value is None or value == "":
        return get_settings().TAXONOMY_RESTRICTED_DEFAULT
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in ("true", "1", "yes", "on"):
        return True
    if normalized in ("false", "0", "no", "off"):
        return False
    raise HTTPException(status_code=400, detail=f"Invalid restrictLimits value '{value}'")


def _check_records(records: Any) -> list:
    if not isinstance(records, list):
        raise HTTPException(status_code=400, detail="'books' must be a JSON array")
    if not records:
        raise HTTPException(status_code=400, detail="No books provided")
    return records


async def read_batch_form(request: Request) -> tuple[list, dict[str, ImageBlob], bool]:
    """
    Decode a multipart batch submission.

    The 'books' field holds a JSON array of records; image files are named
    book_<index>_<role>.
    """
    settings = get_settings()
    form = await request.form()

    raw_books = form.get("books")
    if raw_books is None:
        raise HTTPException(status_code=400, detail="Missing 'books' field")
    if isinstance(raw_books, UploadFile):
        raw_books = (await raw_books.read()).decode("utf-8", errors="replace")

    try:
        records = json.loads(raw_books)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON format in books data") from None
    records = _check_records(records)

    blobs: dict[str, ImageBlob] = {}
    for key, value in form.multi_items():
        if key in RESERVED_FIELDS:
            continue
        if not isinstance(value, UploadFile):
            raise HTTPException(status_code=400, detail=f"Unexpected form field '{key}'")
        if key in blobs:
            raise HTTPException(status_code=400, detail=f"Duplicate image field '{key}'")

        content_type = value.content_type or ""
        if not content_type.startswith("image/"):
            raise HTTPException(status_code=400, detail=f"'{key}': only image files are allowed")

        data = await value.read()
        if len(data) > settings.max_image_size_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"'{key}' is too large. Maximum size is {settings.MAX_IMAGE_SIZE_MB}MB",
            )
        blobs[key] = ImageBlob(filename=value.filename or key, content_type=content_type, data=data)

    return records, blobs, parse_restrict_flag(form.get("restrictLimits"))


async def _watch_disconnect(request: Request, cancel_event: threading.Event) -> None:
    while not cancel_event.is_set():
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)
        if await request.is_disconnected():
            logger.warning("Client disconnected; no further records will be started")
            cancel_event.set()
            return


async def run_batch(
    request: Request,
    engine: BatchEngine,
    records: list,
    publisher_id: int,
    blobs: dict[str, ImageBlob],
    restrict_limits: bool,
) -> BatchResult:
    """Run the engine off the event loop, cancelling if the client goes away."""
    cancel_event = threading.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event))
    try:
        return await run_in_threadpool(
            engine.run,
            records,
            publisher_id,
            blobs,
            TaxonomyMode.from_flag(restrict_limits),
            cancel_event,
        )
    except BatchRejectedError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    finally:
        watcher.cancel()


@router.post("/publishers/books", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
async def upload_books(
    request: Request,
    publisher: Publisher = Depends(auth_service.get_current_publisher),
    engine: BatchEngine = Depends(get_batch_engine),
):
    """
    Batch upload books with images.

    Multipart form:
    - **books**: JSON array of book records
    - **restrictLimits**: apply per-category taxonomy limits (default true)
    - **book_<index>_<role>**: image files; roles are book-detail, background,
      hero, book-card, grid-item and mini

    Each record succeeds or fails on its own; the response lists both.
    """
    records, blobs, restrict_limits = await read_batch_form(request)
    result = await run_batch(request, engine, records, publisher.id, blobs, restrict_limits)
    return result.to_response()


@router.post("/publishers/books/json", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
async def upload_books_json(
    request: Request,
    payload: BatchJSONRequest,
    publisher: Publisher = Depends(auth_service.get_current_publisher),
    engine: BatchEngine = Depends(get_batch_engine),
):
    """Batch upload books without images."""
    records = _check_records(payload.books)
    restrict_limits = parse_restrict_flag(payload.restrict_limits)
    result = await run_batch(request, engine, records, publisher.id, {}, restrict_limits)
    return result.to_response()


@router.get("/publishers/authors", response_model=list[AuthorResponse])
async def list_publisher_authors(
    publisher: Publisher = Depends(auth_service.get_current_publisher),
    db: Session = Depends(get_db),
):
    """Authors currently under contract to the publisher."""
    return publisher_service.get_publisher_authors(db, publisher.id)


@router.post(
    "/publishers/authors",
    response_model=ContractResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_publisher_author(
    contract: ContractCreate,
    publisher: Publisher = Depends(auth_service.get_current_publisher),
    db: Session = Depends(get_db),
):
    """Start a contract with an author."""
    try:
        return publisher_service.add_author_to_publisher(
            db, publisher.id, contract.author_id, contract.contract_start
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.delete("/publishers/authors/{author_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_publisher_author(
    author_id: int,
    publisher: Publisher = Depends(auth_service.get_current_publisher),
    db: Session = Depends(get_db),
):
    """End the active contract with an author."""
    if not publisher_service.remove_author_from_publisher(db, publisher.id, author_id):
        raise HTTPException(status_code=404, detail="No active contract with this author")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
