"""
Admin API endpoints.

Lets an administrator run a batch on behalf of any publisher, e.g. for
retroactive catalogue imports.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from catalogue.api.catalogue import get_batch_engine, read_batch_form, run_batch
from catalogue.core.database import get_db
from catalogue.core.logging import get_logger
from catalogue.models.user import User
from catalogue.schemas.imports import BatchResponse
from catalogue.services import auth_service, publisher_service
from catalogue.services.batch_engine import BatchEngine

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/publishers/{publisher_id}/books",
    response_model=BatchResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_books_for_publisher(
    publisher_id: int,
    request: Request,
    admin: User = Depends(auth_service.get_current_admin),
    db: Session = Depends(get_db),
    engine: BatchEngine = Depends(get_batch_engine),
):
    """Batch upload books on behalf of a publisher. Same form as the publisher route."""
    if not publisher_service.get_publisher(db, publisher_id):
        raise HTTPException(status_code=404, detail="Publisher not found")

    records, blobs, restrict_limits = await read_batch_form(request)
    logger.info(
        f"Admin {admin.id} submitting {len(records)} books for publisher {publisher_id}",
        extra={"extra_fields": {"admin_id": admin.id, "publisher_id": publisher_id}},
    )
    result = await run_batch(request, engine, records, publisher_id, blobs, restrict_limits)
    return result.to_response()
