from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from catalogue.core.database import get_db
from catalogue.models.publisher import Publisher
from catalogue.schemas.book import BookResponse, BookTaxonomyResponse, TaxonomyReorderRequest
from catalogue.services import auth_service, book_service
from catalogue.services.taxonomy import get_book_taxonomies, reorder_book_taxonomies

router = APIRouter()


@router.get("/{book_id}", response_model=BookResponse)
async def get_book(
    book_id: int,
    db: Session = Depends(get_db),
):
    """Get book details by ID."""
    book = book_service.get_book(db, book_id)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.get("/{book_id}/taxonomies", response_model=list[BookTaxonomyResponse])
async def list_book_taxonomies(
    book_id: int,
    db: Session = Depends(get_db),
):
    """A book's taxonomy selections in rank order."""
    if not book_service.get_book(db, book_id):
        raise HTTPException(status_code=404, detail="Book not found")
    return book_service.to_taxonomy_responses(get_book_taxonomies(db, book_id))


@router.put("/{book_id}/taxonomies/order", response_model=list[BookTaxonomyResponse])
async def reorder_taxonomies(
    book_id: int,
    request: TaxonomyReorderRequest,
    publisher: Publisher = Depends(auth_service.get_current_publisher),
    db: Session = Depends(get_db),
):
    """
    Reorder a book's taxonomy selections.

    Ranks and importance scores are recomputed for the new order; selections
    left out of the list are removed.
    """
    book = book_service.get_book(db, book_id)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    if book.publisher_id != publisher.id:
        raise HTTPException(status_code=403, detail="Book belongs to another publisher")

    try:
        links = reorder_book_taxonomies(db, book_id, request.taxonomy_ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return book_service.to_taxonomy_responses(links)
