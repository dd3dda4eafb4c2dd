from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from catalogue.core.config import get_settings
from catalogue.core.database import get_db
from catalogue.schemas.taxonomy import (
    TaxonomyResolveRequest,
    TaxonomyResolveResponse,
    TaxonomyResponse,
    TaxonomySelectionResponse,
)
from catalogue.services.taxonomy import TaxonomyMode, TaxonomyResolver, list_taxonomies

router = APIRouter()


@router.get("/", response_model=list[TaxonomyResponse])
async def get_taxonomies(
    category: str | None = Query(
        None, description="Filter by category: genre, subgenre, theme, trope"
    ),
    db: Session = Depends(get_db),
):
    """List active taxonomy entries."""
    try:
        return list_taxonomies(db, category=category)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/resolve", response_model=TaxonomyResolveResponse)
async def preview_resolution(
    request: TaxonomyResolveRequest,
    db: Session = Depends(get_db),
):
    """Show how raw labels would resolve, without writing anything."""
    restrict = request.restrict_limits
    if restrict is None:
        restrict = get_settings().TAXONOMY_RESTRICTED_DEFAULT

    resolution = TaxonomyResolver(db).resolve(
        {
            "genre": request.genres,
            "subgenre": request.subgenres,
            "theme": request.themes,
            "trope": request.tropes,
        },
        TaxonomyMode.from_flag(restrict),
    )
    return TaxonomyResolveResponse(
        selections=[
            TaxonomySelectionResponse(
                taxonomy_id=s.taxonomy_id,
                name=s.name,
                category=s.category.value,
                rank=s.rank,
                importance=s.importance,
            )
            for s in resolution.selections
        ],
        unresolved_labels=resolution.unresolved_labels,
        capped_labels=resolution.capped_labels,
        warnings=[str(w) for w in resolution.warnings],
    )
