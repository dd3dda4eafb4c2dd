from catalogue.schemas.book import (
    BookImageResponse,
    BookRecord,
    BookResponse,
    BookTaxonomyResponse,
    TaxonomyReorderRequest,
)
from catalogue.schemas.imports import (
    BatchCreatedEntry,
    BatchErrorEntry,
    BatchJSONRequest,
    BatchResponse,
    BatchResults,
)
from catalogue.schemas.publisher import AuthorResponse, ContractCreate, ContractResponse
from catalogue.schemas.taxonomy import (
    TaxonomyResolveRequest,
    TaxonomyResolveResponse,
    TaxonomyResponse,
    TaxonomySelectionResponse,
)

__all__ = [
    "BookRecord",
    "BookResponse",
    "BookImageResponse",
    "BookTaxonomyResponse",
    "TaxonomyReorderRequest",
    "BatchCreatedEntry",
    "BatchErrorEntry",
    "BatchResults",
    "BatchResponse",
    "BatchJSONRequest",
    "AuthorResponse",
    "ContractCreate",
    "ContractResponse",
    "TaxonomyResponse",
    "TaxonomyResolveRequest",
    "TaxonomyResolveResponse",
    "TaxonomySelectionResponse",
]
