from catalogue.services import auth_service, book_service, publisher_service
from catalogue.services.batch_engine import (
    BatchEngine,
    BatchResult,
    CreatedBookEntry,
    FailedRecordEntry,
)
from catalogue.services.images import (
    ImageBlob,
    ImageRole,
    ImageSlotBinder,
    group_blobs_by_record,
    read_image_dimensions,
)
from catalogue.services.materializer import MaterializedBook, RecordMaterializer
from catalogue.services.object_storage import LocalObjectStorage, ObjectStorage, get_object_storage
from catalogue.services.ownership import OwnershipGuard
from catalogue.services.taxonomy import (
    CATEGORY_LIMITS,
    MAX_TOTAL_SELECTIONS,
    TaxonomyCategory,
    TaxonomyMode,
    TaxonomyResolution,
    TaxonomyResolver,
    TaxonomySelection,
    importance,
    reorder_book_taxonomies,
    rerank,
)

__all__ = [
    "auth_service",
    "book_service",
    "publisher_service",
    # Batch engine
    "BatchEngine",
    "BatchResult",
    "CreatedBookEntry",
    "FailedRecordEntry",
    # Materializer
    "RecordMaterializer",
    "MaterializedBook",
    # Ownership
    "OwnershipGuard",
    # Taxonomy
    "TaxonomyCategory",
    "TaxonomyMode",
    "TaxonomyResolver",
    "TaxonomyResolution",
    "TaxonomySelection",
    "CATEGORY_LIMITS",
    "MAX_TOTAL_SELECTIONS",
    "importance",
    "rerank",
    "reorder_book_taxonomies",
    # Images
    "ImageRole",
    "ImageBlob",
    "ImageSlotBinder",
    "group_blobs_by_record",
    "read_image_dimensions",
    # Storage
    "ObjectStorage",
    "LocalObjectStorage",
    "get_object_storage",
]
