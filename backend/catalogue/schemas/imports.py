from typing import Any

from pydantic import BaseModel, Field


class BatchCreatedEntry(BaseModel):
    index: int
    book_id: int = Field(..., alias="bookId")
    warnings: list[str]

    class Config:
        populate_by_name = True


class BatchErrorEntry(BaseModel):
    index: int
    title: str
    error_kind: str = Field(..., alias="errorKind")
    message: str

    class Config:
        populate_by_name = True


class BatchResults(BaseModel):
    created: list[BatchCreatedEntry]
    errors: list[BatchErrorEntry]


class BatchResponse(BaseModel):
    """Aggregate outcome of a batch submission."""

    successful: int
    failed: int
    results: BatchResults
    cancelled: bool = False


class BatchJSONRequest(BaseModel):
    """JSON-only submission (no images)."""

    # Records stay untyped here; each one is validated inside its own scope
    books: list[Any]
    restrict_limits: bool | None = Field(None, alias="restrictLimits")

    class Config:
        populate_by_name = True
