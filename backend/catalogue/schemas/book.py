from datetime import date

from pydantic import BaseModel, Field, field_validator


class BookRecord(BaseModel):
    """
    One book as submitted in a batch.

    Structural requirements (title, authorId, at least one format) are
    checked by the record materializer so that a bad record fails on its own
    instead of rejecting the whole request. Unknown keys, including any
    publisherId, are ignored.
    """

    title: str | None = Field(None, max_length=500)
    description: str | None = None
    author_id: int | None = Field(None, alias="authorId")
    page_count: int | None = Field(None, alias="pageCount", ge=0)
    formats: list[str] = Field(default_factory=list)
    published_date: date | None = Field(None, alias="publishedDate")
    isbn: str | None = Field(None, max_length=20)
    asin: str | None = Field(None, max_length=20)
    language: str = Field("English", max_length=50)

    original_title: str | None = Field(None, alias="originalTitle", max_length=500)
    series: str | None = Field(None, max_length=255)
    setting: str | None = Field(None, max_length=255)
    awards: list[str] = Field(default_factory=list)
    characters: list[str] = Field(default_factory=list)

    # Raw taxonomy labels, resolved against the canonical taxonomy store
    genres: list[str] = Field(default_factory=list)
    subgenres: list[str] = Field(default_factory=list)
    themes: list[str] = Field(default_factory=list)
    tropes: list[str] = Field(default_factory=list)

    @field_validator("title", "description", "isbn", "asin", "original_title", "series", "setting")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("formats", "awards", "characters", "genres", "subgenres", "themes", "tropes")
    @classmethod
    def drop_blank_items(cls, v: list[str]) -> list[str]:
        return [item.strip() for item in v if item and item.strip()]

    def taxonomy_labels(self) -> dict[str, list[str]]:
        """Raw labels keyed by taxonomy category name."""
        return {
            "genre": self.genres,
            "subgenre": self.subgenres,
            "theme": self.themes,
            "trope": self.tropes,
        }

    class Config:
        populate_by_name = True


class BookImageResponse(BaseModel):
    image_type: str
    image_url: str
    width: int
    height: int
    size_kb: int

    class Config:
        from_attributes = True


class BookTaxonomyResponse(BaseModel):
    taxonomy_id: int
    name: str
    category: str
    rank: int
    importance: float


class BookResponse(BaseModel):
    id: int
    title: str
    description: str | None
    author_id: int
    author_name: str | None
    publisher_id: int | None
    page_count: int | None
    formats: list[str]
    published_date: date | None
    isbn: str | None
    asin: str | None
    language: str
    series: str | None
    images: list[BookImageResponse]

    class Config:
        from_attributes = True


class TaxonomyReorderRequest(BaseModel):
    taxonomy_ids: list[int] = Field(..., alias="taxonomyIds")

    class Config:
        populate_by_name = True
