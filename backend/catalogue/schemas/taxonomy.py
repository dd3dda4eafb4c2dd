from pydantic import BaseModel, Field


class TaxonomyResponse(BaseModel):
    id: int
    name: str
    type: str
    parent_id: int | None
    description: str | None

    class Config:
        from_attributes = True


class TaxonomyResolveRequest(BaseModel):
    genres: list[str] = Field(default_factory=list)
    subgenres: list[str] = Field(default_factory=list)
    themes: list[str] = Field(default_factory=list)
    tropes: list[str] = Field(default_factory=list)
    restrict_limits: bool | None = Field(None, alias="restrictLimits")

    class Config:
        populate_by_name = True


class TaxonomySelectionResponse(BaseModel):
    taxonomy_id: int
    name: str
    category: str
    rank: int
    importance: float


class TaxonomyResolveResponse(BaseModel):
    selections: list[TaxonomySelectionResponse]
    unresolved_labels: list[str]
    capped_labels: list[str]
    warnings: list[str]
