from datetime import datetime

from pydantic import BaseModel, Field


class AuthorResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class ContractCreate(BaseModel):
    author_id: int = Field(..., alias="authorId")
    contract_start: datetime | None = Field(None, alias="contractStart")

    class Config:
        populate_by_name = True


class ContractResponse(BaseModel):
    id: int
    publisher_id: int
    author_id: int
    contract_start: datetime
    contract_end: datetime | None

    class Config:
        from_attributes = True
