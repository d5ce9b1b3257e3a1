"""Result models returned by storage drivers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class InsertResult(BaseModel):
    """What insert() returns. `inserted_id` is the stored document's _id."""

    inserted_id: Any


class UpdateResult(BaseModel):
    """What update() returns."""

    matched_count: int = 0
    modified_count: int = 0


class DeleteResult(BaseModel):
    """What remove() returns."""

    deleted_count: int = 0


class IndexInfo(BaseModel):
    """One index on a collection, as reported by list_indexes()."""

    name: str
    key: dict[str, int] = Field(default_factory=dict)
    unique: bool = False
