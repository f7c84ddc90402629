"""Article representation read by the projector and the indexer.

Persistence owns articles; these models describe the attributes the search
layer reads. Any object exposing the same attributes can be projected.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class Category(BaseModel):
    title: str


class Author(BaseModel):
    first_name: str
    last_name: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Comment(BaseModel):
    body: str
    stars: int = 0
    pick: bool = False
    user: str
    user_location: Optional[str] = None


class Article(BaseModel):
    id: int
    title: str
    content: str = ""
    abstract: Optional[str] = None
    published_on: Optional[date] = None
    categories: List[Category] = Field(default_factory=list)
    authors: List[Author] = Field(default_factory=list)
    comments: List[Comment] = Field(default_factory=list)
