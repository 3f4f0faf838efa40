import datetime
import math
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

T = TypeVar("T")


class BlogPost(BaseModel):
    id: str = ""
    title: Optional[str] = None
    content: Optional[str] = None
    date: Optional[datetime.datetime] = None
    summary: Optional[str] = None
    author: Optional[str] = None
    originalId: Optional[str] = None
    slug: Optional[str] = None
    cover: Optional[str] = None
    tags: Optional[str] = None  # comma separated
    datePublished: Optional[datetime.datetime] = None


class BlogMeta(BaseModel):
    # Display settings beyond the title are kept as-is.
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None


class PagedRequest(BaseModel):
    page: int = Field(1, ge=1)
    pageSize: int = Field(10, ge=1)
    search: Optional[str] = None
    tag: Optional[str] = None


class PagedResult(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    totalCount: int = 0
    currentPage: int = 1
    pageSize: int = 10

    @computed_field
    @property
    def totalPages(self) -> int:
        if self.pageSize <= 0:
            return 0
        return math.ceil(self.totalCount / self.pageSize)

    @computed_field
    @property
    def hasPreviousPage(self) -> bool:
        return self.currentPage > 1

    @computed_field
    @property
    def hasNextPage(self) -> bool:
        return self.currentPage < self.totalPages


class UploadedImage(BaseModel):
    url: str
