"""
Response envelope and pagination shared by every list endpoint.
"""

import math
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from booking_api.core.config import get_settings

DataT = TypeVar("DataT")


class APIResponse(BaseModel, Generic[DataT]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[DataT] = None


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


@dataclass(frozen=True)
class PageParams:
    """Page/limit after clamping: page >= 1, 1 <= limit <= MAX_PAGE_SIZE."""

    page: int
    limit: int

    @classmethod
    def from_query(cls, page: Optional[int] = None, limit: Optional[int] = None) -> "PageParams":
        settings = get_settings()
        page_num = max(1, page if page is not None else 1)
        limit_num = settings.DEFAULT_PAGE_SIZE if limit is None else limit
        limit_num = max(1, min(settings.MAX_PAGE_SIZE, limit_num))
        return cls(page=page_num, limit=limit_num)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def meta(self, total: int) -> PaginationMeta:
        return PaginationMeta(
            page=self.page,
            limit=self.limit,
            total=total,
            pages=math.ceil(total / self.limit),
        )
