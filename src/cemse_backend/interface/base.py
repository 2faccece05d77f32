import math
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from sqlalchemy.orm import Query


class ListQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class BaseEntityGet(BaseModel):
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Update timestamp")


def paginate(query: Query, page: int, limit: int) -> tuple[list, Pagination]:
    """Apply page/limit to a query and report the totals alongside the page."""
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    pagination = Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if limit else 0
    )
    return items, pagination
