"""Schemas shared by paginated endpoints."""

from pydantic import BaseModel, Field

from certflow.fraud import Page


class PaginationMeta(BaseModel):
    """Pagination metadata for list responses."""

    page: int = Field(..., ge=1, description="Current page (1-based)")
    page_size: int = Field(..., ge=1, description="Items per page")
    total: int = Field(..., ge=0, description="Total matching items")
    pages: int = Field(..., ge=0, description="Total number of pages")

    @classmethod
    def from_page(cls, page: Page) -> "PaginationMeta":
        return cls(page=page.page, page_size=page.page_size, total=page.total, pages=page.pages)
