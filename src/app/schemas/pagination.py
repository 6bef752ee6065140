"""Pagination schemas for offset-based listing."""

from pydantic import Field

from src.app.schemas.base import CamelModel


class OffsetPagination(CamelModel):
    """Page position plus an exact ``has_more`` flag.

    ``has_more`` is derived from a count of all matching rows, so a last page
    that happens to be exactly ``limit`` long is reported correctly.
    """

    total: int = Field(description="Number of items matching the filters")
    limit: int
    offset: int
    has_more: bool = Field(description="Whether there are more items after this page.")

    @classmethod
    def build(cls, total: int, limit: int, offset: int, returned: int) -> "OffsetPagination":
        return cls(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + returned < total,
        )
