"""Error payload schemas used in OpenAPI ``responses`` declarations."""

from pydantic import Field

from src.app.schemas.base import CamelModel


class UsageInfo(CamelModel):
    """Plan usage after an attempted increment. ``limit`` of -1 means unlimited."""

    current: int
    limit: int
    remaining: int


class CodedErrorDetail(CamelModel):
    message: str
    code: str
    usage: UsageInfo | None = None


class CodedErrorResponse(CamelModel):
    detail: CodedErrorDetail
    request_id: str | None = Field(default=None, alias="request_id")
