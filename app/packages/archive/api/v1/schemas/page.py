"""页面相关的请求/响应模型。"""

from typing import List, Literal, Optional

from pydantic import Field

from app.packages.archive.api.v1.schemas.common import CamelModel, PagedData, ResponseEnvelope


class PageQuery(CamelModel):
    folder_id: Optional[int] = Field(None, ge=1)
    keyword: Optional[str] = None
    keyword_mode: Literal["substring", "prefix"] = "substring"
    tag_id: Optional[int] = Field(None, ge=1)
    page_number: Optional[int] = Field(None, ge=1)
    page_size: Optional[int] = Field(None, ge=1, le=200)


class PageUpdate(CamelModel):
    id: int = Field(..., ge=1)
    folder_id: int = Field(..., ge=1)
    title: str = Field(..., min_length=1)
    is_showcased: bool = False
    page_desc: str = ""
    page_url: str = Field(..., min_length=1)
    bind_tags: List[str] = Field(default_factory=list)
    unbind_tags: List[str] = Field(default_factory=list)


class ShowcaseFlagPayload(CamelModel):
    id: int = Field(..., ge=1)
    is_showcased: bool


class PurgePayload(CamelModel):
    ids: Optional[List[int]] = None


class PageData(CamelModel):
    id: int
    title: str
    page_desc: str
    page_url: str
    content_url: str
    screenshot_id: Optional[str] = None
    folder_id: int
    is_showcased: bool
    is_deleted: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    screenshot: Optional[str] = None


class PurgeData(CamelModel):
    purged_ids: List[int]
    deleted_blob_count: int
    failed_blobs: dict[str, List[str]]
    interrupted: bool
    remaining_ids: List[int]


PageResponse = ResponseEnvelope[PageData]
PageListResponse = ResponseEnvelope[list[PageData]]
PagePagedResponse = ResponseEnvelope[PagedData[PageData]]
PurgeResponse = ResponseEnvelope[PurgeData]
