"""标签相关的请求/响应模型。"""

from typing import List, Optional

from pydantic import Field

from app.packages.archive.api.v1.schemas.common import CamelModel, ResponseEnvelope


class TagCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    color: str = Field(default="", max_length=32)


class TagUpdate(CamelModel):
    id: int = Field(..., ge=1)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    color: Optional[str] = Field(None, max_length=32)


class TagBindItem(CamelModel):
    tag_name: str = Field(..., min_length=1, max_length=255)
    page_ids: List[int] = Field(default_factory=list)


class TagBindPayload(CamelModel):
    bind_list: List[TagBindItem] = Field(default_factory=list)
    unbind_list: List[TagBindItem] = Field(default_factory=list)


class TagData(CamelModel):
    id: int
    name: str
    color: str
    page_ids: List[int]
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


TagResponse = ResponseEnvelope[TagData]
TagListResponse = ResponseEnvelope[list[TagData]]
