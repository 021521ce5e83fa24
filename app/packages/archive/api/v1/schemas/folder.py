"""文件夹相关的请求/响应模型。"""

from typing import Optional

from pydantic import Field

from app.packages.archive.api.v1.schemas.common import CamelModel, ResponseEnvelope


class FolderCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)


class FolderUpdate(CamelModel):
    id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=255)


class FolderData(CamelModel):
    id: int
    name: str
    is_deleted: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None


class FolderDeleteResult(CamelModel):
    id: int
    deleted_pages: int


FolderResponse = ResponseEnvelope[FolderData]
FolderListResponse = ResponseEnvelope[list[FolderData]]
FolderDeleteResponse = ResponseEnvelope[FolderDeleteResult]
