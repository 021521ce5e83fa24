"""通用响应封装模型与驼峰命名基类。"""

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """对外字段使用驼峰命名，同时允许按 Python 字段名构造。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResponseEnvelope(BaseModel, Generic[T]):
    """系统统一的响应外层结构。"""

    msg: str
    data: Optional[T] = None
    code: int
    meta: Optional[Dict[str, Any]] = None


class IdPayload(CamelModel):
    id: int = Field(..., ge=1)


class PaginationPayload(CamelModel):
    page_number: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1, le=200)


class PagedData(CamelModel, Generic[T]):
    list: List[T]
    total: int
