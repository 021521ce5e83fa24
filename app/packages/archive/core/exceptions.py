"""异常处理模块：定义统一的业务异常与响应格式。

生命周期相关的错误分为四类：
- ``NotFoundError``：实体不存在，或处于不允许当前操作的生命周期状态；
- ``ConflictError``：唯一性冲突（如同名的未删除文件夹）；
- ``PartialFailureError``：多步骤操作仅部分完成，``data`` 中描述各步骤结果；
- ``StorageUnavailableError``：关系库或对象存储不可达（已按客户端策略重试）。
"""

from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.packages.archive.core.logger import logger


class AppException(HTTPException):
    """携带统一响应结构的业务异常，方便在全局处理中转换响应体。"""

    def __init__(self, msg: str, code: int = status.HTTP_400_BAD_REQUEST, data: Any = None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data

    @property
    def msg(self) -> str:
        return str(self.detail)


class NotFoundError(AppException):
    def __init__(self, msg: str = "资源不存在", data: Any = None) -> None:
        super().__init__(msg, status.HTTP_404_NOT_FOUND, data)


class ConflictError(AppException):
    def __init__(self, msg: str = "资源已存在", data: Any = None) -> None:
        super().__init__(msg, status.HTTP_409_CONFLICT, data)


class PartialFailureError(AppException):
    """多步骤操作部分失败；不做自动补偿，调用方可安全重试。"""

    def __init__(self, msg: str, data: Optional[dict] = None) -> None:
        super().__init__(msg, status.HTTP_500_INTERNAL_SERVER_ERROR, data or {})


class StorageUnavailableError(AppException):
    def __init__(self, msg: str = "存储服务不可用", data: Any = None) -> None:
        super().__init__(msg, status.HTTP_503_SERVICE_UNAVAILABLE, data)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    """将 FastAPI 的 ``HTTPException`` 转换为统一响应格式。"""
    payload = {"msg": exc.detail, "data": getattr(exc, "data", None), "code": exc.status_code}
    return JSONResponse(status_code=exc.status_code, content=payload)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """兜底处理：将未捕获异常转换为标准的 500 响应结构。"""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    payload = {
        "msg": "服务器内部错误",
        "data": None,
        "code": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)
