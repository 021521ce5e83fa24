"""鉴权路由：校验管理员令牌，首次调用时初始化。"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.packages.archive.api.v1.schemas.common import ResponseEnvelope
from app.packages.archive.core.dependencies import require_admin
from app.packages.archive.core.responses import create_response

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("", response_model=ResponseEnvelope[str])
def verify(verdict: str = Depends(require_admin)):
    message = "管理员令牌已设置" if verdict == "new" else "认证成功"
    return create_response(message, verdict)
