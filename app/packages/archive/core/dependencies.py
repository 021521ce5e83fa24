"""依赖注入模块：封装 FastAPI 中复用度高的依赖函数。

数据库会话与对象存储客户端都在这里构造并注入业务层；鉴权只做管理员令牌校验，
业务层信任这道关口，自身不再做权限判断。
"""

from collections.abc import Generator
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.packages.archive.core.constants import ACCESS_TOKEN_TYPE
from app.packages.archive.db import session as db_session
from app.packages.archive.services.blob_store import BlobStore, build_blob_store
from app.packages.archive.services.config_service import config_service

security_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """生成一个数据库会话，并在请求结束后自动关闭。"""
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_blob_store() -> BlobStore:
    """返回进程内共享的对象存储客户端。"""
    return build_blob_store()


def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
    db: Session = Depends(get_db),
) -> str:
    """解析 ``Authorization`` 头部并校验管理员令牌，返回校验结论（accept/new）。"""
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="缺少认证信息")
    if credentials.scheme.lower() != ACCESS_TOKEN_TYPE:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="认证类型无效")

    verdict = config_service.verify_admin_token(db, credentials.credentials)
    if verdict == "fail":
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="管理员令牌初始化失败")
    if verdict == "reject":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="令牌无效")
    return verdict
