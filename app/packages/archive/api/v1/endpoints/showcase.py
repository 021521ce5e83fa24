"""公开展示路由：无需管理员令牌。"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from app.packages.archive.api.v1.schemas.common import PaginationPayload, ResponseEnvelope
from app.packages.archive.api.v1.schemas.page import PageData, PagePagedResponse
from app.packages.archive.core.dependencies import get_blob_store, get_db
from app.packages.archive.core.responses import create_response
from app.packages.archive.services.blob_store import BlobStore
from app.packages.archive.services.page_service import page_service
from app.packages.archive.services.showcase_service import showcase_service

router = APIRouter(prefix="/showcase", tags=["showcase"])


@router.post("/query", response_model=PagePagedResponse)
def query_showcase(
    payload: PaginationPayload,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    data = showcase_service.query_showcase(
        db, blob_store, page_number=payload.page_number, page_size=payload.page_size
    )
    return create_response("获取展示列表成功", data)


@router.get("/content", response_class=HTMLResponse)
def showcase_content(
    page_id: int = Query(..., alias="pageId", ge=1),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    return HTMLResponse(showcase_service.get_content(db, blob_store, page_id))


@router.get("/detail", response_model=ResponseEnvelope[Optional[PageData]])
def showcase_detail(id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    page = showcase_service.get_detail(db, id)
    return create_response("获取展示详情成功", page_service.serialize(page) if page else None)


@router.get("/next_id", response_model=ResponseEnvelope[Optional[int]])
def next_showcase_id(id: int = Query(..., ge=0), db: Session = Depends(get_db)):
    return create_response("获取下一篇成功", showcase_service.next_showcase_id(db, id))
