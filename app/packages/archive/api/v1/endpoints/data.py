"""数据看板路由。"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.packages.archive.api.v1.schemas.common import ResponseEnvelope
from app.packages.archive.core.dependencies import get_blob_store, get_db, require_admin
from app.packages.archive.core.responses import create_response
from app.packages.archive.services.blob_store import BlobStore
from app.packages.archive.services.data_service import data_service

router = APIRouter(prefix="/data", tags=["data"], dependencies=[Depends(require_admin)])


@router.get("/page_chart_data", response_model=ResponseEnvelope[dict])
def page_chart_data(db: Session = Depends(get_db)):
    return create_response("获取看板数据成功", data_service.page_chart_data(db))


@router.get("/blob_usage", response_model=ResponseEnvelope[dict])
def blob_usage(blob_store: BlobStore = Depends(get_blob_store)):
    return create_response("获取存储用量成功", data_service.blob_usage(blob_store))
