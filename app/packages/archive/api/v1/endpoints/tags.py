"""标签相关路由。"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.packages.archive.api.v1.schemas.common import ResponseEnvelope
from app.packages.archive.api.v1.schemas.tag import (
    TagBindPayload,
    TagCreate,
    TagListResponse,
    TagResponse,
    TagUpdate,
)
from app.packages.archive.core.dependencies import get_db, require_admin
from app.packages.archive.core.responses import create_response
from app.packages.archive.services.tag_service import TagBindRecord, tag_service

router = APIRouter(prefix="/tags", tags=["tags"], dependencies=[Depends(require_admin)])


@router.get("/all", response_model=TagListResponse)
def list_tags(db: Session = Depends(get_db)):
    data = [tag_service.serialize(tag) for tag in tag_service.list_tags(db)]
    return create_response("获取标签列表成功", data)


@router.get("/detail", response_model=TagResponse)
def get_tag(id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    return create_response("获取标签成功", tag_service.serialize(tag_service.get_tag(db, id)))


@router.post("/create", response_model=TagResponse)
def create_tag(payload: TagCreate, db: Session = Depends(get_db)):
    tag = tag_service.create_tag(db, name=payload.name, color=payload.color)
    return create_response("创建标签成功", tag_service.serialize(tag))


@router.put("/update", response_model=TagResponse)
def update_tag(payload: TagUpdate, db: Session = Depends(get_db)):
    tag = tag_service.update_tag(db, payload.id, name=payload.name, color=payload.color)
    return create_response("更新标签成功", tag_service.serialize(tag))


@router.delete("/delete", response_model=ResponseEnvelope[bool])
def delete_tag(id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    tag_service.delete_tag(db, id)
    return create_response("删除标签成功", True)


@router.post("/bind", response_model=ResponseEnvelope[dict[str, bool]])
def bind_pages(payload: TagBindPayload, db: Session = Depends(get_db)):
    results = tag_service.apply_bind_unbind(
        db,
        [TagBindRecord(item.tag_name, item.page_ids) for item in payload.bind_list],
        [TagBindRecord(item.tag_name, item.page_ids) for item in payload.unbind_list],
    )
    return create_response("更新标签绑定成功", results)
