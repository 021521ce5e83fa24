"""文件夹相关路由。"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.packages.archive.api.v1.schemas.common import IdPayload, ResponseEnvelope
from app.packages.archive.api.v1.schemas.folder import (
    FolderCreate,
    FolderDeleteResponse,
    FolderListResponse,
    FolderResponse,
    FolderUpdate,
)
from app.packages.archive.core.dependencies import get_db, require_admin
from app.packages.archive.core.responses import create_response
from app.packages.archive.services.folder_service import folder_service

router = APIRouter(prefix="/folders", tags=["folders"], dependencies=[Depends(require_admin)])


@router.get("/all", response_model=FolderListResponse)
def list_folders(db: Session = Depends(get_db)):
    data = [folder_service.serialize(folder) for folder in folder_service.list_active(db)]
    return create_response("获取文件夹列表成功", data)


@router.get("/item", response_model=FolderResponse)
def get_folder(id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    folder = folder_service.get_folder(db, id, is_deleted=False)
    return create_response("获取文件夹成功", folder_service.serialize(folder))


@router.post("/create", response_model=FolderResponse)
def create_folder(payload: FolderCreate, db: Session = Depends(get_db)):
    folder = folder_service.create_folder(db, payload.name)
    return create_response("创建文件夹成功", folder_service.serialize(folder))


@router.put("/update", response_model=FolderResponse)
def update_folder(payload: FolderUpdate, db: Session = Depends(get_db)):
    folder = folder_service.rename_folder(db, payload.id, payload.name)
    return create_response("更新文件夹成功", folder_service.serialize(folder))


@router.delete("/delete", response_model=FolderDeleteResponse)
def delete_folder(id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    deleted_pages = folder_service.soft_delete(db, id)
    return create_response("删除文件夹成功", {"id": id, "deletedPages": deleted_pages})


@router.post("/restore", response_model=ResponseEnvelope[bool])
def restore_folder(payload: IdPayload, db: Session = Depends(get_db)):
    return create_response("恢复文件夹成功", folder_service.restore(db, payload.id))


@router.get("/deleted", response_model=FolderListResponse)
def list_deleted_folders(db: Session = Depends(get_db)):
    data = [folder_service.serialize(folder) for folder in folder_service.list_deleted(db)]
    return create_response("获取回收站文件夹成功", data)


@router.get("/deleted_count", response_model=ResponseEnvelope[int])
def deleted_folder_count(db: Session = Depends(get_db)):
    return create_response("获取回收站文件夹数量成功", folder_service.count_deleted(db))
