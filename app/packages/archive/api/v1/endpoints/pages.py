"""页面相关路由：上传、查询、更新以及回收站操作。"""

from __future__ import annotations

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from app.packages.archive.api.v1.schemas.common import IdPayload, ResponseEnvelope
from app.packages.archive.api.v1.schemas.page import (
    PageListResponse,
    PagePagedResponse,
    PageQuery,
    PageResponse,
    PageUpdate,
    PurgePayload,
    PurgeResponse,
    ShowcaseFlagPayload,
)
from app.packages.archive.core.dependencies import get_blob_store, get_db, require_admin
from app.packages.archive.core.exceptions import AppException
from app.packages.archive.core.responses import create_response
from app.packages.archive.services.blob_store import BlobStore
from app.packages.archive.services.page_service import page_service

router = APIRouter(prefix="/pages", tags=["pages"], dependencies=[Depends(require_admin)])


def _parse_tag_names(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        names = json.loads(raw)
    except ValueError as exc:
        raise AppException("bindTags 必须是 JSON 字符串数组") from exc
    if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
        raise AppException("bindTags 必须是 JSON 字符串数组")
    return names


@router.post("/upload_new_page", response_model=PageResponse)
async def upload_new_page(
    title: str = Form(..., min_length=1),
    page_url: str = Form(..., alias="pageUrl", min_length=1),
    folder_id: int = Form(..., alias="folderId", ge=1),
    page_desc: str = Form("", alias="pageDesc"),
    is_showcased: bool = Form(False, alias="isShowcased"),
    bind_tags: Optional[str] = Form(None, alias="bindTags"),
    page_file: UploadFile = File(..., alias="pageFile"),
    screenshot: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    content = await page_file.read()
    screenshot_content = await screenshot.read() if screenshot is not None else None
    page = page_service.create_page(
        db,
        blob_store,
        title=title,
        page_url=page_url,
        folder_id=folder_id,
        content=content,
        page_desc=page_desc,
        screenshot=screenshot_content,
        is_showcased=is_showcased,
        bind_tags=_parse_tag_names(bind_tags),
    )
    return create_response("保存页面成功", page_service.serialize(page))


@router.post("/query", response_model=PagePagedResponse)
def query_pages(payload: PageQuery, db: Session = Depends(get_db)):
    items, total = page_service.query_pages(
        db,
        folder_id=payload.folder_id,
        keyword=payload.keyword,
        keyword_mode=payload.keyword_mode,
        tag_id=payload.tag_id,
        page_number=payload.page_number,
        page_size=payload.page_size,
    )
    data = {"list": [page_service.serialize(page) for page in items], "total": total}
    return create_response("获取页面列表成功", data)


@router.get("/detail", response_model=PageResponse)
def get_page(id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    page = page_service.get_page(db, id, is_deleted=False)
    return create_response("获取页面详情成功", page_service.serialize(page))


@router.get("/content", response_class=HTMLResponse)
def get_page_content(
    page_id: int = Query(..., alias="pageId", ge=1),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    return HTMLResponse(page_service.get_content(db, blob_store, page_id))


@router.get("/screenshot", response_model=ResponseEnvelope[Optional[str]])
def get_page_screenshot(
    id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    return create_response("获取截图成功", page_service.get_screenshot_data_uri(db, blob_store, id))


@router.put("/update_page", response_model=PageResponse)
def update_page(payload: PageUpdate, db: Session = Depends(get_db)):
    page = page_service.update_page(
        db,
        payload.id,
        folder_id=payload.folder_id,
        title=payload.title,
        is_showcased=payload.is_showcased,
        page_desc=payload.page_desc,
        page_url=payload.page_url,
        bind_tags=payload.bind_tags,
        unbind_tags=payload.unbind_tags,
    )
    return create_response("更新页面成功", page_service.serialize(page))


@router.post("/set_showcased", response_model=PageResponse)
def set_page_showcased(payload: ShowcaseFlagPayload, db: Session = Depends(get_db)):
    page = page_service.set_showcased(db, payload.id, payload.is_showcased)
    return create_response("更新展示状态成功", page_service.serialize(page))


@router.delete("/delete_page", response_model=ResponseEnvelope[bool])
def delete_page(id: int = Query(..., ge=1), db: Session = Depends(get_db)):
    return create_response("删除页面成功", page_service.soft_delete(db, id))


@router.post("/restore_page", response_model=ResponseEnvelope[bool])
def restore_page(payload: IdPayload, db: Session = Depends(get_db)):
    return create_response("恢复页面成功", page_service.restore(db, payload.id))


@router.get("/query_deleted", response_model=PageListResponse)
def query_deleted_pages(db: Session = Depends(get_db)):
    data = [page_service.serialize(page) for page in page_service.list_deleted(db)]
    return create_response("获取回收站页面成功", data)


@router.get("/deleted_count", response_model=ResponseEnvelope[int])
def deleted_page_count(db: Session = Depends(get_db)):
    return create_response("获取回收站页面数量成功", page_service.count_deleted(db))


@router.post("/clear_deleted", response_model=PurgeResponse)
def clear_deleted_pages(
    payload: Optional[PurgePayload] = None,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    ids = payload.ids if payload is not None else None
    result = page_service.purge(db, blob_store, ids=ids)
    return create_response("清空回收站成功", result.to_dict())


@router.get("/recent_save", response_model=PageListResponse)
def recent_saved_pages(db: Session = Depends(get_db)):
    data = [page_service.serialize(page) for page in page_service.recent_pages(db)]
    return create_response("获取最近保存页面成功", data)


@router.get("/query_by_url", response_model=PageListResponse)
def query_pages_by_url(page_url: str = Query(..., alias="pageUrl", min_length=1), db: Session = Depends(get_db)):
    data = [page_service.serialize(page) for page in page_service.query_by_url(db, page_url)]
    return create_response("获取页面列表成功", data)


@router.get("/ids_in_folder", response_model=ResponseEnvelope[list[int]])
def page_ids_in_folder(folder_id: int = Query(..., alias="folderId", ge=1), db: Session = Depends(get_db)):
    return create_response("获取页面 ID 成功", page_service.page_ids_in_folder(db, folder_id))
