"""展示服务：公开浏览被标记为展示的页面，支持环形的“下一篇”导航。"""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.packages.archive.core.constants import SCREENSHOT_MIME_TYPE
from app.packages.archive.core.exceptions import NotFoundError
from app.packages.archive.crud.page import page_crud
from app.packages.archive.models.page import Page
from app.packages.archive.services.blob_store import BlobStore
from app.packages.archive.services.page_service import page_service


class ShowcaseService:
    def query_showcase(
        self,
        db: Session,
        blob_store: BlobStore,
        *,
        page_number: int,
        page_size: int,
    ) -> Dict[str, Any]:
        """分页返回展示页面（附截图 data URI）与总数。"""
        items, total = page_crud.list_showcase(db, page_number=page_number, page_size=page_size)
        data = [
            page_service.serialize(
                page,
                screenshot=blob_store.get_as_data_uri(page.screenshot_id, SCREENSHOT_MIME_TYPE) or "",
            )
            for page in items
        ]
        return {"list": data, "total": total}

    def get_detail(self, db: Session, page_id: int) -> Optional[Page]:
        return page_crud.get_showcase(db, page_id)

    def get_content(self, db: Session, blob_store: BlobStore, page_id: int) -> str:
        page = page_crud.get_showcase(db, page_id)
        if page is None:
            raise NotFoundError("页面不存在")
        html = blob_store.get_text(page.content_url)
        if html is None:
            raise NotFoundError("页面内容不存在")
        return html

    def next_showcase_id(self, db: Session, cursor: int) -> Optional[int]:
        """返回大于游标的最小展示页面 ID，不存在时回绕到最小的展示页面 ID。"""
        next_id = page_crud.first_showcase_id_after(db, cursor)
        if next_id is not None:
            return next_id
        return page_crud.first_showcase_id_after(db, None)


showcase_service = ShowcaseService()
