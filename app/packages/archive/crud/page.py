"""页面的数据库访问方法：过滤、分页、生命周期批量更新与展示列表查询。"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Literal, Optional, Sequence, Tuple

from sqlalchemy import delete, func, update
from sqlalchemy.orm import Query, Session

from app.packages.archive.crud.base import CRUDBase
from app.packages.archive.crud.tag import tag_crud
from app.packages.archive.models.base import utcnow
from app.packages.archive.models.page import Page

KeywordMode = Literal["substring", "prefix"]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class CRUDPage(CRUDBase[Page]):
    """页面查询统一以创建时间倒序排列，ID 倒序作为同一时刻的次序。"""

    def _ordered(self, query: Query) -> Query:
        return query.order_by(self.model.created_at.desc(), self.model.id.desc())

    def _apply_filters(
        self,
        db: Session,
        query: Query,
        *,
        folder_id: Optional[int] = None,
        keyword: Optional[str] = None,
        keyword_mode: KeywordMode = "substring",
        tag_id: Optional[int] = None,
    ) -> Query:
        if folder_id is not None:
            query = query.filter(self.model.folder_id == folder_id)
        if keyword:
            escaped = _escape_like(keyword)
            pattern = f"{escaped}%" if keyword_mode == "prefix" else f"%{escaped}%"
            query = query.filter(self.model.title.like(pattern, escape="\\"))
        if tag_id is not None:
            tag = tag_crud.get(db, tag_id)
            page_ids = tag.page_ids if tag is not None else []
            query = query.filter(self.model.id.in_(page_ids))
        return query

    def list_filtered(
        self,
        db: Session,
        *,
        folder_id: Optional[int] = None,
        keyword: Optional[str] = None,
        keyword_mode: KeywordMode = "substring",
        tag_id: Optional[int] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> List[Page]:
        """按文件夹、标题关键字、标签过滤未删除页面；页码从 1 开始，缺省时返回全部。"""
        query = self._apply_filters(
            db,
            self.query(db),
            folder_id=folder_id,
            keyword=keyword,
            keyword_mode=keyword_mode,
            tag_id=tag_id,
        )
        query = self._ordered(query)
        if page_number is not None and page_size is not None:
            query = query.offset((max(page_number, 1) - 1) * page_size).limit(page_size)
        return query.all()

    def count_filtered(
        self,
        db: Session,
        *,
        folder_id: Optional[int] = None,
        keyword: Optional[str] = None,
        keyword_mode: KeywordMode = "substring",
        tag_id: Optional[int] = None,
    ) -> int:
        query = self._apply_filters(
            db,
            self.query(db).with_entities(func.count(self.model.id)),
            folder_id=folder_id,
            keyword=keyword,
            keyword_mode=keyword_mode,
            tag_id=tag_id,
        )
        return int(query.scalar() or 0)

    def list_by_url(self, db: Session, page_url: str) -> List[Page]:
        return self._ordered(self.query(db).filter(self.model.page_url == page_url)).all()

    def list_recent(self, db: Session, *, limit: int) -> List[Page]:
        return self._ordered(self.query(db)).limit(limit).all()

    def list_ids_in_folder(self, db: Session, folder_id: int) -> List[int]:
        rows = self.query(db).with_entities(self.model.id).filter(self.model.folder_id == folder_id).all()
        return [row[0] for row in rows]

    def count_grouped_by_folder(self, db: Session) -> dict[int, int]:
        rows = (
            self.query(db)
            .with_entities(self.model.folder_id, func.count(self.model.id))
            .group_by(self.model.folder_id)
            .all()
        )
        return {folder_id: int(count) for folder_id, count in rows}

    # ------------------------------------------------------------------
    # 回收站
    # ------------------------------------------------------------------

    def _deleted_query(self, db: Session) -> Query:
        return db.query(self.model).filter(self.model.is_deleted.is_(True))

    def list_deleted(self, db: Session) -> List[Page]:
        return self._deleted_query(db).order_by(self.model.deleted_at.desc(), self.model.id.desc()).all()

    def count_deleted(self, db: Session) -> int:
        query = db.query(func.count(self.model.id)).filter(self.model.is_deleted.is_(True))
        return int(query.scalar() or 0)

    def list_deleted_for_purge(self, db: Session, ids: Optional[Sequence[int]] = None) -> List[Page]:
        query = self._deleted_query(db)
        if ids is not None:
            query = query.filter(self.model.id.in_(list(ids)))
        return query.order_by(self.model.id.asc()).all()

    def delete_deleted_rows(self, db: Session, ids: Iterable[int], *, auto_commit: bool = True) -> int:
        """物理删除处于软删除状态的页面行，返回删除数量。"""
        id_list = list(ids)
        if not id_list:
            return 0
        stmt = (
            delete(self.model)
            .where(self.model.id.in_(id_list), self.model.is_deleted.is_(True))
            .execution_options(synchronize_session=False)
        )
        result = db.execute(stmt)
        if auto_commit:
            db.commit()
        return result.rowcount or 0

    def mark_folder_pages_deleted(
        self,
        db: Session,
        folder_id: int,
        *,
        deleted_at: Optional[datetime] = None,
        auto_commit: bool = True,
    ) -> int:
        """级联软删除：标记某文件夹下所有仍处于活动状态的页面。"""
        stmt = (
            update(self.model)
            .where(self.model.folder_id == folder_id, self.model.is_deleted.is_(False))
            .values(is_deleted=True, deleted_at=deleted_at or utcnow(), updated_at=self.model.updated_at)
            .execution_options(synchronize_session="fetch")
        )
        result = db.execute(stmt)
        if auto_commit:
            db.commit()
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # 展示（showcase）
    # ------------------------------------------------------------------

    def _showcase_query(self, db: Session) -> Query:
        return self.query(db).filter(self.model.is_showcased.is_(True))

    def list_showcase(self, db: Session, *, page_number: int, page_size: int) -> Tuple[List[Page], int]:
        query = self._showcase_query(db)
        total = int(query.with_entities(func.count(self.model.id)).scalar() or 0)
        items = (
            self._ordered(query)
            .offset((max(page_number, 1) - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    def get_showcase(self, db: Session, id: int) -> Optional[Page]:
        return self._showcase_query(db).filter(self.model.id == id).first()

    def first_showcase_id_after(self, db: Session, cursor: Optional[int]) -> Optional[int]:
        query = self._showcase_query(db).with_entities(self.model.id)
        if cursor is not None:
            query = query.filter(self.model.id > cursor)
        row = query.order_by(self.model.id.asc()).first()
        return row[0] if row else None


page_crud = CRUDPage(Page)
