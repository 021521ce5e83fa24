"""文件夹生命周期服务：创建、重命名、级联软删除与恢复。"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.packages.archive.core.exceptions import ConflictError, NotFoundError, StorageUnavailableError
from app.packages.archive.core.logger import logger
from app.packages.archive.core.timezone import format_datetime
from app.packages.archive.crud.folder import folder_crud
from app.packages.archive.crud.page import page_crud
from app.packages.archive.models.base import utcnow
from app.packages.archive.models.folder import Folder


class FolderService:
    def create_folder(self, db: Session, name: str) -> Folder:
        """名称只需在未删除的文件夹之间唯一。"""
        if folder_crud.get_active_by_name(db, name) is not None:
            raise ConflictError("文件夹名称已存在")
        try:
            return folder_crud.create(db, {"name": name})
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError("文件夹名称已存在") from exc

    def get_folder(self, db: Session, folder_id: int, *, is_deleted: Optional[bool] = None) -> Folder:
        folder = folder_crud.get_in_state(db, folder_id, is_deleted=is_deleted)
        if folder is None:
            raise NotFoundError("文件夹不存在")
        return folder

    def rename_folder(self, db: Session, folder_id: int, name: str) -> Folder:
        # 重命名不做额外的重名检查，仅依赖活动名称上的唯一索引兜底
        folder = self.get_folder(db, folder_id)
        folder.name = name
        try:
            return folder_crud.save(db, folder)
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError("文件夹名称已存在") from exc

    def soft_delete(self, db: Session, folder_id: int) -> int:
        """软删除文件夹，并在同一事务中把其下所有活动页面一并移入回收站。

        返回被级联删除的页面数量。恢复文件夹时不会反向恢复这些页面。
        """
        # 文件夹与级联页面共用同一个删除时间，便于识别同一次级联
        deleted_at = utcnow()
        try:
            if not folder_crud.mark_deleted(db, folder_id, deleted_at=deleted_at, auto_commit=False):
                db.rollback()
                raise NotFoundError("文件夹不存在或已删除")
            cascaded = page_crud.mark_folder_pages_deleted(
                db, folder_id, deleted_at=deleted_at, auto_commit=False
            )
            db.commit()
        except OperationalError as exc:
            db.rollback()
            raise StorageUnavailableError("文件夹删除失败") from exc
        logger.info("Folder %s moved to trash with %s pages", folder_id, cascaded)
        return cascaded

    def restore(self, db: Session, folder_id: int) -> bool:
        """只清除文件夹自身的删除标记；同名活动文件夹已存在时报冲突。"""
        try:
            restored = folder_crud.mark_restored(db, folder_id)
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError("已存在同名文件夹，无法恢复") from exc
        if not restored:
            raise NotFoundError("文件夹不存在或未被删除")
        logger.info("Folder %s restored", folder_id)
        return True

    def list_active(self, db: Session) -> List[Folder]:
        return folder_crud.list_active(db)

    def list_deleted(self, db: Session) -> List[Folder]:
        return folder_crud.list_deleted(db)

    def count_deleted(self, db: Session) -> int:
        return folder_crud.count_deleted(db)

    def serialize(self, folder: Folder) -> Dict[str, Any]:
        return {
            "id": folder.id,
            "name": folder.name,
            "isDeleted": bool(folder.is_deleted),
            "createdAt": format_datetime(folder.created_at),
            "updatedAt": format_datetime(folder.updated_at),
            "deletedAt": format_datetime(folder.deleted_at),
        }


folder_service = FolderService()
