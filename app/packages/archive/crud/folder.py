"""文件夹的数据库访问方法。"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.packages.archive.crud.base import CRUDBase
from app.packages.archive.models.folder import Folder


class CRUDFolder(CRUDBase[Folder]):
    def get_active_by_name(self, db: Session, name: str) -> Optional[Folder]:
        return self.query(db).filter(self.model.name == name).first()

    def list_active(self, db: Session) -> List[Folder]:
        return self.query(db).order_by(self.model.id.asc()).all()

    def list_deleted(self, db: Session) -> List[Folder]:
        # 按删除时间倒序，最近删除的在前
        return (
            db.query(self.model)
            .filter(self.model.is_deleted.is_(True))
            .order_by(self.model.deleted_at.desc(), self.model.id.desc())
            .all()
        )

    def count_deleted(self, db: Session) -> int:
        query = db.query(func.count(self.model.id)).filter(self.model.is_deleted.is_(True))
        return int(query.scalar() or 0)


folder_crud = CRUDFolder(Folder)
