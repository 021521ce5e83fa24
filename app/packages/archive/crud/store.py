"""键值配置表（stores）的数据库访问方法。"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from app.packages.archive.crud.base import CRUDBase
from app.packages.archive.models.store import Store


class CRUDStore(CRUDBase[Store]):
    def get_by_key(self, db: Session, key: str) -> Optional[Store]:
        return self.query(db).filter(self.model.key == key).first()

    def get_value(self, db: Session, key: str) -> Optional[str]:
        row = self.get_by_key(db, key)
        return row.value if row is not None else None

    def set_value(self, db: Session, key: str, value: str, *, auto_commit: bool = True) -> Store:
        """首次写入时创建，之后原地更新。"""
        row = self.get_by_key(db, key)
        if row is None:
            return self.create(db, {"key": key, "value": value}, auto_commit=auto_commit)
        row.value = value
        return self.save(db, row, auto_commit=auto_commit)


store_crud = CRUDStore(Store)
