"""CRUD 基类：为各实体提供通用的数据访问方法。"""

from datetime import datetime
from typing import Any, Dict, Generic, Optional, Type, TypeVar

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.packages.archive.models.base import Base, utcnow

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """封装常见的查询、创建与保存逻辑，减少重复代码。"""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return self.query(db).filter(self.model.id == id).first()

    def get_in_state(self, db: Session, id: Any, *, is_deleted: Optional[bool] = None) -> Optional[ModelType]:
        """按 ID 查询，``is_deleted`` 为 None 时忽略生命周期状态。"""
        query = db.query(self.model).filter(self.model.id == id)
        if is_deleted is not None and hasattr(self.model, "is_deleted"):
            query = query.filter(self.model.is_deleted.is_(is_deleted))
        return query.first()

    def create(self, db: Session, obj_in: Dict[str, Any], *, auto_commit: bool = True) -> ModelType:
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        if auto_commit:
            db.commit()
            db.refresh(db_obj)
        else:
            db.flush()
        return db_obj

    def save(self, db: Session, db_obj: ModelType, *, auto_commit: bool = True) -> ModelType:
        db.add(db_obj)
        if auto_commit:
            db.commit()
            db.refresh(db_obj)
        return db_obj

    def update_by_id(self, db: Session, id: Any, values: Dict[str, Any], *, auto_commit: bool = True) -> int:
        """以单条 UPDATE 语句修改字段，返回受影响行数。"""
        stmt = update(self.model).where(self.model.id == id).values(**values)
        result = db.execute(stmt)
        if auto_commit:
            db.commit()
        return result.rowcount or 0

    def mark_deleted(
        self,
        db: Session,
        id: Any,
        *,
        deleted_at: Optional[datetime] = None,
        auto_commit: bool = True,
    ) -> bool:
        """软删除：仅当记录处于活动状态时生效。

        生命周期切换只改 ``is_deleted``/``deleted_at``，``updated_at`` 保持原值。
        """
        stmt = (
            update(self.model)
            .where(self.model.id == id, self.model.is_deleted.is_(False))
            .values(is_deleted=True, deleted_at=deleted_at or utcnow(), updated_at=self.model.updated_at)
        )
        result = db.execute(stmt)
        if auto_commit:
            db.commit()
        return (result.rowcount or 0) > 0

    def mark_restored(self, db: Session, id: Any, *, auto_commit: bool = True) -> bool:
        """恢复：仅当记录处于软删除状态时生效。"""
        stmt = (
            update(self.model)
            .where(self.model.id == id, self.model.is_deleted.is_(True))
            .values(is_deleted=False, deleted_at=None, updated_at=self.model.updated_at)
        )
        result = db.execute(stmt)
        if auto_commit:
            db.commit()
        return (result.rowcount or 0) > 0

    def hard_delete(self, db: Session, db_obj: ModelType, *, auto_commit: bool = True) -> None:
        """物理删除行，并提交事务。"""
        db.delete(db_obj)
        if auto_commit:
            try:
                db.commit()
            except Exception:
                db.rollback()
                raise

    def count(self, db: Session, *, include_deleted: bool = False) -> int:
        query = self.query(db, include_deleted=include_deleted).with_entities(func.count(self.model.id))
        return int(query.scalar() or 0)

    # 统一构造带软删除过滤的查询
    def query(self, db: Session, *, include_deleted: bool = False):
        query = db.query(self.model)
        if hasattr(self.model, "is_deleted") and not include_deleted:
            query = query.filter(self.model.is_deleted.is_(False))
        return query
