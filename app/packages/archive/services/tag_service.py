"""标签关联服务：维护标签 → 页面集合的映射，支持幂等的增量绑定/解绑。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.packages.archive.core.exceptions import (
    AppException,
    ConflictError,
    NotFoundError,
    PartialFailureError,
    StorageUnavailableError,
)
from app.packages.archive.core.logger import logger
from app.packages.archive.core.timezone import format_datetime
from app.packages.archive.crud.tag import PageIdPatch, tag_crud
from app.packages.archive.models.tag import Tag


@dataclass
class TagBindRecord:
    tag_name: str
    page_ids: List[int] = field(default_factory=list)


@dataclass
class TagOperation:
    """有序批次中的一条操作；同一标签、同一页面 ID 以列表中靠后的操作为准。"""

    tag_name: str
    page_ids: List[int]
    bind: bool


def build_operations(
    bind_list: Sequence[TagBindRecord],
    unbind_list: Sequence[TagBindRecord],
) -> List[TagOperation]:
    """将绑定/解绑两个列表展开为有序操作：先解绑后绑定，使同一 ID 的绑定生效。"""
    operations = [TagOperation(r.tag_name, list(r.page_ids), bind=False) for r in unbind_list]
    operations.extend(TagOperation(r.tag_name, list(r.page_ids), bind=True) for r in bind_list)
    return operations


def coalesce_operations(operations: Iterable[TagOperation]) -> Dict[str, PageIdPatch]:
    """按标签合并为单个补丁（保持标签首次出现的顺序），每个标签只需一次原子合并。"""
    patches: Dict[str, PageIdPatch] = {}
    for op in operations:
        patch = patches.setdefault(op.tag_name, {})
        for page_id in op.page_ids:
            patch[str(page_id)] = page_id if op.bind else None
    return patches


class TagService:
    """封装标签关联相关的业务逻辑。

    关联映射只通过 ``tag_crud.merge_page_ids`` 以原子合并写入；解绑写入的是墓碑（null），
    读取时过滤为对外可见的 ``page_ids``。
    """

    # ------------------------------------------------------------------
    # 绑定/解绑
    # ------------------------------------------------------------------

    def bind(self, db: Session, tag_name: str, page_ids: Sequence[int]) -> None:
        self.apply_operations(db, [TagOperation(tag_name, list(page_ids), bind=True)])

    def unbind(self, db: Session, tag_name: str, page_ids: Sequence[int]) -> None:
        self.apply_operations(db, [TagOperation(tag_name, list(page_ids), bind=False)])

    def apply_bind_unbind(
        self,
        db: Session,
        bind_list: Sequence[TagBindRecord],
        unbind_list: Sequence[TagBindRecord],
    ) -> Dict[str, bool]:
        return self.apply_operations(db, build_operations(bind_list, unbind_list))

    def apply_operations(
        self,
        db: Session,
        operations: Sequence[TagOperation],
        *,
        auto_commit: bool = True,
    ) -> Dict[str, bool]:
        """在同一事务中应用整批操作，返回每个标签是否写入成功。

        任一标签未命中行时提交已完成部分并抛出 ``PartialFailureError``；
        数据库错误则整体回滚。批次可安全重试（绑定/解绑均幂等）。
        """
        results = self.stage_operations(db, operations)
        if auto_commit:
            self._commit(db)
        failed = [name for name, ok in results.items() if not ok]
        if failed:
            logger.warning("Tag merge affected no row for tags: %s", ", ".join(failed))
            raise PartialFailureError("部分标签更新失败", {"tags": results})
        return results

    def stage_operations(self, db: Session, operations: Sequence[TagOperation]) -> Dict[str, bool]:
        """执行合并语句但不提交；供页面更新等组合操作共享事务。"""
        results: Dict[str, bool] = {}
        try:
            for tag_name, patch in coalesce_operations(operations).items():
                if not patch:
                    results[tag_name] = True
                    continue
                # 只包含解绑的补丁不创建标签；标签不存在时解绑视为无操作
                has_bound = any(value is not None for value in patch.values())
                affected = tag_crud.merge_page_ids(db, tag_name, patch, create_missing=has_bound)
                results[tag_name] = affected > 0 or not has_bound
        except OperationalError as exc:
            db.rollback()
            raise StorageUnavailableError("标签关联写入失败") from exc
        return results

    # ------------------------------------------------------------------
    # 标签管理
    # ------------------------------------------------------------------

    def list_tags(self, db: Session) -> List[Tag]:
        return tag_crud.list_all(db)

    def get_tag(self, db: Session, tag_id: int) -> Tag:
        tag = tag_crud.get(db, tag_id)
        if tag is None:
            raise NotFoundError("标签不存在")
        return tag

    def create_tag(self, db: Session, *, name: str, color: str = "") -> Tag:
        if tag_crud.get_by_name(db, name) is not None:
            raise ConflictError("标签名称已存在")
        try:
            return tag_crud.create(db, {"name": name, "color": color, "page_id_dict": {}})
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError("标签名称已存在") from exc

    def update_tag(
        self,
        db: Session,
        tag_id: int,
        *,
        name: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Tag:
        if not name and not color:
            raise AppException("至少需要提供一个待更新字段")
        tag = self.get_tag(db, tag_id)
        if name and name != tag.name and tag_crud.get_by_name(db, name) is not None:
            raise ConflictError("标签名称已存在")
        if name:
            tag.name = name
        if color:
            tag.color = color
        return tag_crud.save(db, tag)

    def delete_tag(self, db: Session, tag_id: int) -> None:
        tag = self.get_tag(db, tag_id)
        tag_crud.hard_delete(db, tag)
        logger.info("Tag %s (%s) deleted", tag_id, tag.name)

    def serialize(self, tag: Tag) -> Dict[str, Any]:
        return {
            "id": tag.id,
            "name": tag.name,
            "color": tag.color,
            "pageIds": tag.page_ids,
            "createdAt": format_datetime(tag.created_at),
            "updatedAt": format_datetime(tag.updated_at),
        }

    def _commit(self, db: Session) -> None:
        try:
            db.commit()
        except OperationalError as exc:
            db.rollback()
            raise StorageUnavailableError("标签关联提交失败") from exc


tag_service = TagService()
