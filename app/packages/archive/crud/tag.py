"""标签的数据库访问方法。

标签与页面的关联保存在 ``tags.page_id_dict``（页面 ID 字符串 → ID 或 null）。
绑定/解绑以“合并补丁”的形式写入，由数据库在单条 UPSERT 语句中完成读-改-写：

- SQLite：``INSERT ... ON CONFLICT(name) DO UPDATE SET page_id_dict = json_patch(page_id_dict, :patch)``
- PostgreSQL：``... DO UPDATE SET page_id_dict = tags.page_id_dict || :patch::jsonb``

只解绑（补丁中没有绑定值）时不创建新标签，仅对已有行执行同样的合并 UPDATE。
其它方言没有可用的文档合并原语，退化为 ``SELECT ... FOR UPDATE`` 行锁后再写回。
"""

from __future__ import annotations

import json
from typing import Dict, List, Optional

from sqlalchemy import String, cast, literal, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.packages.archive.core.constants import DEFAULT_TAG_COLOR
from app.packages.archive.crud.base import CRUDBase
from app.packages.archive.models.base import utcnow
from app.packages.archive.models.tag import Tag

PageIdPatch = Dict[str, Optional[int]]


class CRUDTag(CRUDBase[Tag]):
    def get_by_name(self, db: Session, name: str) -> Optional[Tag]:
        return self.query(db).filter(self.model.name == name).first()

    def list_all(self, db: Session) -> List[Tag]:
        return self.query(db).order_by(self.model.id.asc()).all()

    def merge_page_ids(
        self,
        db: Session,
        tag_name: str,
        patch: PageIdPatch,
        *,
        create_missing: bool = True,
    ) -> int:
        """将补丁原子合并进标签的关联映射。

        ``create_missing`` 为真时标签不存在则以补丁为初值创建（UPSERT），否则只更新已有行。
        返回受影响行数；不提交事务，由调用方决定事务边界。
        """
        dialect = db.get_bind().dialect.name
        if dialect not in ("sqlite", "postgresql"):
            return self._merge_locked(db, tag_name, patch, create_missing=create_missing)

        table = self.model.__table__
        merged = self._merge_expression(dialect, table.c.page_id_dict, patch)
        if not create_missing:
            stmt = (
                update(table)
                .where(table.c.name == tag_name)
                .values(page_id_dict=merged, updated_at=utcnow())
            )
            return db.execute(stmt).rowcount or 0

        insert = sqlite_insert if dialect == "sqlite" else pg_insert
        stmt = insert(table).values(name=tag_name, color=DEFAULT_TAG_COLOR, page_id_dict=patch)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.name],
            set_={"page_id_dict": merged, "updated_at": utcnow()},
        )
        return db.execute(stmt).rowcount or 0

    @staticmethod
    def _merge_expression(dialect: str, column, patch: PageIdPatch):
        document = literal(json.dumps(patch), String)
        if dialect == "sqlite":
            return func.json_patch(column, document)
        return column.op("||")(cast(document, JSONB))

    def _merge_locked(self, db: Session, tag_name: str, patch: PageIdPatch, *, create_missing: bool) -> int:
        tag = db.execute(
            select(self.model).where(self.model.name == tag_name).with_for_update()
        ).scalar_one_or_none()
        if tag is None:
            if not create_missing:
                return 0
            db.add(self.model(name=tag_name, color=DEFAULT_TAG_COLOR, page_id_dict=dict(patch)))
            db.flush()
            return 1
        merged = dict(tag.page_id_dict or {})
        merged.update(patch)
        tag.page_id_dict = merged
        db.flush()
        return 1


tag_crud = CRUDTag(Tag)
