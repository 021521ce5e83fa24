"""标签模型：以 JSON 映射维护标签与页面的多对多关联。"""

from typing import Any, Dict, List

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.archive.models.base import Base, JSONDocument, TimestampMixin


class Tag(TimestampMixin, Base):
    """标签。

    ``page_id_dict`` 的键为页面 ID 的字符串形式，值为该 ID（已绑定）或 ``null``
    （已解绑的墓碑）。对外只暴露由非空值推导出的 ``page_ids``。
    该列只能由标签关联存储以原子合并的方式写入。
    """

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    color: Mapped[str] = mapped_column(String(32), default="", server_default="")
    page_id_dict: Mapped[Dict[str, Any]] = mapped_column(JSONDocument, default=dict, nullable=False)

    @property
    def page_ids(self) -> List[int]:
        mapping = self.page_id_dict or {}
        return [int(value) for value in mapping.values() if value is not None]
