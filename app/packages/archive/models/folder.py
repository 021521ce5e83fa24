"""文件夹模型：页面的归属容器，支持软删除与恢复。"""

from sqlalchemy import Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.archive.models.base import Base, SoftDeleteMixin, TimestampMixin


class Folder(TimestampMixin, SoftDeleteMixin, Base):
    """文件夹。

    说明：
    - ``name`` 仅在未删除的文件夹之间唯一，已软删除的名称可以复用；
    - 软删除会级联标记其下所有页面，恢复则只作用于文件夹本身。
    """

    __tablename__ = "folders"
    __table_args__ = (
        Index(
            "uq_folders_name_active",
            "name",
            unique=True,
            sqlite_where=text("is_deleted = 0"),
            postgresql_where=text("is_deleted = false"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
