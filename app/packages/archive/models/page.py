"""页面模型：保存归档页面的元数据以及对象存储中的内容键。"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import expression

from app.packages.archive.models.base import Base, SoftDeleteMixin, TimestampMixin


class Page(TimestampMixin, SoftDeleteMixin, Base):
    """归档页面。

    ``content_url`` 与 ``screenshot_id`` 均为对象存储中的不透明键，只能由页面生命周期
    服务写入；在页面被永久清理之前，它们必须指向仍然存在的对象。
    """

    __tablename__ = "pages"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(512), index=True)
    page_desc: Mapped[str] = mapped_column(Text, default="")
    page_url: Mapped[str] = mapped_column(String(2048), index=True)
    content_url: Mapped[str] = mapped_column(String(255))
    screenshot_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    folder_id: Mapped[int] = mapped_column(ForeignKey("folders.id"), index=True)
    is_showcased: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=expression.false(),
        nullable=False,
        index=True,
    )

    def blob_keys(self) -> list[str]:
        """返回该页面引用的全部对象键（截图在前，内容在后）。"""
        return [key for key in (self.screenshot_id, self.content_url) if key]
