"""SQLAlchemy ORM 模型集合。"""

from app.packages.archive.models.base import Base
from app.packages.archive.models.folder import Folder
from app.packages.archive.models.page import Page
from app.packages.archive.models.store import Store
from app.packages.archive.models.tag import Tag

__all__ = ["Base", "Folder", "Page", "Store", "Tag"]
