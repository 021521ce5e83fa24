"""数据看板服务：页面数量聚合与对象存储用量（只读）。"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy.orm import Session

from app.packages.archive.core.config import get_settings
from app.packages.archive.crud.folder import folder_crud
from app.packages.archive.crud.page import page_crud
from app.packages.archive.services.blob_store import BlobStore


class DataService:
    def page_chart_data(self, db: Session) -> Dict[str, Any]:
        """按未删除页面数取前 N 个活动文件夹，并附带未删除页面总数。"""
        counts = page_crud.count_grouped_by_folder(db)
        folders = [
            {"id": folder.id, "name": folder.name, "pageCount": counts.get(folder.id, 0)}
            for folder in folder_crud.list_active(db)
        ]
        # 排序稳定：页面数相同的文件夹保持 ID 升序
        folders.sort(key=lambda item: item["pageCount"], reverse=True)
        return {
            "folders": folders[: get_settings().dashboard_top_folders],
            "all": page_crud.count(db),
        }

    def blob_usage(self, blob_store: BlobStore) -> Dict[str, int]:
        return blob_store.usage()


data_service = DataService()
