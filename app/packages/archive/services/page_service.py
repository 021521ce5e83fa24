"""页面生命周期服务：创建、更新、软删除、恢复与永久清理。

状态流转：活动 → 软删除 → 已清理（行被删除，终态）；软删除 → 活动 通过恢复完成。
页面行上的对象键（``content_url``、``screenshot_id``）只由本服务写入。
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.packages.archive.core.config import get_settings
from app.packages.archive.core.constants import S3_DELETE_BATCH_LIMIT, SCREENSHOT_MIME_TYPE
from app.packages.archive.core.exceptions import (
    NotFoundError,
    PartialFailureError,
    StorageUnavailableError,
)
from app.packages.archive.core.logger import logger
from app.packages.archive.core.timezone import format_datetime
from app.packages.archive.crud.folder import folder_crud
from app.packages.archive.crud.page import KeywordMode, page_crud
from app.packages.archive.models.page import Page
from app.packages.archive.services.blob_store import BlobContent, BlobStore
from app.packages.archive.services.tag_service import TagOperation, tag_service


@dataclass
class PurgeResult:
    purged_ids: List[int] = field(default_factory=list)
    deleted_blob_count: int = 0
    # 页面 ID → 删除失败的对象键；这些页面保持软删除状态，重新执行清理即可重试
    failed_blobs: Dict[int, List[str]] = field(default_factory=dict)
    interrupted: bool = False
    remaining_ids: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_blobs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "purgedIds": self.purged_ids,
            "deletedBlobCount": self.deleted_blob_count,
            "failedBlobs": {str(page_id): keys for page_id, keys in self.failed_blobs.items()},
            "interrupted": self.interrupted,
            "remainingIds": self.remaining_ids,
        }


class PageService:
    """封装页面生命周期相关的业务逻辑。"""

    # ------------------------------------------------------------------
    # 创建与读取
    # ------------------------------------------------------------------

    def create_page(
        self,
        db: Session,
        blob_store: BlobStore,
        *,
        title: str,
        page_url: str,
        folder_id: int,
        content: BlobContent,
        page_desc: str = "",
        screenshot: Optional[BlobContent] = None,
        is_showcased: bool = False,
        bind_tags: Sequence[str] = (),
    ) -> Page:
        """先写入对象再插入页面行；行写入失败时已写入的对象成为孤儿并以部分失败上报。"""
        self._require_active_folder(db, folder_id)

        content_key = blob_store.put(content)
        screenshot_key: Optional[str] = None
        if screenshot is not None:
            try:
                screenshot_key = blob_store.put(screenshot)
            except StorageUnavailableError as exc:
                self._report_orphans([content_key], exc)
                raise PartialFailureError("截图写入失败", {"orphanBlobKeys": [content_key]}) from exc

        try:
            page = page_crud.create(
                db,
                {
                    "title": title,
                    "page_desc": page_desc or "",
                    "page_url": page_url,
                    "content_url": content_key,
                    "screenshot_id": screenshot_key,
                    "folder_id": folder_id,
                    "is_showcased": is_showcased,
                },
                auto_commit=False,
            )
            if bind_tags:
                tag_service.stage_operations(
                    db, [TagOperation(name, [page.id], bind=True) for name in bind_tags]
                )
            db.commit()
            db.refresh(page)
        except (SQLAlchemyError, StorageUnavailableError) as exc:
            db.rollback()
            orphans = [key for key in (content_key, screenshot_key) if key]
            self._report_orphans(orphans, exc)
            raise PartialFailureError("页面保存失败，已写入的对象未回收", {"orphanBlobKeys": orphans}) from exc

        logger.info("Page %s saved into folder %s", page.id, folder_id)
        return page

    def get_page(self, db: Session, page_id: int, *, is_deleted: Optional[bool] = None) -> Page:
        page = page_crud.get_in_state(db, page_id, is_deleted=is_deleted)
        if page is None:
            raise NotFoundError("页面不存在")
        return page

    def query_pages(
        self,
        db: Session,
        *,
        folder_id: Optional[int] = None,
        keyword: Optional[str] = None,
        keyword_mode: KeywordMode = "substring",
        tag_id: Optional[int] = None,
        page_number: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Tuple[List[Page], int]:
        """按条件分页查询未删除页面，返回 ``(当前页数据, 总数)``。"""
        filters = {"folder_id": folder_id, "keyword": keyword, "keyword_mode": keyword_mode, "tag_id": tag_id}
        items = page_crud.list_filtered(db, page_number=page_number, page_size=page_size, **filters)
        total = page_crud.count_filtered(db, **filters)
        return items, total

    def count_pages(
        self,
        db: Session,
        *,
        folder_id: Optional[int] = None,
        keyword: Optional[str] = None,
        keyword_mode: KeywordMode = "substring",
        tag_id: Optional[int] = None,
    ) -> int:
        return page_crud.count_filtered(
            db, folder_id=folder_id, keyword=keyword, keyword_mode=keyword_mode, tag_id=tag_id
        )

    def query_by_url(self, db: Session, page_url: str) -> List[Page]:
        return page_crud.list_by_url(db, page_url)

    def recent_pages(self, db: Session, *, limit: Optional[int] = None) -> List[Page]:
        return page_crud.list_recent(db, limit=limit or get_settings().recent_page_limit)

    def page_ids_in_folder(self, db: Session, folder_id: int) -> List[int]:
        return page_crud.list_ids_in_folder(db, folder_id)

    def list_deleted(self, db: Session) -> List[Page]:
        return page_crud.list_deleted(db)

    def count_deleted(self, db: Session) -> int:
        return page_crud.count_deleted(db)

    def get_content(self, db: Session, blob_store: BlobStore, page_id: int) -> str:
        page = self.get_page(db, page_id, is_deleted=False)
        html = blob_store.get_text(page.content_url)
        if html is None:
            raise NotFoundError("页面内容不存在")
        return html

    def get_screenshot_data_uri(self, db: Session, blob_store: BlobStore, page_id: int) -> Optional[str]:
        page = self.get_page(db, page_id, is_deleted=False)
        return blob_store.get_as_data_uri(page.screenshot_id, SCREENSHOT_MIME_TYPE)

    # ------------------------------------------------------------------
    # 更新
    # ------------------------------------------------------------------

    def update_page(
        self,
        db: Session,
        page_id: int,
        *,
        folder_id: int,
        title: str,
        is_showcased: bool,
        page_desc: str,
        page_url: str,
        bind_tags: Sequence[str] = (),
        unbind_tags: Sequence[str] = (),
    ) -> Page:
        """更新可变字段并同步标签绑定。

        页面行与标签映射在同一事务中写入，但属于相互独立的语句：仅当页面行与
        每个标签操作都命中行时才算成功，否则提交已完成部分并抛出 ``PartialFailureError``。
        相同参数重复调用是安全的。
        """
        self.get_page(db, page_id, is_deleted=False)
        self._require_active_folder(db, folder_id)

        operations = [TagOperation(name, [page_id], bind=False) for name in unbind_tags]
        operations.extend(TagOperation(name, [page_id], bind=True) for name in bind_tags)
        try:
            updated = page_crud.update_by_id(
                db,
                page_id,
                {
                    "folder_id": folder_id,
                    "title": title,
                    "is_showcased": is_showcased,
                    "page_desc": page_desc,
                    "page_url": page_url,
                },
                auto_commit=False,
            )
            tag_results = tag_service.stage_operations(db, operations)
            db.commit()
        except OperationalError as exc:
            db.rollback()
            raise StorageUnavailableError("页面更新失败") from exc

        if updated == 0 or not all(tag_results.values()):
            logger.warning("Page %s update partially applied: row=%s tags=%s", page_id, updated, tag_results)
            raise PartialFailureError("页面更新部分失败", {"page": updated > 0, "tags": tag_results})
        return self.get_page(db, page_id)

    def set_showcased(self, db: Session, page_id: int, is_showcased: bool) -> Page:
        self.get_page(db, page_id, is_deleted=False)
        page_crud.update_by_id(db, page_id, {"is_showcased": is_showcased})
        return self.get_page(db, page_id)

    # ------------------------------------------------------------------
    # 软删除 / 恢复 / 永久清理
    # ------------------------------------------------------------------

    def soft_delete(self, db: Session, page_id: int) -> bool:
        """移入回收站：对象保持不变，便于恢复。"""
        if not page_crud.mark_deleted(db, page_id):
            raise NotFoundError("页面不存在或已删除")
        logger.info("Page %s moved to trash", page_id)
        return True

    def restore(self, db: Session, page_id: int) -> bool:
        """从回收站恢复；页面不处于软删除状态时不做任何修改。"""
        if not page_crud.mark_restored(db, page_id):
            raise NotFoundError("页面不存在或未被删除")
        logger.info("Page %s restored", page_id)
        return True

    def purge(
        self,
        db: Session,
        blob_store: BlobStore,
        *,
        ids: Optional[Sequence[int]] = None,
        stop_event: Optional[threading.Event] = None,
        raise_on_failure: bool = True,
    ) -> PurgeResult:
        """永久清理软删除页面（默认全部）。

        逐批处理：先并发删除该批页面引用的全部对象，再删除对象已全部清理成功的页面行。
        单个对象删除失败只记录并计数，对应页面保留在回收站中等待下次清理，不影响其它页面。
        ``stop_event`` 被置位时在批次之间停止。
        """
        settings = get_settings()
        targets = [(page.id, page.blob_keys()) for page in page_crud.list_deleted_for_purge(db, ids)]
        result = PurgeResult()
        batch_size = max(settings.purge_batch_size, 1)

        for start in range(0, len(targets), batch_size):
            if stop_event is not None and stop_event.is_set():
                result.interrupted = True
                result.remaining_ids = [page_id for page_id, _ in targets[start:]]
                logger.info("Purge interrupted, %s pages left in trash", len(result.remaining_ids))
                break

            batch = targets[start : start + batch_size]
            failed = self._delete_blobs(blob_store, batch, max_workers=settings.purge_max_workers)
            result.failed_blobs.update(failed)
            result.deleted_blob_count += sum(len(keys) for _, keys in batch) - sum(
                len(keys) for keys in failed.values()
            )

            removable = [page_id for page_id, _ in batch if page_id not in failed]
            try:
                page_crud.delete_deleted_rows(db, removable)
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("Purge row deletion failed after blob cleanup for pages %s", removable)
                data = result.to_dict()
                data["rowDeleteFailedIds"] = removable
                raise PartialFailureError("页面行删除失败，对应对象已被清理", data) from exc
            result.purged_ids.extend(removable)

        logger.info(
            "Purge finished: %s pages removed, %s blobs deleted, %s pages with blob failures",
            len(result.purged_ids),
            result.deleted_blob_count,
            len(result.failed_blobs),
        )
        if raise_on_failure and not result.ok:
            raise PartialFailureError("部分对象删除失败，相关页面保留在回收站", result.to_dict())
        return result

    def _delete_blobs(
        self,
        blob_store: BlobStore,
        batch: Sequence[Tuple[int, List[str]]],
        *,
        max_workers: int,
    ) -> Dict[int, List[str]]:
        """把本批对象键分片后并发交给 ``blob_store.delete``（S3 后端走批量删除），返回页面 ID → 失败键。"""
        failed: Dict[int, List[str]] = {}
        owners = {key: page_id for page_id, keys in batch for key in keys}
        keys = list(owners)
        if not keys:
            return failed
        workers = max(1, min(max_workers, len(keys)))
        chunk_size = min(-(-len(keys) // workers), S3_DELETE_BATCH_LIMIT)
        chunks = [keys[i : i + chunk_size] for i in range(0, len(keys), chunk_size)]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(blob_store.delete, chunk): chunk for chunk in chunks}
            for future in as_completed(futures):
                try:
                    failed_keys = future.result()
                except Exception:
                    failed_keys = futures[future]
                    logger.warning("Purge could not delete blobs %s", failed_keys, exc_info=True)
                for key in failed_keys:
                    failed.setdefault(owners[key], []).append(key)
        return failed

    # ------------------------------------------------------------------
    # 工具方法
    # ------------------------------------------------------------------

    def _require_active_folder(self, db: Session, folder_id: int) -> None:
        if folder_crud.get(db, folder_id) is None:
            raise NotFoundError("文件夹不存在或已删除")

    def _report_orphans(self, keys: List[str], exc: Exception) -> None:
        logger.error("Orphaned blobs %s after failed page save: %s", keys, exc)

    def serialize(self, page: Page, *, screenshot: Optional[str] = None) -> Dict[str, Any]:
        data = {
            "id": page.id,
            "title": page.title,
            "pageDesc": page.page_desc,
            "pageUrl": page.page_url,
            "contentUrl": page.content_url,
            "screenshotId": page.screenshot_id,
            "folderId": page.folder_id,
            "isShowcased": bool(page.is_showcased),
            "isDeleted": bool(page.is_deleted),
            "createdAt": format_datetime(page.created_at),
            "updatedAt": format_datetime(page.updated_at),
            "deletedAt": format_datetime(page.deleted_at),
        }
        if screenshot is not None:
            data["screenshot"] = screenshot
        return data


page_service = PageService()
