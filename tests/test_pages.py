"""页面生命周期测试：创建、查询分页、更新、软删除/恢复与永久清理。"""

import threading

import pytest
from sqlalchemy.exc import OperationalError

from app.packages.archive.core.config import get_settings
from app.packages.archive.core.exceptions import NotFoundError, PartialFailureError, StorageUnavailableError
from app.packages.archive.crud.page import page_crud
from app.packages.archive.crud.tag import tag_crud
from app.packages.archive.services.blob_store import LocalBlobStore
from app.packages.archive.services.folder_service import folder_service
from app.packages.archive.services.page_service import page_service
from app.packages.archive.services.tag_service import tag_service


def _create(db, blob_store, folder_id, title="Example", **kwargs):
    kwargs.setdefault("page_url", "https://example.com")
    kwargs.setdefault("content", f"<html>{title}</html>")
    return page_service.create_page(db, blob_store, title=title, folder_id=folder_id, **kwargs)


class FlakyBlobStore(LocalBlobStore):
    """删除指定键时失败，其余行为与本地存储一致。"""

    def __init__(self, root, failing_keys):
        super().__init__(root)
        self.failing_keys = set(failing_keys)

    def delete_one(self, key):
        if key in self.failing_keys:
            raise StorageUnavailableError(f"cannot delete {key}")
        super().delete_one(key)


class RecordingBlobStore(LocalBlobStore):
    """记录每次批量删除收到的键列表。"""

    def __init__(self, root):
        super().__init__(root)
        self.delete_calls = []

    def delete(self, keys):
        self.delete_calls.append(list(keys))
        return super().delete(keys)


def test_create_page_stores_blobs(db_session_fixture, blob_store, default_folder):
    page = _create(db_session_fixture, blob_store, default_folder.id, screenshot=b"\x89PNG")
    assert page.id is not None
    assert blob_store.get_text(page.content_url) == "<html>Example</html>"
    assert blob_store.get(page.screenshot_id) == b"\x89PNG"
    assert page.is_deleted is False


def test_create_page_requires_active_folder(db_session_fixture, blob_store):
    folder = folder_service.create_folder(db_session_fixture, "gone")
    folder_service.soft_delete(db_session_fixture, folder.id)
    with pytest.raises(NotFoundError):
        _create(db_session_fixture, blob_store, folder.id)
    assert blob_store.usage()["count"] == 0


def test_create_page_binds_tags(db_session_fixture, blob_store, default_folder):
    page = _create(db_session_fixture, blob_store, default_folder.id, bind_tags=["news"])
    assert tag_crud.get_by_name(db_session_fixture, "news").page_ids == [page.id]


def test_create_page_reports_orphans_when_tag_bind_fails(db_session_fixture, blob_store, default_folder, monkeypatch):
    def locked(*args, **kwargs):
        raise OperationalError("UPDATE tag", {}, Exception("database is locked"))

    monkeypatch.setattr(tag_crud, "merge_page_ids", locked)

    with pytest.raises(PartialFailureError) as exc_info:
        _create(db_session_fixture, blob_store, default_folder.id, bind_tags=["news"])

    written = [entry.name for entry in blob_store.root.iterdir()]
    assert len(written) == 1
    assert exc_info.value.data == {"orphanBlobKeys": written}
    assert page_service.count_pages(db_session_fixture) == 0


def test_pagination_returns_requested_window(db_session_fixture, blob_store, default_folder):
    created = [_create(db_session_fixture, blob_store, default_folder.id, title=f"p{i}") for i in range(25)]
    items, total = page_service.query_pages(db_session_fixture, page_number=2, page_size=10)
    newest_first = [page.id for page in reversed(created)]
    assert total == 25
    assert [page.id for page in items] == newest_first[10:20]


def test_keyword_filter_substring_and_prefix(db_session_fixture, blob_store, default_folder):
    _create(db_session_fixture, blob_store, default_folder.id, title="Python tips")
    _create(db_session_fixture, blob_store, default_folder.id, title="Learning Python")
    _create(db_session_fixture, blob_store, default_folder.id, title="100% coverage")

    _, substring_total = page_service.query_pages(db_session_fixture, keyword="Python")
    assert substring_total == 2
    assert page_service.count_pages(db_session_fixture, keyword="Python", keyword_mode="prefix") == 1
    # LIKE 通配符按字面匹配
    assert page_service.count_pages(db_session_fixture, keyword="0%") == 1
    assert page_service.count_pages(db_session_fixture, keyword="_") == 0


def test_filter_by_folder_and_tag(db_session_fixture, blob_store, default_folder):
    other = folder_service.create_folder(db_session_fixture, "other")
    first = _create(db_session_fixture, blob_store, default_folder.id)
    second = _create(db_session_fixture, blob_store, other.id)
    tag_service.bind(db_session_fixture, "keep", [first.id, second.id])
    tag = tag_crud.get_by_name(db_session_fixture, "keep")

    items, total = page_service.query_pages(db_session_fixture, folder_id=other.id, tag_id=tag.id)
    assert total == 1
    assert items[0].id == second.id

    missing_tag_total = page_service.count_pages(db_session_fixture, tag_id=tag.id + 100)
    assert missing_tag_total == 0


def test_recent_and_by_url(db_session_fixture, blob_store, default_folder):
    a = _create(db_session_fixture, blob_store, default_folder.id, page_url="https://a.test")
    b = _create(db_session_fixture, blob_store, default_folder.id, page_url="https://a.test")
    _create(db_session_fixture, blob_store, default_folder.id, page_url="https://b.test")

    assert [p.id for p in page_service.query_by_url(db_session_fixture, "https://a.test")] == [b.id, a.id]
    assert len(page_service.recent_pages(db_session_fixture, limit=2)) == 2
    assert sorted(page_service.page_ids_in_folder(db_session_fixture, default_folder.id)) == sorted(
        p.id for p in page_crud.query(db_session_fixture).all()
    )


def test_content_and_screenshot(db_session_fixture, blob_store, default_folder):
    page = _create(db_session_fixture, blob_store, default_folder.id, content="<p>hi</p>", screenshot=b"png")
    assert page_service.get_content(db_session_fixture, blob_store, page.id) == "<p>hi</p>"
    assert page_service.get_screenshot_data_uri(db_session_fixture, blob_store, page.id) == "data:image/png;base64,cG5n"

    no_shot = _create(db_session_fixture, blob_store, default_folder.id)
    assert page_service.get_screenshot_data_uri(db_session_fixture, blob_store, no_shot.id) is None


def test_update_page_moves_folder_and_tags(db_session_fixture, blob_store, default_folder):
    other = folder_service.create_folder(db_session_fixture, "target")
    page = _create(db_session_fixture, blob_store, default_folder.id, bind_tags=["old"])

    updated = page_service.update_page(
        db_session_fixture,
        page.id,
        folder_id=other.id,
        title="Renamed",
        is_showcased=True,
        page_desc="desc",
        page_url="https://renamed.test",
        bind_tags=["new"],
        unbind_tags=["old"],
    )
    assert updated.folder_id == other.id
    assert updated.title == "Renamed"
    assert updated.is_showcased is True
    db_session_fixture.expire_all()
    assert tag_crud.get_by_name(db_session_fixture, "old").page_ids == []
    assert tag_crud.get_by_name(db_session_fixture, "new").page_ids == [page.id]


def test_update_page_rejects_deleted_page(db_session_fixture, blob_store, default_folder):
    page = _create(db_session_fixture, blob_store, default_folder.id)
    page_service.soft_delete(db_session_fixture, page.id)
    with pytest.raises(NotFoundError):
        page_service.update_page(
            db_session_fixture,
            page.id,
            folder_id=default_folder.id,
            title="x",
            is_showcased=False,
            page_desc="",
            page_url="https://x.test",
        )


def test_soft_delete_and_restore_round_trip(db_session_fixture, blob_store, default_folder):
    page = _create(db_session_fixture, blob_store, default_folder.id, screenshot=b"img")
    before = page_service.serialize(page)
    updated_at = page.updated_at

    assert page_service.soft_delete(db_session_fixture, page.id) is True
    assert page_service.count_deleted(db_session_fixture) == 1
    assert page_service.count_pages(db_session_fixture) == 0
    with pytest.raises(NotFoundError):
        page_service.soft_delete(db_session_fixture, page.id)

    assert page_service.restore(db_session_fixture, page.id) is True
    db_session_fixture.expire_all()
    restored = page_service.get_page(db_session_fixture, page.id)
    after = page_service.serialize(restored)
    assert after["isDeleted"] is False
    assert after["deletedAt"] is None
    lifecycle = ("isDeleted", "deletedAt")
    assert {k: v for k, v in after.items() if k not in lifecycle} == {
        k: v for k, v in before.items() if k not in lifecycle
    }
    assert restored.updated_at == updated_at
    assert blob_store.get(page.screenshot_id) == b"img"

    with pytest.raises(NotFoundError):
        page_service.restore(db_session_fixture, page.id)


def test_purge_removes_rows_and_blobs(db_session_fixture, blob_store, default_folder):
    kept = _create(db_session_fixture, blob_store, default_folder.id)
    page = _create(db_session_fixture, blob_store, default_folder.id, screenshot=b"img")
    page_id, keys = page.id, page.blob_keys()
    page_service.soft_delete(db_session_fixture, page_id)

    result = page_service.purge(db_session_fixture, blob_store)

    assert result.ok
    assert result.purged_ids == [page_id]
    assert result.deleted_blob_count == 2
    assert all(blob_store.get(key) is None for key in keys)
    assert page_service.count_deleted(db_session_fixture) == 0
    assert page_crud.get_in_state(db_session_fixture, page_id) is None
    assert blob_store.get(kept.content_url) is not None


def test_purge_keeps_pages_with_failed_blob_deletes(db_session_fixture, tmp_path, default_folder):
    store = FlakyBlobStore(tmp_path / "flaky", failing_keys=())
    good = _create(db_session_fixture, store, default_folder.id)
    bad = _create(db_session_fixture, store, default_folder.id)
    good_id, bad_id, bad_key = good.id, bad.id, bad.content_url
    store.failing_keys.add(bad_key)
    for page in (good, bad):
        page_service.soft_delete(db_session_fixture, page.id)

    with pytest.raises(PartialFailureError) as exc_info:
        page_service.purge(db_session_fixture, store)

    data = exc_info.value.data
    assert data["purgedIds"] == [good_id]
    assert data["failedBlobs"] == {str(bad_id): [bad_key]}
    assert [p.id for p in page_service.list_deleted(db_session_fixture)] == [bad_id]

    store.failing_keys.clear()
    retry = page_service.purge(db_session_fixture, store)
    assert retry.purged_ids == [bad_id]
    assert page_service.count_deleted(db_session_fixture) == 0


def test_purge_only_selected_ids(db_session_fixture, blob_store, default_folder):
    first = _create(db_session_fixture, blob_store, default_folder.id)
    second = _create(db_session_fixture, blob_store, default_folder.id)
    first_id, second_id = first.id, second.id
    for page_id in (first_id, second_id):
        page_service.soft_delete(db_session_fixture, page_id)

    result = page_service.purge(db_session_fixture, blob_store, ids=[second_id])
    assert result.purged_ids == [second_id]
    assert [p.id for p in page_service.list_deleted(db_session_fixture)] == [first_id]


def test_purge_stops_between_batches(db_session_fixture, blob_store, default_folder, monkeypatch):
    monkeypatch.setattr(get_settings(), "purge_batch_size", 1)
    pages = [_create(db_session_fixture, blob_store, default_folder.id) for _ in range(3)]
    for page in pages:
        page_service.soft_delete(db_session_fixture, page.id)

    stop_event = threading.Event()
    stop_event.set()
    result = page_service.purge(db_session_fixture, blob_store, stop_event=stop_event)

    assert result.interrupted is True
    assert result.purged_ids == []
    assert result.remaining_ids == [p.id for p in pages]
    assert page_service.count_deleted(db_session_fixture) == 3


def test_purge_ignores_active_pages(db_session_fixture, blob_store, default_folder):
    page = _create(db_session_fixture, blob_store, default_folder.id)
    result = page_service.purge(db_session_fixture, blob_store, ids=[page.id])
    assert result.purged_ids == []
    assert page_service.get_page(db_session_fixture, page.id, is_deleted=False).id == page.id



def test_trash_lists_most_recently_deleted_first(db_session_fixture, blob_store, default_folder):
    older = _create(db_session_fixture, blob_store, default_folder.id, title="older")
    newer = _create(db_session_fixture, blob_store, default_folder.id, title="newer")
    older_id, newer_id = older.id, newer.id
    page_service.soft_delete(db_session_fixture, newer_id)
    page_service.soft_delete(db_session_fixture, older_id)

    assert [p.id for p in page_service.list_deleted(db_session_fixture)] == [older_id, newer_id]


def test_purge_deletes_blobs_in_batches(db_session_fixture, tmp_path, default_folder, monkeypatch):
    monkeypatch.setattr(get_settings(), "purge_max_workers", 2)
    store = RecordingBlobStore(tmp_path / "recording")
    pages = [_create(db_session_fixture, store, default_folder.id, screenshot=b"img") for _ in range(3)]
    keys = sorted(key for page in pages for key in page.blob_keys())
    for page in pages:
        page_service.soft_delete(db_session_fixture, page.id)

    result = page_service.purge(db_session_fixture, store)

    assert result.deleted_blob_count == 6
    assert len(store.delete_calls) == 2
    assert sorted(key for call in store.delete_calls for key in call) == keys
    assert store.usage()["count"] == 0
