"""HTTP 接口的集成测试：统一响应结构、管理员令牌鉴权与主要业务路由。"""

from fastapi.testclient import TestClient

ADMIN_TOKEN = "first-admin-token"


def _upload(client: TestClient, headers: dict, folder_id: int, title: str = "Example", **form) -> dict:
    data = {"title": title, "pageUrl": "https://example.com", "folderId": str(folder_id), **form}
    files = {"pageFile": ("page.html", b"<html>archived</html>", "text/html")}
    response = client.post("/api/pages/upload_new_page", data=data, files=files, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["data"]


def _default_folder_id(client: TestClient, headers: dict) -> int:
    return client.get("/api/folders/all", headers=headers).json()["data"][0]["id"]


def test_health_check(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"msg": "OK", "data": {"status": "healthy"}, "code": 200}


def test_missing_token_is_unauthorized(client: TestClient):
    response = client.get("/api/folders/all")
    assert response.status_code == 401
    payload = response.json()
    assert payload["code"] == 401
    assert payload["msg"] == "缺少认证信息"


def test_first_token_initialises_admin(client: TestClient):
    response = client.post("/api/auth", headers={"Authorization": f"Bearer {ADMIN_TOKEN}"})
    assert response.json()["data"] == "new"
    response = client.post("/api/auth", headers={"Authorization": f"Bearer {ADMIN_TOKEN}"})
    assert response.json()["data"] == "accept"


def test_wrong_token_is_rejected(client: TestClient, auth_headers: dict):
    response = client.get("/api/folders/all", headers={"Authorization": "Bearer wrong-token"})
    assert response.status_code == 401
    assert response.json()["msg"] == "令牌无效"


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["x-request-id"] == "abc-123"


def test_folder_routes(client: TestClient, auth_headers: dict):
    created = client.post("/api/folders/create", json={"name": "reading"}, headers=auth_headers)
    assert created.status_code == 200
    folder_id = created.json()["data"]["id"]

    duplicate = client.post("/api/folders/create", json={"name": "reading"}, headers=auth_headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == 409

    deleted = client.delete("/api/folders/delete", params={"id": folder_id}, headers=auth_headers)
    assert deleted.json()["data"] == {"id": folder_id, "deletedPages": 0}
    assert client.get("/api/folders/deleted_count", headers=auth_headers).json()["data"] == 1

    restored = client.post("/api/folders/restore", json={"id": folder_id}, headers=auth_headers)
    assert restored.json()["data"] is True


def test_page_upload_query_and_content(client: TestClient, auth_headers: dict):
    folder_id = _default_folder_id(client, auth_headers)
    page = _upload(client, auth_headers, folder_id, bindTags='["news"]')
    assert page["folderId"] == folder_id
    assert page["isDeleted"] is False

    query = client.post(
        "/api/pages/query",
        json={"keyword": "Exam", "pageNumber": 1, "pageSize": 10},
        headers=auth_headers,
    )
    body = query.json()["data"]
    assert body["total"] == 1
    assert body["list"][0]["id"] == page["id"]

    content = client.get("/api/pages/content", params={"pageId": page["id"]}, headers=auth_headers)
    assert content.status_code == 200
    assert content.text == "<html>archived</html>"

    tags = client.get("/api/tags/all", headers=auth_headers).json()["data"]
    assert [(t["name"], t["pageIds"]) for t in tags] == [("news", [page["id"]])]


def test_page_trash_lifecycle(client: TestClient, auth_headers: dict):
    folder_id = _default_folder_id(client, auth_headers)
    page = _upload(client, auth_headers, folder_id)

    client.delete("/api/pages/delete_page", params={"id": page["id"]}, headers=auth_headers)
    missing = client.get("/api/pages/detail", params={"id": page["id"]}, headers=auth_headers)
    assert missing.status_code == 404
    assert client.get("/api/pages/deleted_count", headers=auth_headers).json()["data"] == 1

    purge = client.post("/api/pages/clear_deleted", json={}, headers=auth_headers)
    assert purge.status_code == 200
    assert purge.json()["data"]["purgedIds"] == [page["id"]]
    assert client.get("/api/pages/query_deleted", headers=auth_headers).json()["data"] == []


def test_update_page_with_tags(client: TestClient, auth_headers: dict):
    folder_id = _default_folder_id(client, auth_headers)
    page = _upload(client, auth_headers, folder_id)
    response = client.put(
        "/api/pages/update_page",
        json={
            "id": page["id"],
            "folderId": folder_id,
            "title": "Updated",
            "isShowcased": True,
            "pageDesc": "",
            "pageUrl": "https://example.com/updated",
            "bindTags": ["later"],
        },
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["title"] == "Updated"

    ids = client.get("/api/pages/ids_in_folder", params={"folderId": folder_id}, headers=auth_headers)
    assert ids.json()["data"] == [page["id"]]


def test_tag_bind_route(client: TestClient, auth_headers: dict):
    response = client.post(
        "/api/tags/bind",
        json={"bindList": [{"tagName": "a", "pageIds": [1, 2]}], "unbindList": [{"tagName": "a", "pageIds": [2]}]},
        headers=auth_headers,
    )
    assert response.json()["data"] == {"a": True}
    tags = client.get("/api/tags/all", headers=auth_headers).json()["data"]
    assert sorted(tags[0]["pageIds"]) == [1, 2]


def test_showcase_is_public(client: TestClient, auth_headers: dict):
    folder_id = _default_folder_id(client, auth_headers)
    page = _upload(client, auth_headers, folder_id, isShowcased="true")

    listing = client.post("/api/showcase/query", json={"pageNumber": 1, "pageSize": 5})
    assert listing.status_code == 200
    assert listing.json()["data"]["total"] == 1
    assert listing.json()["data"]["list"][0]["screenshot"] == ""

    next_id = client.get("/api/showcase/next_id", params={"id": page["id"]})
    assert next_id.json()["data"] == page["id"]


def test_config_routes(client: TestClient, auth_headers: dict):
    assert client.get("/api/config/should_show_recent", headers=auth_headers).json()["data"] is True
    client.post("/api/config/should_show_recent", json={"shouldShowRecent": False}, headers=auth_headers)
    assert client.get("/api/config/should_show_recent", headers=auth_headers).json()["data"] is False

    ai_tag = client.get("/api/config/ai_tag", headers=auth_headers).json()["data"]
    assert ai_tag["tagLanguage"] == "en"


def test_dashboard_routes(client: TestClient, auth_headers: dict):
    folder_id = _default_folder_id(client, auth_headers)
    _upload(client, auth_headers, folder_id)
    chart = client.get("/api/data/page_chart_data", headers=auth_headers).json()["data"]
    assert chart["all"] == 1
    usage = client.get("/api/data/blob_usage", headers=auth_headers).json()["data"]
    assert usage["count"] == 1


def test_validation_error_envelope(client: TestClient, auth_headers: dict):
    response = client.post("/api/folders/create", json={}, headers=auth_headers)
    assert response.status_code == 422
    assert response.json()["code"] == 422
