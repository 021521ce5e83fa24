"""对象存储适配层测试：本地文件系统实现与基于 Stubber 的 S3 实现。"""

import io

import boto3
import pytest
from botocore.exceptions import ReadTimeoutError
from botocore.response import StreamingBody
from botocore.stub import Stubber

from app.packages.archive.core.exceptions import AppException, StorageUnavailableError
from app.packages.archive.services.blob_store import LocalBlobStore, S3BlobStore, build_blob_store


def test_local_put_generates_unique_keys(blob_store):
    first = blob_store.put("<html/>")
    second = blob_store.put("<html/>")
    assert first != second
    assert blob_store.get(first) == b"<html/>"


def test_local_get_missing_returns_none(blob_store):
    assert blob_store.get("does-not-exist") is None
    assert blob_store.get_as_data_uri("does-not-exist", "image/png") is None
    assert blob_store.get_as_data_uri(None, "image/png") is None


def test_local_delete_is_idempotent(blob_store):
    key = blob_store.put(b"data")
    assert blob_store.delete([key, None, ""]) == []
    assert blob_store.delete(key) == []
    assert blob_store.get(key) is None


def test_local_rejects_path_traversal(blob_store):
    with pytest.raises(AppException):
        blob_store.get("../outside")


def test_local_usage(blob_store):
    blob_store.put(b"abc")
    blob_store.put(b"de")
    assert blob_store.usage() == {"size": 5, "count": 2}


def test_build_blob_store_local(tmp_path):
    from app.packages.archive.core.config import get_settings

    settings = get_settings().model_copy(update={"blob_backend": "local", "blob_local_root": str(tmp_path)})
    assert isinstance(build_blob_store(settings), LocalBlobStore)


def test_build_blob_store_rejects_unknown_backend():
    from app.packages.archive.core.config import get_settings

    settings = get_settings().model_copy(update={"blob_backend": "FTP"})
    with pytest.raises(AppException):
        build_blob_store(settings)


@pytest.fixture()
def s3_client():
    client = boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )
    with Stubber(client) as stubber:
        yield client, stubber
        stubber.assert_no_pending_responses()


def test_s3_get_missing_key_returns_none(s3_client):
    client, stubber = s3_client
    stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
    assert S3BlobStore(bucket="archive", client=client).get("missing") is None


def test_s3_get_reads_body(s3_client):
    client, stubber = s3_client
    stubber.add_response(
        "get_object",
        {"Body": StreamingBody(io.BytesIO(b"<html/>"), 7)},
        {"Bucket": "archive", "Key": "k1"},
    )
    assert S3BlobStore(bucket="archive", client=client).get("k1") == b"<html/>"


def test_s3_get_server_error_is_storage_unavailable(s3_client):
    client, stubber = s3_client
    stubber.add_client_error("get_object", service_error_code="InternalError", http_status_code=500)
    with pytest.raises(StorageUnavailableError):
        S3BlobStore(bucket="archive", client=client).get("k1")


class _TimedOutBody(StreamingBody):
    def read(self, amt=None):
        raise ReadTimeoutError(endpoint_url="https://s3.test/archive/k1")


def test_s3_get_read_timeout_is_storage_unavailable(s3_client):
    client, stubber = s3_client
    for _ in range(2):
        stubber.add_response(
            "get_object",
            {"Body": _TimedOutBody(io.BytesIO(b""), 0)},
            {"Bucket": "archive", "Key": "k1"},
        )
    store = S3BlobStore(bucket="archive", client=client)
    with pytest.raises(StorageUnavailableError):
        store.get("k1")
    assert store.get_as_data_uri("k1", "image/png") is None


def test_s3_batch_delete_reports_failed_keys(s3_client):
    client, stubber = s3_client
    stubber.add_response(
        "delete_objects",
        {"Errors": [{"Key": "k2", "Code": "AccessDenied", "Message": "denied"}]},
        {
            "Bucket": "archive",
            "Delete": {"Objects": [{"Key": "k1"}, {"Key": "k2"}], "Quiet": True},
        },
    )
    assert S3BlobStore(bucket="archive", client=client).delete(["k1", None, "k2"]) == ["k2"]


def test_s3_usage_sums_listing(s3_client):
    client, stubber = s3_client
    stubber.add_response(
        "list_objects_v2",
        {"Contents": [{"Key": "a", "Size": 3}, {"Key": "b", "Size": 4}], "IsTruncated": False},
        {"Bucket": "archive"},
    )
    assert S3BlobStore(bucket="archive", client=client).usage() == {"size": 7, "count": 2}
