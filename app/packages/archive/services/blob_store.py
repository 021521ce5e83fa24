"""对象存储适配层：以不透明键读写归档内容与截图，统一封装本地与 S3 两类后端。

约定：
- ``put`` 总是生成新的唯一键，不会覆盖已有对象；
- ``get`` 在键不存在时返回 ``None`` 而不是抛错；
- ``delete`` 尽力而为，删除不存在的键不算错误，返回删除失败的键列表；
- 连接失败等基础设施错误统一转换为 ``StorageUnavailableError``。
"""

from __future__ import annotations

import base64
import io
import uuid
from pathlib import Path
from typing import Iterable, List, Optional, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.packages.archive.core.config import Settings, get_settings
from app.packages.archive.core.constants import HTTP_STATUS_BAD_REQUEST, S3_DELETE_BATCH_LIMIT
from app.packages.archive.core.exceptions import AppException, StorageUnavailableError
from app.packages.archive.core.logger import logger

BlobContent = Union[bytes, str]
_MISSING_KEY_CODES = {"NoSuchKey", "404", "NotFound"}


def new_blob_key() -> str:
    return uuid.uuid4().hex


def _as_bytes(content: BlobContent) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return bytes(content)


def _normalize_keys(keys: Union[str, Iterable[Optional[str]], None]) -> List[str]:
    if keys is None:
        return []
    if isinstance(keys, str):
        return [keys] if keys else []
    return [key for key in keys if key]


def to_data_uri(content: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class BlobStore:
    """对象存储接口。"""

    def put(self, content: BlobContent) -> str:
        raise NotImplementedError

    def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def delete_one(self, key: str) -> None:
        """删除单个键；失败时抛出 ``StorageUnavailableError``。"""
        raise NotImplementedError

    def usage(self) -> dict:
        """返回 ``{"size": 总字节数, "count": 对象数量}``。"""
        raise NotImplementedError

    def delete(self, keys: Union[str, Iterable[Optional[str]], None]) -> List[str]:
        failed: List[str] = []
        for key in _normalize_keys(keys):
            try:
                self.delete_one(key)
            except AppException as exc:
                logger.warning("Blob delete failed for key %s: %s", key, exc.msg)
                failed.append(key)
        return failed

    def get_text(self, key: str) -> Optional[str]:
        content = self.get(key)
        if content is None:
            return None
        return content.decode("utf-8", errors="replace")

    def get_as_data_uri(self, key: Optional[str], mime_type: str) -> Optional[str]:
        """读取对象并编码为 base64 data URI，键为空或不可读时返回 None。"""
        if not key:
            return None
        try:
            content = self.get(key)
        except StorageUnavailableError as exc:
            logger.warning("Blob %s unreadable, rendering without it: %s", key, exc.msg)
            return None
        if content is None:
            return None
        return to_data_uri(content, mime_type)


# ------------------------------------------
# 本地文件系统实现
# ------------------------------------------


class LocalBlobStore(BlobStore):
    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:  # pragma: no cover - 极端情况下可能失败
            raise StorageUnavailableError(f"无法创建本地存储目录: {exc}") from exc

    # 统一的安全路径拼接，防止路径遍历
    def _resolve(self, key: str) -> Path:
        candidate = (self.root / key.strip().lstrip("/")).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as exc:
            raise AppException("非法的对象键", HTTP_STATUS_BAD_REQUEST) from exc
        if candidate == self.root:
            raise AppException("非法的对象键", HTTP_STATUS_BAD_REQUEST)
        return candidate

    def put(self, content: BlobContent) -> str:
        key = new_blob_key()
        target = self._resolve(key)
        try:
            with open(target, "xb") as f:
                f.write(_as_bytes(content))
        except OSError as exc:
            logger.exception("Local blob write failed: %s", exc)
            raise StorageUnavailableError("对象写入失败") from exc
        return key

    def get(self, key: str) -> Optional[bytes]:
        target = self._resolve(key)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageUnavailableError(f"对象读取失败: {key}") from exc

    def delete_one(self, key: str) -> None:
        target = self._resolve(key)
        try:
            # 允许幂等：不存在则忽略
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageUnavailableError(f"对象删除失败: {key}") from exc

    def usage(self) -> dict:
        size = 0
        count = 0
        for entry in self.root.iterdir():
            if entry.is_file():
                size += entry.stat().st_size
                count += 1
        return {"size": size, "count": count}


# ------------------------------------------
# S3 实现（boto3）
# ------------------------------------------


class S3BlobStore(BlobStore):
    """S3 兼容对象存储；客户端自带有限次数的标准退避重试与连接/读取超时。"""

    def __init__(self, *, bucket: str, client) -> None:
        self.bucket = bucket
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3BlobStore":
        config = Config(
            retries={"max_attempts": settings.blob_max_attempts, "mode": settings.blob_retry_mode},
            connect_timeout=settings.blob_connect_timeout,
            read_timeout=settings.blob_read_timeout,
            s3={"addressing_style": "path"},
        )
        client = boto3.client(
            "s3",
            region_name=settings.s3_region or None,
            endpoint_url=settings.s3_endpoint or None,
            aws_access_key_id=settings.s3_access_key_id or None,
            aws_secret_access_key=settings.s3_secret_access_key or None,
            config=config,
        )
        return cls(bucket=settings.s3_bucket_name, client=client)

    def put(self, content: BlobContent) -> str:
        key = new_blob_key()
        try:
            self._client.put_object(Bucket=self.bucket, Key=key, Body=io.BytesIO(_as_bytes(content)))
        except (BotoCoreError, ClientError) as exc:
            logger.exception("S3 put failed: %s", exc)
            raise StorageUnavailableError("对象写入失败") from exc
        return key

    def get(self, key: str) -> Optional[bytes]:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
            body = response.get("Body")
            # 流式读取同样可能超时
            return body.read() if body is not None else None
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                return None
            raise StorageUnavailableError(f"对象读取失败: {key}") from exc
        except BotoCoreError as exc:
            raise StorageUnavailableError(f"对象读取失败: {key}") from exc

    def delete_one(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_KEY_CODES:
                return
            raise StorageUnavailableError(f"对象删除失败: {key}") from exc
        except BotoCoreError as exc:
            raise StorageUnavailableError(f"对象删除失败: {key}") from exc

    def delete(self, keys: Union[str, Iterable[Optional[str]], None]) -> List[str]:
        key_list = _normalize_keys(keys)
        failed: List[str] = []
        # 批量删除（分批防止一次过多）
        for i in range(0, len(key_list), S3_DELETE_BATCH_LIMIT):
            batch = key_list[i : i + S3_DELETE_BATCH_LIMIT]
            try:
                response = self._client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
            except (BotoCoreError, ClientError) as exc:
                logger.warning("S3 batch delete failed for %s keys: %s", len(batch), exc)
                failed.extend(batch)
                continue
            for error in response.get("Errors", []):
                if error.get("Code") in _MISSING_KEY_CODES:
                    continue
                logger.warning("S3 delete failed for key %s: %s", error.get("Key"), error.get("Message"))
                failed.append(error.get("Key"))
        return failed

    def usage(self) -> dict:
        size = 0
        count = 0
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket):
                for obj in page.get("Contents", []):
                    size += int(obj.get("Size") or 0)
                    count += 1
        except (BotoCoreError, ClientError) as exc:
            raise StorageUnavailableError("无法统计对象存储用量") from exc
        return {"size": size, "count": count}


def build_blob_store(settings: Optional[Settings] = None) -> BlobStore:
    settings = settings or get_settings()
    backend = (settings.blob_backend or "").upper()
    if backend == "LOCAL":
        return LocalBlobStore(settings.blob_local_directory)
    if backend == "S3":
        if not settings.s3_bucket_name:
            raise AppException("S3 配置不完整：缺少 S3_BUCKET_NAME", HTTP_STATUS_BAD_REQUEST)
        return S3BlobStore.from_settings(settings)
    raise AppException("不支持的存储类型", HTTP_STATUS_BAD_REQUEST)
