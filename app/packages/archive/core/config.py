"""配置模块：加载 ``.env`` 文件并缓存基于环境变量的应用设置。"""

import os
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 项目根目录：``app`` 包所在目录，相对路径的配置都以此为基准
BASE_DIR = Path(__file__).resolve().parents[4]


def _load_environment() -> None:
    """依次加载 ``.env`` 与 ``ENV_FILE`` 指定的文件，后者覆盖前者；已存在的进程环境变量优先级最高。"""
    override_name = os.getenv("ENV_FILE")
    # override=False：先加载的文件优先，因此 ENV_FILE 排在 .env 之前
    for candidate in (BASE_DIR / override_name if override_name else None, BASE_DIR / ".env"):
        if candidate is not None and candidate.is_file():
            load_dotenv(candidate, override=False, encoding="utf-8")


_load_environment()


class Settings(BaseSettings):
    """
    封装归档服务运行所需的所有配置项，每个字段都可以通过环境变量重写。
    数据库与对象存储客户端均由此处的配置构造后注入业务层。
    """

    project_name: str = Field(default="Web Archive API", alias="PROJECT_NAME")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")
    debug: bool = Field(default=False, alias="DEBUG")

    database_url: str = Field(default="", alias="DATABASE_URL")
    sqlite_db_path: str = Field(default="database.sqlite", alias="SQLITE_DB_PATH")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # 对象存储："LOCAL" 或 "S3"
    blob_backend: str = Field(default="LOCAL", alias="BLOB_BACKEND")
    blob_local_root: str = Field(default="blobs", alias="BLOB_LOCAL_ROOT")
    s3_region: str = Field(default="", alias="S3_REGION")
    s3_endpoint: str = Field(default="", alias="S3_ENDPOINT")
    s3_bucket_name: str = Field(default="", alias="S3_BUCKET_NAME")
    s3_access_key_id: str = Field(default="", alias="S3_ACCESS_KEY_ID")
    s3_secret_access_key: str = Field(default="", alias="S3_SECRET_ACCESS_KEY")
    blob_max_attempts: int = Field(default=3, alias="BLOB_MAX_ATTEMPTS")
    blob_retry_mode: str = Field(default="standard", alias="BLOB_RETRY_MODE")
    blob_connect_timeout: float = Field(default=5.0, alias="BLOB_CONNECT_TIMEOUT")
    blob_read_timeout: float = Field(default=30.0, alias="BLOB_READ_TIMEOUT")

    # 永久清理时的并发与分批
    purge_max_workers: int = Field(default=8, alias="PURGE_MAX_WORKERS")
    purge_batch_size: int = Field(default=50, alias="PURGE_BATCH_SIZE")

    recent_page_limit: int = Field(default=20, alias="RECENT_PAGE_LIMIT")
    dashboard_top_folders: int = Field(default=5, alias="DASHBOARD_TOP_FOLDERS")
    default_folder_name: str = Field(default="default", alias="DEFAULT_FOLDER_NAME")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="log", alias="LOG_DIR")
    log_file_name: str = Field(default="app.log", alias="LOG_FILE_NAME")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    app_port: int = Field(default=8000, alias="APP_PORT")
    timezone: str = Field(default="UTC", alias="TIMEZONE")

    model_config = SettingsConfigDict(extra="ignore")

    def _resolve_path(self, raw: str) -> Path:
        path = Path(raw)
        if not path.is_absolute():
            path = BASE_DIR / path
        return path

    @property
    def sql_database_url(self) -> str:
        """优先使用显式的 DATABASE_URL，否则回退到本地 SQLite 文件。"""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self._resolve_path(self.sqlite_db_path)}"

    @property
    def blob_local_directory(self) -> Path:
        return self._resolve_path(self.blob_local_root)

    @property
    def log_directory(self) -> Path:
        """返回日志目录的绝对路径，支持相对路径配置。"""
        return self._resolve_path(self.log_dir)

    @property
    def log_file_path(self) -> Path:
        return self.log_directory / self.log_file_name

    @property
    def timezone_info(self) -> ZoneInfo:
        """返回当前配置对应的时区信息，无法解析时回退到 UTC。"""
        try:
            return ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError:
            return ZoneInfo("UTC")


@lru_cache
def get_settings() -> Settings:
    """返回单例化的配置对象，避免重复解析环境变量造成性能浪费。"""
    return Settings()
