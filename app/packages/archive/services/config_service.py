"""配置服务：为 stores 键值表提供按键划分的类型化访问方法。

每个配置键都有独立的读写方法（管理员令牌、是否展示最近保存、AI 标签配置），
不暴露通用的任意键读写，便于审计配置面。
"""

from __future__ import annotations

import json
from typing import Any, Dict, Literal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.packages.archive.core.constants import (
    ADMIN_TOKEN_MIN_LENGTH,
    CONFIG_KEY_ADMIN_TOKEN,
    CONFIG_KEY_AI_TAG,
    CONFIG_KEY_SHOULD_SHOW_RECENT,
    DEFAULT_AI_TAG_CONFIG,
)
from app.packages.archive.core.exceptions import ConflictError
from app.packages.archive.core.logger import logger
from app.packages.archive.core.security import hash_token, verify_token
from app.packages.archive.crud.store import store_crud

TokenVerdict = Literal["new", "fail", "reject", "accept"]


class ConfigService:
    # ------------------------------------------------------------------
    # 管理员令牌
    # ------------------------------------------------------------------

    def has_admin_token(self, db: Session) -> bool:
        return store_crud.get_by_key(db, CONFIG_KEY_ADMIN_TOKEN) is not None

    def set_admin_token(self, db: Session, token: str) -> bool:
        if self.has_admin_token(db):
            raise ConflictError("管理员令牌已存在")
        try:
            store_crud.set_value(db, CONFIG_KEY_ADMIN_TOKEN, hash_token(token))
        except IntegrityError as exc:
            db.rollback()
            raise ConflictError("管理员令牌已存在") from exc
        return True

    def verify_admin_token(self, db: Session, token: Any) -> TokenVerdict:
        """校验管理员令牌。

        - 长度不足或类型不对：``reject``；
        - 与已存储的哈希匹配：``accept``；
        - 尚未设置管理员令牌：把该令牌设为管理员令牌并返回 ``new``（失败则 ``fail``）。
        """
        if not isinstance(token, str) or len(token) < ADMIN_TOKEN_MIN_LENGTH:
            return "reject"
        stored = store_crud.get_value(db, CONFIG_KEY_ADMIN_TOKEN)
        if stored is not None:
            return "accept" if verify_token(token, stored) else "reject"
        try:
            self.set_admin_token(db, token)
        except ConflictError:
            # 并发请求抢先完成了初始化
            stored = store_crud.get_value(db, CONFIG_KEY_ADMIN_TOKEN)
            return "accept" if stored is not None and verify_token(token, stored) else "fail"
        logger.info("Admin token initialised")
        return "new"

    # ------------------------------------------------------------------
    # 界面偏好
    # ------------------------------------------------------------------

    def get_should_show_recent(self, db: Session) -> bool:
        value = store_crud.get_value(db, CONFIG_KEY_SHOULD_SHOW_RECENT)
        if value is None:
            return True
        return value == "true"

    def set_should_show_recent(self, db: Session, value: bool) -> bool:
        store_crud.set_value(db, CONFIG_KEY_SHOULD_SHOW_RECENT, "true" if value else "false")
        return True

    # ------------------------------------------------------------------
    # AI 标签配置
    # ------------------------------------------------------------------

    def get_ai_tag_config(self, db: Session) -> Dict[str, Any]:
        value = store_crud.get_value(db, CONFIG_KEY_AI_TAG)
        if value is None:
            return {**DEFAULT_AI_TAG_CONFIG, "preferredTags": []}
        return json.loads(value)

    def set_ai_tag_config(self, db: Session, config: Dict[str, Any]) -> bool:
        store_crud.set_value(db, CONFIG_KEY_AI_TAG, json.dumps(config, ensure_ascii=False))
        return True


config_service = ConfigService()
