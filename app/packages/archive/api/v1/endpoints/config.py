"""配置路由：界面偏好与 AI 标签配置。"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.packages.archive.api.v1.schemas.common import ResponseEnvelope
from app.packages.archive.api.v1.schemas.config import AITagConfig, AITagConfigResponse, ShouldShowRecentPayload
from app.packages.archive.core.dependencies import get_db, require_admin
from app.packages.archive.core.responses import create_response
from app.packages.archive.services.config_service import config_service

router = APIRouter(prefix="/config", tags=["config"], dependencies=[Depends(require_admin)])


@router.get("/should_show_recent", response_model=ResponseEnvelope[bool])
def get_should_show_recent(db: Session = Depends(get_db)):
    return create_response("获取配置成功", config_service.get_should_show_recent(db))


@router.post("/should_show_recent", response_model=ResponseEnvelope[bool])
def set_should_show_recent(payload: ShouldShowRecentPayload, db: Session = Depends(get_db)):
    return create_response("更新配置成功", config_service.set_should_show_recent(db, payload.should_show_recent))


@router.get("/ai_tag", response_model=AITagConfigResponse)
def get_ai_tag_config(db: Session = Depends(get_db)):
    return create_response("获取配置成功", config_service.get_ai_tag_config(db))


@router.post("/ai_tag", response_model=ResponseEnvelope[bool])
def set_ai_tag_config(payload: AITagConfig, db: Session = Depends(get_db)):
    return create_response("更新配置成功", config_service.set_ai_tag_config(db, payload.model_dump(by_alias=True)))
