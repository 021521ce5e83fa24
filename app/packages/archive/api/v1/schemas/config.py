"""配置相关的请求/响应模型。"""

from typing import List

from pydantic import Field

from app.packages.archive.api.v1.schemas.common import CamelModel, ResponseEnvelope


class ShouldShowRecentPayload(CamelModel):
    should_show_recent: bool


class AITagConfig(CamelModel):
    tag_language: str = "en"
    type: str = "cloudflare"
    model: str = ""
    preferred_tags: List[str] = Field(default_factory=list)


AITagConfigResponse = ResponseEnvelope[AITagConfig]
