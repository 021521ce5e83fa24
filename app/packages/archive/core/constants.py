"""常量定义：HTTP 状态码、配置键与存储相关的固定值。"""

from fastapi import status

HTTP_STATUS_OK = status.HTTP_200_OK
HTTP_STATUS_BAD_REQUEST = status.HTTP_400_BAD_REQUEST

ACCESS_TOKEN_TYPE = "bearer"

# stores 表中的配置键
CONFIG_KEY_ADMIN_TOKEN = "ADMIN_TOKEN"
CONFIG_KEY_SHOULD_SHOW_RECENT = "shouldShowRecent"
CONFIG_KEY_AI_TAG = "aiTag"

ADMIN_TOKEN_MIN_LENGTH = 8

DEFAULT_AI_TAG_CONFIG = {
    "tagLanguage": "en",
    "type": "cloudflare",
    "model": "",
    "preferredTags": [],
}

DEFAULT_TAG_COLOR = ""

SCREENSHOT_MIME_TYPE = "image/png"

# S3 DeleteObjects 单次请求的对象上限
S3_DELETE_BATCH_LIMIT = 1000
