"""安全工具：管理员令牌的哈希与校验。"""

import hashlib

import bcrypt


def _digest(token: str) -> bytes:
    # bcrypt 只使用前 72 字节，先做 SHA-256 摘要保证任意长度令牌都参与校验
    return hashlib.sha256(token.encode("utf-8")).hexdigest().encode("ascii")


def hash_token(token: str) -> str:
    """对管理员令牌执行 bcrypt 哈希并返回可持久化的字符串。"""
    return bcrypt.hashpw(_digest(token), bcrypt.gensalt()).decode("utf-8")


def verify_token(token: str, hashed: str) -> bool:
    """校验明文令牌与已存储哈希值是否匹配。"""
    try:
        return bcrypt.checkpw(_digest(token), hashed.encode("utf-8"))
    except ValueError:
        return False
