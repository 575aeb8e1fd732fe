"""Signature Verifier -- EIP-191 personal_sign 签名恢复

签名文本必须与 Agent 端 JSON.stringify({taskId, content}) 逐字节一致：
紧凑分隔符，非 ASCII 字符不转义。
"""

import json

import structlog
from eth_account import Account
from eth_account.messages import encode_defunct

log = structlog.get_logger()


def build_signed_payload(task_id: int, content: str) -> str:
    """构造审议消息的签名原文"""
    return json.dumps(
        {"taskId": task_id, "content": content},
        separators=(",", ":"),
        ensure_ascii=False,
    )


def recover_signer(message: str, signature: str) -> str | None:
    """从 personal_sign 签名恢复签名者地址

    Returns:
        checksum 地址；签名无法恢复时返回 None
    """
    try:
        return Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        # eth_account / eth_keys 对非法 v、r、s 抛出的异常类型不统一
        log.debug("signature_recover_failed", error_type=type(e).__name__, error=str(e))
        return None


def verify_signer(message: str, signature: str, claimed: str) -> bool:
    """签名恢复出的地址是否与声明的地址一致（大小写不敏感）"""
    recovered = recover_signer(message, signature)
    return recovered is not None and recovered.lower() == claimed.lower()
