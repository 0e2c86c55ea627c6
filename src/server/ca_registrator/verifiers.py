"""
Verifier 解析。

每次请求都会调用远程的 verifier 查询函数获取最新的 名称 -> ARN 映射（不做缓存），
再根据请求中的 verifierName 判定是 NamedVerifier 还是 AnonymousVerifier。
"""

from __future__ import annotations

import json
from typing import Any, Dict

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger
from pydantic import ValidationError

from .errors import UpstreamError, VerifierError
from .schemas import AnonymousVerifier, NamedVerifier, VerifierRequest


def decode_verifier_envelope(raw: bytes | str) -> Dict[str, Any]:
    """
    解开查询函数的返回：外层信封 -> body(JSON 字符串) -> verifiers(JSON 字符串) -> 映射。
    :raises UpstreamError: 任意一层格式不正确。
    """
    try:
        envelope = json.loads(raw)
        body = envelope["body"]
        if isinstance(body, (str, bytes)):
            body = json.loads(body)
        verifiers = body.get("verifiers", "{}")
        if isinstance(verifiers, (str, bytes)):
            verifiers = json.loads(verifiers)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise UpstreamError(f"verifier 查询结果格式错误: {e}", step="fetch_verifiers") from e

    if not isinstance(verifiers, dict):
        raise UpstreamError("verifier 查询结果格式错误: verifiers 不是对象", step="fetch_verifiers")
    return verifiers


class VerifierDirectory:
    """远程 verifier 查询函数的客户端。"""

    def __init__(self, function_arn: str, region: str | None = None, client=None):
        self.function_arn = function_arn
        self.client = client or boto3.client("lambda", region_name=region or None)

    def fetch(self) -> Dict[str, Any]:
        """以空载荷调用查询函数，返回当前的 verifier 映射。"""
        try:
            response = self.client.invoke(FunctionName=self.function_arn, Payload=b"")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"调用 verifier 查询函数失败: {e}")
            raise UpstreamError(f"调用 verifier 查询函数失败: {e}", step="fetch_verifiers") from e

        payload = response.get("Payload")
        raw = payload.read() if hasattr(payload, "read") else (payload or b"")
        if response.get("FunctionError"):
            logger.error(f"verifier 查询函数执行出错: {response['FunctionError']}")
            raise UpstreamError(
                f"verifier 查询函数执行出错: {response['FunctionError']}",
                details=raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw,
                step="fetch_verifiers",
            )
        return decode_verifier_envelope(raw)


def resolve_verifier(verifier_name: str | None, verifiers: Dict[str, Any]) -> VerifierRequest:
    """
    根据 verifierName 与查询到的映射确定 verifier。
    :param verifier_name: 规范化后的 verifier 名称，空串或 None 表示未指定。
    :param verifiers: 名称 -> ARN 的映射。
    :return: 指定名称时返回 NamedVerifier，否则返回 AnonymousVerifier。
    :raises VerifierError: 名称不在映射中，或对应的值不是以 arn: 开头且不含双引号的字符串。
    """
    if not verifier_name:
        return AnonymousVerifier()

    verifier_arn = verifiers.get(verifier_name) or ""
    try:
        return NamedVerifier(verifier_name=verifier_name, verifier_arn=verifier_arn)
    except ValidationError as e:
        logger.warning(f"verifier 校验失败: name={verifier_name!r}, arn={verifier_arn!r}, 可用: {sorted(verifiers)}")
        raise VerifierError(
            f"verifier '{verifier_name}' 不存在或其 ARN 无效",
            details={"verifierName": verifier_name, "verifierArn": verifier_arn},
        ) from e
