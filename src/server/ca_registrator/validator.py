"""
请求体结构校验。

只检查类型与结构，不检查 verifier 是否存在（由 verifiers.resolve_verifier 负责）。
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from loguru import logger
from pydantic import ValidationError

from .errors import InputError
from .schemas import RegisterCARequest


def _format_errors(error: ValidationError) -> List[Dict[str, str]]:
    return [
        {
            "path": ".".join(str(p) for p in item["loc"]),
            "message": item["msg"],
            "type": item["type"],
        }
        for item in error.errors()
    ]


def validate_request(body: Any) -> RegisterCARequest:
    """
    校验并规范化原始请求体。
    :param body: 已解码的 JSON 对象、JSON 字符串/字节，或 None（视为空对象）。
    :return: 规范化后的 RegisterCARequest。
    :raises InputError: 结构或类型不合法，details 中包含字段路径与违反的约束。
    """
    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InputError(f"请求体不是合法的 UTF-8 文本: {e}") from e
    if isinstance(body, str):
        text = body.strip()
        try:
            body = json.loads(text) if text else None
        except ValueError as e:
            raise InputError(f"请求体不是合法的 JSON: {e}") from e
    if body is None:
        body = {}
    if not isinstance(body, dict):
        details = [{"path": "", "message": "请求体必须是 JSON 对象", "type": "dict_type"}]
        raise InputError(json.dumps(details, ensure_ascii=False), details=details)

    try:
        return RegisterCARequest.model_validate(body)
    except ValidationError as e:
        details = _format_errors(e)
        logger.warning(f"请求体校验失败: {details}")
        raise InputError(json.dumps(details, ensure_ascii=False), details=details) from e
