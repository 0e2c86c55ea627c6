"""
API Gateway（Lambda 代理集成）入口。

把代理事件转换为请求体交给 CARegistrationWorkflow，并把结果或错误包装为
{statusCode, headers, body} 形式的响应。
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Dict

from loguru import logger

from . import services
from .errors import InputError, RegistrationError, UpstreamError
from .schemas import ErrorResponse

_JSON_HEADERS = {"Content-Type": "application/json"}


def _response(status_code: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(_JSON_HEADERS),
        "body": json.dumps(payload, ensure_ascii=False),
    }


def _event_body(event: Dict[str, Any]) -> Any:
    body = event.get("body")
    if isinstance(body, str) and event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body, validate=True)
        except binascii.Error as e:
            raise InputError(f"请求体不是合法的 base64: {e}") from e
    return body


def lambda_handler(event: Dict[str, Any] | None = None, context: Any = None) -> Dict[str, Any]:
    """Lambda 入口。event 为空时视为空请求体。"""
    event = event or {}
    try:
        body = _event_body(event)
        result = services.get_workflow().run(body)
    except RegistrationError as e:
        return _response(e.status_code, ErrorResponse.from_error(e).model_dump())
    except Exception as e:
        logger.exception("Lambda 入口发生未预期错误")
        error = UpstreamError(f"内部服务器错误: {str(e)}")
        return _response(error.status_code, ErrorResponse.from_error(error).model_dump())
    return _response(200, result.model_dump(by_alias=True))
