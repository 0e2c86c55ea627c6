"""
CA 注册流程的错误类型。

每种错误自带 HTTP 状态码，由路由层统一映射为 JSON 错误响应。
"""

from __future__ import annotations

from typing import Any


class RegistrationError(Exception):
    """CA 注册流程错误的基类。"""

    status_code: int = 500
    kind: str = "RegistrationError"

    def __init__(self, message: str = "", details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.state = None

    @property
    def code(self) -> int:
        return self.status_code


class InputError(RegistrationError):
    """请求体结构校验失败。"""

    status_code = 422
    kind = "InputError"


class VerifierError(RegistrationError):
    """请求的 verifier 不存在或其标识不是合法的 ARN。"""

    status_code = 404
    kind = "VerifierError"


class UpstreamError(RegistrationError):
    """远程调用（IoT、S3、Lambda）失败。"""

    status_code = 500
    kind = "UpstreamError"

    def __init__(self, message: str = "", details: Any = None, step: str | None = None):
        super().__init__(message, details)
        self.step = step
