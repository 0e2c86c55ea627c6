"""
文件功能：
    定义 CA 注册流程的公开数据模型（Pydantic）。JSON 字段统一使用驼峰命名。

公开接口：
    - CsrSubjects: 证书主题字段
    - RegisterCARequest / RegisterCAResponse: 注册接口的请求与响应
    - ErrorResponse: 错误响应
    - NamedVerifier / AnonymousVerifier / VerifierRequest: verifier 的两种合法形态
    - KeyCertificate / CertificateBundle: 生成的 CA 与验证证书
    - RegistrationResult: IoT 分配的证书 ID 与 ARN
    - ArtifactDocument: 写入 S3 的证书包
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator
from pydantic.alias_generators import to_camel

from .errors import RegistrationError

# verifier 标识必须是 AWS ARN；双引号会破坏激活规则的 SQL，因此不允许出现
VERIFIER_ARN_PATTERN = r'^arn:[^"]*$'


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CsrSubjects(_CamelModel):
    """
    证书主题。所有字段均为可选字符串（允许空串），未知字段原样保留。
    commonName 会在生成证书前被注册码覆盖。
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    common_name: StrictStr = ""
    country_name: StrictStr = ""
    state_name: StrictStr = ""
    locality_name: StrictStr = ""
    organization_name: StrictStr = ""
    organization_unit_name: StrictStr = ""


class RegisterCARequest(_CamelModel):
    """CA 注册请求。"""

    csr_subjects: CsrSubjects = Field(default_factory=CsrSubjects)
    verifier_name: StrictStr = ""

    @field_validator("csr_subjects", mode="before")
    @classmethod
    def _default_subjects(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("verifier_name", mode="before")
    @classmethod
    def _normalize_verifier_name(cls, value: Any) -> Any:
        """null 与空串都表示未指定 verifier。"""
        return "" if value is None else value


class RegisterCAResponse(_CamelModel):
    certificate_id: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Any = None

    @classmethod
    def from_error(cls, error: RegistrationError) -> "ErrorResponse":
        return cls(error=error.kind, message=error.message, details=error.details)


class NamedVerifier(_CamelModel):
    """指定了 verifier：名称非空，ARN 必须合法。"""

    kind: Literal["named"] = "named"
    verifier_name: str = Field(min_length=1)
    verifier_arn: str = Field(pattern=VERIFIER_ARN_PATTERN)


class AnonymousVerifier(_CamelModel):
    """未指定 verifier：ARN 为空串。"""

    kind: Literal["anonymous"] = "anonymous"
    verifier_name: Literal[""] = ""
    verifier_arn: Literal[""] = ""


VerifierRequest = Annotated[Union[NamedVerifier, AnonymousVerifier], Field(discriminator="kind")]


class KeyCertificate(_CamelModel):
    """一对密钥及其证书（PEM 文本）。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    public_key: str
    private_key: str | None = None
    certificate: str


class CertificateBundle(_CamelModel):
    """注册 CA 所需的证书：CA 证书与证明持有 CA 私钥的验证证书。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    ca: KeyCertificate
    verification: KeyCertificate


class RegistrationResult(_CamelModel):
    certificate_id: str
    certificate_arn: str


class ArtifactDocument(CertificateBundle):
    """写入对象存储的完整证书包。"""

    certificate_id: str
    certificate_arn: str
