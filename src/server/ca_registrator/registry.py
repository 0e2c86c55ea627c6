"""
AWS IoT 设备身份注册中心的薄封装：注册码、CA 注册与主题规则。
"""

from __future__ import annotations

from typing import Any, Dict, List

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from .errors import UpstreamError
from .schemas import RegistrationResult


class IdentityRegistry:
    """
    IoT 客户端封装。所有远程错误都转换为 UpstreamError，不做重试。
    """

    def __init__(self, region: str | None = None, client=None):
        self.client = client or boto3.client("iot", region_name=region or None)

    def get_registration_code(self) -> str:
        """获取一次性注册码，用作证书主题的 commonName。"""
        try:
            response = self.client.get_registration_code()
        except (ClientError, BotoCoreError) as e:
            logger.error(f"获取注册码失败: {e}")
            raise UpstreamError(f"获取注册码失败: {e}", step="get_registration_code") from e
        return response["registrationCode"]

    def register_ca(self, ca_certificate: str, verification_certificate: str) -> RegistrationResult:
        """
        注册 CA 证书，开启设备自动注册并立即激活。
        :param ca_certificate: CA 证书 PEM。
        :param verification_certificate: 验证证书 PEM。
        """
        try:
            response = self.client.register_ca_certificate(
                caCertificate=ca_certificate,
                verificationCertificate=verification_certificate,
                setAsActive=True,
                allowAutoRegistration=True,
                registrationConfig={},
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"注册 CA 证书失败: {e}")
            raise UpstreamError(f"注册 CA 证书失败: {e}", step="register_ca") from e
        return RegistrationResult(
            certificate_id=response["certificateId"],
            certificate_arn=response["certificateArn"],
        )

    def create_topic_rule(self, rule_name: str, sql: str, actions: List[Dict[str, Any]]) -> None:
        """创建主题规则。规则名冲突或 SQL 非法时失败。"""
        try:
            self.client.create_topic_rule(
                ruleName=rule_name,
                topicRulePayload={
                    "sql": sql,
                    "actions": actions,
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"创建主题规则 {rule_name} 失败: {e}")
            raise UpstreamError(f"创建主题规则失败: {e}", step="create_topic_rule") from e
