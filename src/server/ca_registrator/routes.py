"""
激活规则安装。

为新注册的 CA 创建一条 IoT 主题规则：把该 CA 下所有设备证书注册事件转发到激活队列，
并把 verifier ARN 作为常量字段写进每条事件。
"""

from __future__ import annotations

from loguru import logger

from .registry import IdentityRegistry

RULE_NAME_PREFIX = "ActivationRule_"
REGISTERED_EVENTS_TOPIC = "$aws/events/certificates/registered/{certificate_id}"


def activation_rule_name(certificate_id: str) -> str:
    return f"{RULE_NAME_PREFIX}{certificate_id}"


def activation_rule_sql(certificate_id: str, verifier_arn: str) -> str:
    topic = REGISTERED_EVENTS_TOPIC.format(certificate_id=certificate_id)
    return f"SELECT *, \"{verifier_arn}\" as verifierArn FROM '{topic}'"


def install_activation_route(
    registry: IdentityRegistry,
    certificate_id: str,
    verifier_arn: str,
    queue_url: str,
    role_arn: str,
) -> str:
    """
    创建激活规则，返回规则名。
    :raises UpstreamError: 规则被 IoT 拒绝。此时 CA 已注册，不做回滚。
    """
    rule_name = activation_rule_name(certificate_id)
    registry.create_topic_rule(
        rule_name,
        activation_rule_sql(certificate_id, verifier_arn),
        [{"sqs": {"queueUrl": queue_url, "roleArn": role_arn}}],
    )
    logger.info(f"已创建激活规则 {rule_name} (verifierArn={verifier_arn!r})")
    return rule_name
