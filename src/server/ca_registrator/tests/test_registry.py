"""
测试 registry.py：IoT 客户端封装。
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.server.ca_registrator.errors import UpstreamError
from src.server.ca_registrator.registry import IdentityRegistry


def _client_error(operation):
    return ClientError({"Error": {"Code": "InvalidRequestException", "Message": "rejected"}}, operation)


def test_get_registration_code(iot_client):
    assert IdentityRegistry(client=iot_client).get_registration_code() == "registration_code"
    iot_client.get_registration_code.assert_called_once_with()


def test_get_registration_code_failure(iot_client):
    iot_client.get_registration_code.side_effect = _client_error("GetRegistrationCode")
    with pytest.raises(UpstreamError) as ei:
        IdentityRegistry(client=iot_client).get_registration_code()
    assert ei.value.step == "get_registration_code"


def test_get_registration_code_unreachable(iot_client):
    iot_client.get_registration_code.side_effect = EndpointConnectionError(endpoint_url="https://iot.local")
    with pytest.raises(UpstreamError):
        IdentityRegistry(client=iot_client).get_registration_code()


def test_register_ca(iot_client):
    result = IdentityRegistry(client=iot_client).register_ca("ca-pem", "verification-pem")

    assert result.certificate_id == "ca_certificate_id"
    assert result.certificate_arn == "ca_certificate_arn"
    iot_client.register_ca_certificate.assert_called_once_with(
        caCertificate="ca-pem",
        verificationCertificate="verification-pem",
        setAsActive=True,
        allowAutoRegistration=True,
        registrationConfig={},
    )


def test_register_ca_failure(iot_client):
    iot_client.register_ca_certificate.side_effect = _client_error("RegisterCACertificate")
    with pytest.raises(UpstreamError) as ei:
        IdentityRegistry(client=iot_client).register_ca("ca-pem", "verification-pem")
    assert "rejected" in ei.value.message
    assert ei.value.step == "register_ca"


def test_create_topic_rule(iot_client):
    actions = [{"sqs": {"queueUrl": "q", "roleArn": "r"}}]
    IdentityRegistry(client=iot_client).create_topic_rule("Rule_1", "SELECT * FROM 't'", actions)
    iot_client.create_topic_rule.assert_called_once_with(
        ruleName="Rule_1",
        topicRulePayload={"sql": "SELECT * FROM 't'", "actions": actions},
    )


def test_create_topic_rule_failure():
    client = MagicMock()
    client.create_topic_rule.side_effect = ClientError(
        {"Error": {"Code": "ResourceAlreadyExistsException", "Message": "exists"}}, "CreateTopicRule"
    )
    with pytest.raises(UpstreamError) as ei:
        IdentityRegistry(client=client).create_topic_rule("Rule_1", "SELECT 1", [])
    assert ei.value.step == "create_topic_rule"
