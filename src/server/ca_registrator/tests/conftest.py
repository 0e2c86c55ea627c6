"""
CA 注册测试的公共夹具：以 MagicMock 替代 boto3 客户端。
"""

import io
import json
from unittest.mock import MagicMock

import pytest

from src.server.ca_registrator.generator import CertificateGenerator
from src.server.ca_registrator.registry import IdentityRegistry
from src.server.ca_registrator.schemas import CertificateBundle, KeyCertificate
from src.server.ca_registrator.services import CARegistrationWorkflow
from src.server.ca_registrator.store import ArtifactStore
from src.server.ca_registrator.verifiers import VerifierDirectory

FUNCTION_ARN = "arn:aws:lambda:local:000000000000:function:get-all-verifiers"


def _invoke_response(verifiers):
    envelope = {"statusCode": 200, "body": json.dumps({"verifiers": json.dumps(verifiers)})}
    return {"StatusCode": 200, "Payload": io.BytesIO(json.dumps(envelope).encode("utf-8"))}


@pytest.fixture
def set_verifiers(lambda_client):
    """替换查询函数返回的 verifier 映射。"""

    def _set(verifiers):
        lambda_client.invoke.side_effect = lambda **kwargs: _invoke_response(verifiers)

    return _set


@pytest.fixture
def lambda_client():
    client = MagicMock()
    client.invoke.side_effect = lambda **kwargs: _invoke_response({"test_verifier": "arn:test_verifier_arn"})
    return client


@pytest.fixture
def iot_client():
    client = MagicMock()
    client.get_registration_code.return_value = {"registrationCode": "registration_code"}
    client.register_ca_certificate.return_value = {
        "certificateId": "ca_certificate_id",
        "certificateArn": "ca_certificate_arn",
    }
    client.create_topic_rule.return_value = {}
    return client


@pytest.fixture
def s3_client():
    client = MagicMock()
    client.put_object.return_value = {}
    return client


@pytest.fixture
def bundle():
    return CertificateBundle(
        ca=KeyCertificate(public_key="ca-public", private_key="ca-private", certificate="ca-certificate"),
        verification=KeyCertificate(
            public_key="verification-public",
            private_key="verification-private",
            certificate="verification-certificate",
        ),
    )


@pytest.fixture
def generator(bundle):
    gen = MagicMock(spec=CertificateGenerator)
    gen.get_ca_registration_certificates.return_value = bundle
    return gen


@pytest.fixture
def workflow(lambda_client, iot_client, s3_client, generator):
    return CARegistrationWorkflow(
        verifiers=VerifierDirectory(FUNCTION_ARN, client=lambda_client),
        registry=IdentityRegistry(client=iot_client),
        generator=generator,
        store=ArtifactStore("bucket_name", prefix="bucket_prefix", client=s3_client),
        queue_url="activator_queue_url",
        role_arn="activator_role_arn",
    )


@pytest.fixture
def request_body():
    return {
        "csrSubjects": {
            "commonName": "",
            "countryName": "TW",
            "stateName": "TP",
            "localityName": "TW",
            "organizationName": "Soft Chef",
            "organizationUnitName": "web",
        },
        "verifierName": "test_verifier",
    }
