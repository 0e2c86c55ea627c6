"""
证书包写入 S3。
"""

from __future__ import annotations

import posixpath

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from .errors import UpstreamError
from .schemas import ArtifactDocument, CertificateBundle, RegistrationResult

ARTIFACT_FILENAME = "ca-certificate.json"


class ArtifactStore:
    """
    以 <prefix>/<certificateId>/ca-certificate.json 为键写入证书包。键已存在时直接覆盖。
    """

    def __init__(self, bucket: str, prefix: str | None = None, region: str | None = None, client=None):
        self.bucket = bucket
        self.prefix = (prefix or "").strip("/")
        self.s3 = client or boto3.client("s3", region_name=region or None)

    def key(self, certificate_id: str) -> str:
        return posixpath.join(self.prefix, certificate_id, ARTIFACT_FILENAME)

    def put_bundle(self, bundle: CertificateBundle, result: RegistrationResult) -> str:
        """
        序列化证书包与注册结果并写入存储。
        :return: 写入的对象键。
        :raises UpstreamError: 写入失败。
        """
        doc = ArtifactDocument(
            ca=bundle.ca,
            verification=bundle.verification,
            certificate_id=result.certificate_id,
            certificate_arn=result.certificate_arn,
        )
        key = self.key(result.certificate_id)
        body = doc.model_dump_json(by_alias=True).encode("utf-8")
        try:
            self.s3.put_object(Bucket=self.bucket, Key=key, Body=body, ContentType="application/json")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"写入 s3://{self.bucket}/{key} 失败: {e}")
            raise UpstreamError(f"写入证书包失败: {e}", step="put_artifact") from e
        logger.info(f"证书包已写入 s3://{self.bucket}/{key}")
        return key
