"""
注册 CA 所需证书的生成。

生成一张自签 CA 证书，以及一张由该 CA 私钥签名、commonName 为注册码的验证证书，
用于向 IoT 证明持有 CA 私钥。
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat
from cryptography.x509.oid import NameOID

from .schemas import CertificateBundle, CsrSubjects, KeyCertificate

_SUBJECT_OIDS = (
    ("country_name", NameOID.COUNTRY_NAME),
    ("state_name", NameOID.STATE_OR_PROVINCE_NAME),
    ("locality_name", NameOID.LOCALITY_NAME),
    ("organization_name", NameOID.ORGANIZATION_NAME),
    ("organization_unit_name", NameOID.ORGANIZATIONAL_UNIT_NAME),
    ("common_name", NameOID.COMMON_NAME),
)


def build_subject_name(subjects: CsrSubjects) -> x509.Name:
    """
    由 CsrSubjects 构造 x509.Name，跳过空字段。
    :raises ValueError: 字段值不符合 X.509 约束（如国家代码不是两位）。
    """
    attributes: List[x509.NameAttribute] = []
    for field, oid in _SUBJECT_OIDS:
        value = getattr(subjects, field)
        if value:
            attributes.append(x509.NameAttribute(oid, value))
    return x509.Name(attributes)


def _key_pem(key: rsa.RSAPrivateKey) -> tuple[str, str]:
    private_pem = key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        encoding=Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return public_pem.decode("utf-8"), private_pem.decode("utf-8")


class CertificateGenerator:
    """CA 与验证证书生成器。"""

    def __init__(self, key_size: int = 2048, ca_validity_days: int = 3650, verification_validity_days: int = 365):
        self.key_size = key_size
        self.ca_validity_days = ca_validity_days
        self.verification_validity_days = verification_validity_days

    def _generate_key(self) -> rsa.RSAPrivateKey:
        return rsa.generate_private_key(public_exponent=65537, key_size=self.key_size)

    def get_ca_registration_certificates(self, subjects: CsrSubjects) -> CertificateBundle:
        """
        生成 CA 证书与验证证书。
        :param subjects: 证书主题，commonName 应已被替换为注册码。
        :return: CertificateBundle，包含两对密钥与证书的 PEM 文本。
        :raises ValueError: 主题字段不合法。
        """
        name = build_subject_name(subjects)
        now = datetime.now(timezone.utc)

        ca_key = self._generate_key()
        ca_cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(ca_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(minutes=1))
            .not_valid_after(now + timedelta(days=self.ca_validity_days))
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    key_encipherment=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    content_commitment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(x509.SubjectKeyIdentifier.from_public_key(ca_key.public_key()), critical=False)
            .sign(private_key=ca_key, algorithm=hashes.SHA256())
        )

        verification_key = self._generate_key()
        verification_cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(ca_cert.subject)
            .public_key(verification_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - timedelta(minutes=1))
            .not_valid_after(now + timedelta(days=self.verification_validity_days))
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .sign(private_key=ca_key, algorithm=hashes.SHA256())
        )

        ca_public, ca_private = _key_pem(ca_key)
        verification_public, verification_private = _key_pem(verification_key)
        return CertificateBundle(
            ca=KeyCertificate(
                public_key=ca_public,
                private_key=ca_private,
                certificate=ca_cert.public_bytes(Encoding.PEM).decode("utf-8"),
            ),
            verification=KeyCertificate(
                public_key=verification_public,
                private_key=verification_private,
                certificate=verification_cert.public_bytes(Encoding.PEM).decode("utf-8"),
            ),
        )
