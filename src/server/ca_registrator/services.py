"""
文件功能：
    CA 注册流程编排：校验 -> 解析 verifier -> 获取注册码 -> 生成证书 -> 注册 CA
    -> 安装激活规则 -> 写入证书包。任何一步失败立即终止。

公开接口：
    - WorkflowState: 流程状态
    - CARegistrationWorkflow: 流程编排器，依赖通过构造函数注入
    - build_workflow: 按配置构造真实的 AWS 客户端与编排器
    - get_workflow: 基于全局配置的默认编排器

内部方法：
    - CARegistrationWorkflow._fail: 记录失败状态与遗留的副作用

失败时不会回滚已完成的步骤：规则安装或写入失败时，CA 仍处于已注册、已激活状态。
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List

from loguru import logger

from ..config import Config, config
from .errors import InputError, RegistrationError, UpstreamError
from .generator import CertificateGenerator
from .registry import IdentityRegistry
from .routes import install_activation_route
from .schemas import RegisterCAResponse
from .store import ArtifactStore
from .validator import validate_request
from .verifiers import VerifierDirectory, resolve_verifier


class WorkflowState(str, Enum):
    VALIDATING = "Validating"
    RESOLVING_VERIFIER = "ResolvingVerifier"
    FETCHING_CODE = "FetchingCode"
    GENERATING_CERTIFICATES = "GeneratingCertificates"
    REGISTERING_CA = "RegisteringCA"
    INSTALLING_ROUTE = "InstallingRoute"
    PERSISTING_ARTIFACT = "PersistingArtifact"
    DONE = "Done"
    FAILED = "Failed"


class CARegistrationWorkflow:
    """
    CA 注册流程编排器。

    实例不保存请求级别的状态，可在多个请求间共享。
    """

    def __init__(
        self,
        verifiers: VerifierDirectory,
        registry: IdentityRegistry,
        generator: CertificateGenerator,
        store: ArtifactStore,
        queue_url: str,
        role_arn: str,
    ):
        self.verifiers = verifiers
        self.registry = registry
        self.generator = generator
        self.store = store
        self.queue_url = queue_url
        self.role_arn = role_arn

    def run(self, body: Any) -> RegisterCAResponse:
        """
        执行一次完整的 CA 注册。
        :param body: 原始请求体（dict、JSON 字符串或 None）。
        :return: 包含 IoT 分配的 certificateId 的响应。
        :raises InputError: 请求体不合法（在任何远程调用之前）。
        :raises VerifierError: verifier 不存在或 ARN 无效（在获取注册码之前）。
        :raises UpstreamError: 任一远程调用失败。
        """
        state = WorkflowState.VALIDATING
        leftovers: List[str] = []
        try:
            request = validate_request(body)

            state = WorkflowState.RESOLVING_VERIFIER
            verifier = resolve_verifier(request.verifier_name, self.verifiers.fetch())

            state = WorkflowState.FETCHING_CODE
            registration_code = self.registry.get_registration_code()

            state = WorkflowState.GENERATING_CERTIFICATES
            # 调用方提供的 commonName 一律被注册码覆盖
            subjects = request.csr_subjects.model_copy(update={"common_name": registration_code})
            try:
                bundle = self.generator.get_ca_registration_certificates(subjects)
            except ValueError as e:
                raise InputError(f"证书主题不合法: {e}") from e

            state = WorkflowState.REGISTERING_CA
            result = self.registry.register_ca(bundle.ca.certificate, bundle.verification.certificate)
            leftovers.append(f"CA certificate {result.certificate_id}")
            logger.info(f"CA 已注册: id={result.certificate_id}, arn={result.certificate_arn}")

            state = WorkflowState.INSTALLING_ROUTE
            rule_name = install_activation_route(
                self.registry,
                result.certificate_id,
                verifier.verifier_arn,
                self.queue_url,
                self.role_arn,
            )
            leftovers.append(f"topic rule {rule_name}")

            state = WorkflowState.PERSISTING_ARTIFACT
            self.store.put_bundle(bundle, result)
        except RegistrationError as e:
            self._fail(state, e, leftovers)
            raise
        except Exception as e:
            logger.exception(f"CA 注册在 {state.value} 阶段发生未预期错误")
            error = UpstreamError(str(e), step=state.value)
            self._fail(state, error, leftovers)
            raise error from e

        logger.info(f"CA 注册流程完成: {result.certificate_id}")
        return RegisterCAResponse(certificate_id=result.certificate_id)

    @staticmethod
    def _fail(state: WorkflowState, error: RegistrationError, leftovers: List[str]) -> None:
        error.state = state
        logger.error(f"CA 注册在 {state.value} 阶段失败 -> {WorkflowState.FAILED.value}: [{error.kind}] {error.message}")
        if leftovers:
            logger.warning(f"以下资源已创建且不会回滚: {', '.join(leftovers)}")


def build_workflow(settings: Config) -> CARegistrationWorkflow:
    """按配置构造编排器。客户端无请求级状态，可跨请求复用。"""
    region = settings.aws_region or None
    return CARegistrationWorkflow(
        verifiers=VerifierDirectory(settings.fetch_all_verifier_http_function_arn, region=region),
        registry=IdentityRegistry(region=region),
        generator=CertificateGenerator(
            key_size=settings.ca_key_size,
            ca_validity_days=settings.ca_validity_days,
            verification_validity_days=settings.verification_validity_days,
        ),
        store=ArtifactStore(settings.bucket_name, prefix=settings.bucket_prefix, region=region),
        queue_url=settings.device_activator_queue_url,
        role_arn=settings.device_activator_role_arn,
    )


_default_workflow: CARegistrationWorkflow | None = None


def get_workflow() -> CARegistrationWorkflow:
    """返回基于全局配置构造的编排器（首次调用时创建）。"""
    global _default_workflow
    if _default_workflow is None:
        _default_workflow = build_workflow(config)
    return _default_workflow
