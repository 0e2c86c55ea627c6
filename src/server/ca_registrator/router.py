"""
CA 注册服务的 FastAPI 路由定义。
"""

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from loguru import logger

from . import services
from .errors import RegistrationError, UpstreamError
from .schemas import ErrorResponse, RegisterCAResponse

router = APIRouter(prefix="/ca", tags=["CA Registration"])


def error_response(error: RegistrationError) -> JSONResponse:
    """将流程错误映射为带状态码的 JSON 错误响应。"""
    return JSONResponse(
        status_code=error.status_code,
        content=ErrorResponse.from_error(error).model_dump(),
    )


@router.post(
    "/register",
    response_model=RegisterCAResponse,
    responses={
        422: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def register_ca(
    request: Request,
    workflow: services.CARegistrationWorkflow = Depends(services.get_workflow),
):
    """
    生成 CA 证书并注册到 IoT，同时安装激活规则并保存证书包。
    请求体可以为空，此时使用空的证书主题且不绑定 verifier。
    """
    body = await request.body()
    try:
        return await run_in_threadpool(workflow.run, body)
    except RegistrationError as e:
        return error_response(e)
    except Exception as e:
        # 捕获所有未预期的错误并返回 500
        logger.exception("CA 注册接口发生未预期错误")
        return error_response(UpstreamError(f"内部服务器错误: {str(e)}"))
